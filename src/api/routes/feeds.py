"""
RSS feed routes.
The core feature: today's picks as RSS, ready for Radarr or any reader.

Endpoints:
- GET /rss/daily-discovery      - Free feed (catalog order, 5 items)
- GET /rss/daily-discovery.txt  - Same feed as a plain-text digest
- GET /rss/{token}              - Token-gated feed, limits + sort by plan

Empty results are never an error: the channel carries one placeholder item.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from ...lib import Analytics, CatalogUnavailable, FeedService, verify_feed_token
from ...lib.rss import render_error, render_text_digest
from ...lib.selector import resolve_limit
from ...models import ChannelMeta, FeedFilters, FeedSort, Plan, Subscription
from ..dependencies import get_analytics, get_feed_service


logger = logging.getLogger(__name__)

router = APIRouter()

RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"
FREE_CACHE_CONTROL = "public, max-age=300"
PRIVATE_CACHE_CONTROL = "private, max-age=300"


def build_filters(
    plan: Plan,
    genre: Optional[str],
    min_rating: float,
    max_age: Optional[int],
    count: Optional[int],
) -> FeedFilters:
    return FeedFilters(
        genre=genre.strip() if genre and genre.strip() else None,
        min_rating=min_rating,
        max_age_years=max_age,
        limit=resolve_limit(plan, count),
    )


def channel_meta(request: Request, feed_id: str, genre: Optional[str], premium: bool = False) -> ChannelMeta:
    base = str(request.base_url).rstrip("/")
    title = "Daily Movie Discovery"
    if premium:
        title += " Premium"
    if genre:
        title += f" - {genre} Movies"

    description = "Daily movie recommendations"
    if genre:
        description += f" in the {genre} genre"
    description += ", streamlined for Radarr. No contracts. No costs. Ever."

    return ChannelMeta(
        title=title,
        link=f"{base}/",
        description=description,
        self_url=str(request.url),
        feed_id=feed_id,
    )


def catalog_missing() -> Response:
    return Response(
        content=render_error("No movie data found"),
        status_code=404,
        media_type=RSS_MEDIA_TYPE,
    )


@router.get("/daily-discovery")
async def free_feed(
    request: Request,
    background_tasks: BackgroundTasks,
    genre: Optional[str] = None,
    min_rating: float = Query(0, alias="minRating", ge=0, le=10),
    max_age: Optional[int] = Query(None, alias="maxAge", ge=0),
    count: Optional[int] = Query(None, ge=1),
    service: FeedService = Depends(get_feed_service),
    analytics: Analytics = Depends(get_analytics),
):
    """
    Free daily feed.

    Query:
    - genre: only movies with this genre (case-insensitive)
    - minRating: minimum TMDB vote average
    - maxAge: maximum age in years
    - count: number of items (capped at the free limit)

    `sort` is a paid feature; the free feed is always in catalog order.
    """
    filters = build_filters(Plan.FREE, genre, min_rating, max_age, count)
    meta = channel_meta(request, "daily-discovery", filters.genre)

    try:
        xml, items = await run_in_threadpool(service.build_feed, filters, meta)
    except CatalogUnavailable as e:
        logger.error("Free feed unavailable: %s", e)
        return catalog_missing()

    background_tasks.add_task(
        analytics.track_feed, "free", [item.external_id for item in items], {"genre": filters.genre}
    )
    return Response(
        content=xml,
        media_type=RSS_MEDIA_TYPE,
        headers={"Cache-Control": FREE_CACHE_CONTROL},
    )


@router.get("/daily-discovery.txt")
async def free_text_digest(
    genre: Optional[str] = None,
    min_rating: float = Query(0, alias="minRating", ge=0, le=10),
    max_age: Optional[int] = Query(None, alias="maxAge", ge=0),
    count: Optional[int] = Query(None, ge=1),
    service: FeedService = Depends(get_feed_service),
):
    """Plain-text digest of the free feed."""
    filters = build_filters(Plan.FREE, genre, min_rating, max_age, count)

    try:
        items = await run_in_threadpool(service.build_items, filters)
    except CatalogUnavailable as e:
        logger.error("Text digest unavailable: %s", e)
        return PlainTextResponse("No movie data found", status_code=404)

    return PlainTextResponse(
        render_text_digest(items),
        headers={"Cache-Control": FREE_CACHE_CONTROL},
    )


@router.get("/{token}")
async def token_feed(
    request: Request,
    background_tasks: BackgroundTasks,
    subscription: Subscription = Depends(verify_feed_token),
    genre: Optional[str] = None,
    min_rating: float = Query(0, alias="minRating", ge=0, le=10),
    max_age: Optional[int] = Query(None, alias="maxAge", ge=0),
    count: Optional[int] = Query(None, ge=1),
    sort: FeedSort = FeedSort.CATALOG,
    service: FeedService = Depends(get_feed_service),
    analytics: Analytics = Depends(get_analytics),
):
    """
    Personalized feed for a subscription token.

    Premium/ultimate/genre-pack plans get larger feeds and may pick
    `sort=popular|trending|top_rated`. Genre packs default the genre filter
    to the genre they bought.
    """
    plan = subscription.plan_id
    if not plan.is_paid_feed:
        sort = FeedSort.CATALOG

    genre = genre or subscription.metadata.get("genre")
    filters = build_filters(plan, genre, min_rating, max_age, count)
    meta = channel_meta(request, plan.value, filters.genre, premium=plan.is_paid_feed)

    try:
        xml, items = await run_in_threadpool(service.build_feed, filters, meta, sort)
    except CatalogUnavailable as e:
        logger.error("Token feed unavailable: %s", e)
        return catalog_missing()

    background_tasks.add_task(
        analytics.track_feed,
        plan.value,
        [item.external_id for item in items],
        {"subscription_id": subscription.id, "sort": sort.value, "genre": filters.genre},
    )
    return Response(
        content=xml,
        media_type=RSS_MEDIA_TYPE,
        headers={"Cache-Control": PRIVATE_CACHE_CONTROL},
    )
