"""
Request-scoped collaborators.
Routes depend on these so tests can swap them via app.dependency_overrides.
"""

from fastapi import Depends, Request

from ..config import Settings, get_settings
from ..lib import Analytics, FeedService, SubscriptionStore, TMDBClient, WebhookIngestor
from ..lib.auth import get_subscription_store


def settings_dependency() -> Settings:
    return get_settings()


def get_tmdb_client(settings: Settings = Depends(settings_dependency)) -> TMDBClient:
    return TMDBClient(
        api_key=settings.tmdb_api_key,
        timeout=settings.tmdb_timeout_seconds,
        deadline_seconds=settings.tmdb_fetch_deadline_seconds,
        max_workers=settings.tmdb_max_workers,
    )


def get_feed_service(
    settings: Settings = Depends(settings_dependency),
    tmdb: TMDBClient = Depends(get_tmdb_client),
) -> FeedService:
    return FeedService(tmdb=tmdb, catalog_path=settings.catalog_path)


def get_analytics() -> Analytics:
    return Analytics()


def public_base_url(request: Request, settings: Settings) -> str:
    if settings.public_base_url:
        return settings.public_base_url
    return str(request.base_url).rstrip("/")


def get_webhook_ingestor(
    request: Request,
    settings: Settings = Depends(settings_dependency),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> WebhookIngestor:
    return WebhookIngestor(
        store=store,
        feed_base_url=public_base_url(request, settings),
        ultimate_threshold=settings.ultimate_coffee_threshold,
    )
