"""
Feed filter & selector.

Walks enriched candidates in their given order, drops the ones that fail
the genre / rating / age filters, and stops at the limit. Never re-sorts:
catalog order for the free feed, upstream order for paid lists.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pytz

from ..models import FeedFilters, FeedItem, FetchResult, MovieCandidate, MovieDetails, Plan
from .rss import release_year, to_feed_item


# plan -> (default count, max count)
PLAN_LIMITS = {
    Plan.FREE: (5, 5),
    Plan.PREMIUM_MONTHLY: (10, 25),
    Plan.PREMIUM_YEARLY: (10, 25),
    Plan.ULTIMATE_MONTHLY: (20, 50),
    Plan.ULTIMATE_YEARLY: (20, 50),
    Plan.GENRE_PACK: (10, 25),
    Plan.ONE_TIME_SUPPORT: (5, 5),
}


def resolve_limit(plan: Plan, requested: Optional[int]) -> int:
    """Requested count clamped into [1, plan max]; plan default when unset."""
    default, maximum = PLAN_LIMITS[plan]
    if requested is None:
        return default
    return max(1, min(requested, maximum))


def passes(
    candidate: MovieCandidate,
    details: MovieDetails,
    filters: FeedFilters,
    current_year: int,
) -> bool:
    if filters.genre:
        wanted = filters.genre.strip().lower()
        if not any(genre.lower() == wanted for genre in details.genres):
            return False

    if details.vote_average < filters.min_rating:
        return False

    if filters.max_age_years is not None:
        year = release_year(details.release_date) or release_year(candidate.release_date)
        if year is not None and current_year - year > filters.max_age_years:
            return False

    return True


def select(
    candidates: Iterable[MovieCandidate],
    details_by_id: Dict[str, FetchResult],
    filters: FeedFilters,
    now: Optional[datetime] = None,
) -> List[FeedItem]:
    """
    Apply filters in order and truncate to `filters.limit`.

    Candidates missing from `details_by_id` are treated as failed fetches
    (neutral defaults), same as an explicit FetchResult with ok=False.
    """
    current_year = (now or datetime.now(pytz.UTC)).year
    selected: List[FeedItem] = []

    for candidate in candidates:
        if len(selected) >= filters.limit:
            break

        result = details_by_id.get(candidate.external_id)
        details = result.details if result is not None else MovieDetails()

        if passes(candidate, details, filters, current_year):
            selected.append(to_feed_item(candidate, details))

    return selected
