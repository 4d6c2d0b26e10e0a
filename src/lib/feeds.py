"""
Feed generation service.
Core flow shared by the free and token-gated feeds:

1. Load candidates (catalog CSV, or an upstream TMDB list for paid sorts)
2. Fetch metadata for all of them (bounded fan-out, shared deadline)
3. Filter + truncate in candidate order
4. Render RSS (or the text digest)
"""

import logging
from pathlib import Path
from typing import List

from ..models import ChannelMeta, FeedFilters, FeedItem, FeedSort, MovieCandidate
from .catalog import load_candidates
from .rss import render
from .selector import select
from .tmdb import TMDBClient


logger = logging.getLogger(__name__)


class FeedService:
    """Builds feeds from the catalog and TMDB."""

    def __init__(self, tmdb: TMDBClient, catalog_path: Path):
        self.tmdb = tmdb
        self.catalog_path = Path(catalog_path)

    def load_candidates(self, filters: FeedFilters, sort: FeedSort = FeedSort.CATALOG) -> List[MovieCandidate]:
        """
        Raises:
            CatalogUnavailable: For catalog order when the CSV is missing.
        """
        if sort == FeedSort.CATALOG:
            return load_candidates(self.catalog_path)
        return self.tmdb.list_candidates(
            sort,
            genre=filters.genre,
            min_rating=filters.min_rating,
            max_age=filters.max_age_years,
        )

    def build_items(self, filters: FeedFilters, sort: FeedSort = FeedSort.CATALOG) -> List[FeedItem]:
        candidates = self.load_candidates(filters, sort)
        details = self.tmdb.fetch_many(candidate.external_id for candidate in candidates)

        failed = sum(1 for result in details.values() if not result.ok)
        if failed:
            logger.warning("%d of %d metadata fetches degraded to defaults", failed, len(details))

        return select(candidates, details, filters)

    def build_feed(self, filters: FeedFilters, channel_meta: ChannelMeta, sort: FeedSort = FeedSort.CATALOG):
        """Returns (xml, items)."""
        items = self.build_items(filters, sort)
        return render(items, channel_meta), items
