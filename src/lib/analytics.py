"""
Feed analytics.
Best-effort: a failed analytics write is logged and the feed still ships.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..db import get_admin_client


logger = logging.getLogger(__name__)


class Analytics:
    """Records feed accesses and per-movie selection counts."""

    def __init__(self, client=None):
        self.client = client if client is not None else get_admin_client()

    def track_feed_access(self, feed_type: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        try:
            self.client.table("analytics").insert({
                "type": "feed_access",
                "feed_type": feed_type,
                "metadata": metadata or {},
            }).execute()
        except Exception as e:
            logger.warning("Could not record feed access for %s: %s", feed_type, e)
            return False
        return True

    def track_movie_selection(self, tmdb_id: str, feed_type: str) -> bool:
        """Log the selection and bump movie_stats.selection_count atomically."""
        try:
            self.client.table("analytics").insert({
                "type": "movie_selection",
                "feed_type": feed_type,
                "tmdb_id": tmdb_id,
            }).execute()
            # Increment happens inside Postgres, so concurrent feeds don't lose counts
            self.client.rpc("increment_movie_selection", {"p_tmdb_id": tmdb_id}).execute()
        except Exception as e:
            logger.warning("Could not record selection of %s: %s", tmdb_id, e)
            return False
        return True

    def track_feed(self, feed_type: str, tmdb_ids: Iterable[str], metadata: Optional[Dict[str, Any]] = None) -> None:
        """One access event plus one selection per movie served."""
        if self.track_feed_access(feed_type, metadata):
            for tmdb_id in tmdb_ids:
                self.track_movie_selection(tmdb_id, feed_type)

    def get_top_selected_movies(self, limit: int = 10) -> List[dict]:
        result = (
            self.client.table("movie_stats")
            .select("*")
            .order("selection_count", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data or []
