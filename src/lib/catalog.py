"""
Movie catalog reader.
The curated picks live in a CSV that is re-read on every request.

CSV columns: title, year, imdb_id, tmdb_id, released, url
Rows without a title or a tmdb_id are dropped.
"""

import csv
import logging
from pathlib import Path
from typing import List, Union

from ..models import MovieCandidate
from ..models.schemas import UNKNOWN_RELEASE, UNKNOWN_YEAR


logger = logging.getLogger(__name__)


class CatalogUnavailable(Exception):
    """The catalog source does not exist."""


def _clean(value) -> str:
    return (value or "").strip()


def load_candidates(source: Union[str, Path]) -> List[MovieCandidate]:
    """
    Load candidate movies in catalog order.

    Raises:
        CatalogUnavailable: If the file is missing.
    """
    path = Path(source)
    if not path.is_file():
        raise CatalogUnavailable(f"Catalog not found: {path}")

    candidates = []
    skipped = 0

    with open(path, newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            title = _clean(row.get("title"))
            tmdb_id = _clean(row.get("tmdb_id"))

            if not title or not tmdb_id:
                skipped += 1
                continue

            candidates.append(MovieCandidate(
                title=title,
                external_id=tmdb_id,
                year=_clean(row.get("year")) or UNKNOWN_YEAR,
                alternate_id=_clean(row.get("imdb_id")) or None,
                release_date=_clean(row.get("released")) or UNKNOWN_RELEASE,
                direct_url=_clean(row.get("url")) or None,
            ))

    if skipped:
        logger.info("Skipped %d catalog rows without title/tmdb_id in %s", skipped, path)

    return candidates
