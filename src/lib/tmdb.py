"""
TMDB metadata client.

One request per movie, with credits, keywords, recommendations,
watch providers and videos composed into the same call.
A failed fetch never aborts a feed: callers get a FetchResult whose
details hold neutral defaults and whose error says what went wrong.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pytz
import requests

from ..models import FeedSort, FetchResult, MovieCandidate, MovieDetails, MovieSummary
from ..models.schemas import DEFAULT_OVERVIEW, UNKNOWN_RELEASE, UNKNOWN_YEAR


logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w1280"
APPEND_TO_RESPONSE = "credits,keywords,recommendations,watch/providers,videos"

CAST_LIMIT = 5
RECOMMENDATION_LIMIT = 5
PROVIDER_REGION = "US"
MIN_VOTE_COUNT = 100


class TMDBClient:
    """Thin wrapper over the TMDB v3 REST API."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 5.0,
        deadline_seconds: float = 10.0,
        max_workers: int = 8,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.deadline_seconds = deadline_seconds
        self.max_workers = max(1, max_workers)
        self.session = session or requests.Session()

    def _get(self, endpoint: str, **params) -> dict:
        """GET an endpoint and return the decoded JSON body."""
        query = {"api_key": self.api_key, "language": "en-US", **params}
        response = self.session.get(
            f"{TMDB_API_BASE_URL}{endpoint}", params=query, timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected TMDB response for {endpoint}")
        return data

    # =========================================================================
    # Details
    # =========================================================================

    def fetch_details(self, external_id: str) -> FetchResult:
        """
        Fetch metadata for one movie. Single attempt, no retry.

        Returns a FetchResult; on any failure `ok` is False and the details
        are the neutral defaults.
        """
        try:
            data = self._get(f"/movie/{external_id}", append_to_response=APPEND_TO_RESPONSE)
            details = parse_details(data)
        except (requests.RequestException, ValueError, TypeError, AttributeError) as e:
            logger.warning("TMDB fetch failed for %s: %s", external_id, e)
            return FetchResult(external_id=external_id, ok=False, error=str(e))

        return FetchResult(external_id=external_id, ok=True, details=details)

    def fetch_many(self, external_ids: Iterable[str]) -> Dict[str, FetchResult]:
        """
        Fetch details for several movies concurrently.

        At most `max_workers` requests are in flight. Anything still running
        when the shared deadline passes degrades to defaults. Results are
        keyed by id, so completion order does not matter.
        """
        unique_ids = list(dict.fromkeys(external_ids))
        results: Dict[str, FetchResult] = {}
        if not unique_ids:
            return results

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(unique_ids)))
        try:
            futures = {
                executor.submit(self.fetch_details, external_id): external_id
                for external_id in unique_ids
            }
            done, pending = wait(futures, timeout=self.deadline_seconds)

            for future in done:
                result = future.result()
                results[result.external_id] = result

            for future in pending:
                future.cancel()
                external_id = futures[future]
                logger.warning("TMDB fetch for %s missed the %.1fs deadline", external_id, self.deadline_seconds)
                results[external_id] = FetchResult(
                    external_id=external_id, ok=False, error="deadline exceeded"
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    # =========================================================================
    # Lists (paid tiers)
    # =========================================================================

    def fetch_genres(self) -> List[dict]:
        """All movie genres as [{"id": .., "name": ..}]."""
        return self._get("/genre/movie/list").get("genres") or []

    def resolve_genre_id(self, genre: str) -> Optional[str]:
        """Genre name (case-insensitive) or numeric id -> TMDB genre id."""
        if genre.isdigit():
            return genre
        for entry in self.fetch_genres():
            if str(entry.get("name", "")).lower() == genre.lower():
                return str(entry["id"])
        return None

    def list_candidates(
        self,
        sort: FeedSort,
        genre: Optional[str] = None,
        min_rating: float = 0,
        max_age: Optional[int] = None,
    ) -> List[MovieCandidate]:
        """
        Upstream-ordered candidates for the popular/trending/top-rated feeds.

        Upstream failure yields an empty list; the feed then renders its
        placeholder item.
        """
        if sort == FeedSort.CATALOG:
            raise ValueError("Catalog order is not an upstream list")

        try:
            if sort == FeedSort.TRENDING:
                data = self._get("/trending/movie/week")
            elif sort == FeedSort.TOP_RATED:
                data = self._get("/movie/top_rated")
            else:
                params = {
                    "sort_by": "popularity.desc",
                    "vote_average.gte": min_rating,
                    "vote_count.gte": MIN_VOTE_COUNT,
                }
                if genre:
                    genre_id = self.resolve_genre_id(genre)
                    if genre_id is None:
                        logger.warning("Unknown genre for discover: %s", genre)
                        return []
                    params["with_genres"] = genre_id
                if max_age is not None:
                    params["primary_release_date.gte"] = f"{datetime.now(pytz.UTC).year - max_age}-01-01"
                data = self._get("/discover/movie", **params)
        except (requests.RequestException, ValueError) as e:
            logger.warning("TMDB list %s failed: %s", sort.value, e)
            return []

        return [
            candidate
            for candidate in (candidate_from_result(entry) for entry in data.get("results") or [])
            if candidate is not None
        ]


# =============================================================================
# Parsing
# =============================================================================

def candidate_from_result(entry: dict) -> Optional[MovieCandidate]:
    """Turn a list-endpoint entry into a catalog-shaped candidate."""
    movie_id = entry.get("id")
    title = entry.get("title")
    if not movie_id or not title:
        return None

    release_date = entry.get("release_date") or ""
    return MovieCandidate(
        title=title,
        external_id=str(movie_id),
        year=release_date[:4] or UNKNOWN_YEAR,
        release_date=release_date or UNKNOWN_RELEASE,
    )


def parse_details(data: dict) -> MovieDetails:
    """
    Map a composed /movie/{id} response onto MovieDetails.
    Missing sub-resources fall back to empty values.
    """
    credits = data.get("credits") or {}
    directors = [
        person["name"]
        for person in credits.get("crew") or []
        if person.get("job") == "Director" and person.get("name")
    ]
    cast = [
        actor["name"]
        for actor in (credits.get("cast") or [])[:CAST_LIMIT]
        if actor.get("name")
    ]

    genres = [genre["name"] for genre in data.get("genres") or [] if genre.get("name")]
    keywords = [
        keyword["name"]
        for keyword in (data.get("keywords") or {}).get("keywords") or []
        if keyword.get("name")
    ]

    region = ((data.get("watch/providers") or {}).get("results") or {}).get(PROVIDER_REGION) or {}
    providers = [
        provider["provider_name"]
        for provider in region.get("flatrate") or []
        if provider.get("provider_name")
    ]

    recommendations = [
        MovieSummary(
            id=rec.get("id"),
            title=rec.get("title") or "",
            release_date=rec.get("release_date") or None,
            vote_average=rec.get("vote_average"),
        )
        for rec in ((data.get("recommendations") or {}).get("results") or [])[:RECOMMENDATION_LIMIT]
    ]

    trailer_url = None
    for video in (data.get("videos") or {}).get("results") or []:
        if video.get("type") == "Trailer" and video.get("site") == "YouTube" and video.get("key"):
            trailer_url = f"https://www.youtube.com/watch?v={video['key']}"
            break

    poster_path = data.get("poster_path")
    backdrop_path = data.get("backdrop_path")

    return MovieDetails(
        title=data.get("title"),
        overview=data.get("overview") or DEFAULT_OVERVIEW,
        tagline=data.get("tagline") or None,
        release_date=data.get("release_date") or None,
        runtime_minutes=data.get("runtime") or None,
        vote_average=float(data.get("vote_average") or 0),
        genres=genres,
        directors=directors,
        cast=cast,
        keywords=keywords,
        poster_url=f"{POSTER_BASE_URL}{poster_path}" if poster_path else None,
        backdrop_url=f"{BACKDROP_BASE_URL}{backdrop_path}" if backdrop_path else None,
        streaming_providers=providers,
        recommendations=recommendations,
        trailer_url=trailer_url,
        imdb_id=data.get("imdb_id") or None,
    )
