#!/usr/bin/env python3
"""
Smoke Test: TMDB Client

Validates:
1. A composed /movie/{id} response maps onto MovieDetails
2. Network and HTTP errors degrade to defaults instead of raising
3. fetch_many dedupes ids and keys results by id
4. Fetches still running at the deadline degrade to defaults
5. Upstream lists map to candidates; upstream failure is an empty list

Uses a fake requests session; nothing leaves the process.
"""

import sys
import threading
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import requests

from src.lib.tmdb import TMDBClient, parse_details
from src.models import FeedSort


ARRIVAL_RESPONSE = {
    "id": 329865,
    "title": "Arrival",
    "overview": "Taking place after alien crafts land around the world...",
    "tagline": "Why are they here?",
    "release_date": "2016-11-10",
    "runtime": 116,
    "vote_average": 7.6,
    "imdb_id": "tt2543164",
    "poster_path": "/x2FJsf1ElAgr63Y3PNPtJrcmpoe.jpg",
    "backdrop_path": "/yIZ1xendyqKvY3FGeeUYUd5X9Mm.jpg",
    "genres": [{"id": 18, "name": "Drama"}, {"id": 878, "name": "Science Fiction"}],
    "credits": {
        "cast": [{"name": f"Actor {i}"} for i in range(8)],
        "crew": [
            {"job": "Director", "name": "Denis Villeneuve"},
            {"job": "Writer", "name": "Eric Heisserer"},
        ],
    },
    "keywords": {"keywords": [{"name": "alien"}, {"name": "linguistics"}]},
    "recommendations": {"results": [{"id": 1, "title": "Sicario", "release_date": "2015-09-17", "vote_average": 7.4}]},
    "watch/providers": {"results": {"US": {"flatrate": [{"provider_name": "Paramount Plus"}]}}},
    "videos": {"results": [
        {"type": "Featurette", "site": "YouTube", "key": "nope"},
        {"type": "Trailer", "site": "YouTube", "key": "tFMo3UJ4B4g"},
    ]},
}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self.payload


class FakeSession:
    """Routes by URL suffix; unknown paths 404."""

    def __init__(self, routes=None, error=None, delay=None):
        self.routes = routes or {}
        self.error = error
        self.delay = delay
        self.calls = []
        self.release = threading.Event()

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.delay:
            self.release.wait(self.delay)
        if self.error:
            raise self.error
        for suffix, payload in self.routes.items():
            if url.endswith(suffix):
                return FakeResponse(payload)
        return FakeResponse({"status_message": "not found"}, status_code=404)


def test_parse_details():
    """Test: Sub-resources folded into one MovieDetails."""
    details = parse_details(ARRIVAL_RESPONSE)

    assert details.title == "Arrival"
    assert details.runtime_minutes == 116
    assert details.vote_average == 7.6
    assert details.genres == ["Drama", "Science Fiction"]
    assert details.directors == ["Denis Villeneuve"]
    assert len(details.cast) == 5
    assert details.keywords == ["alien", "linguistics"]
    assert details.streaming_providers == ["Paramount Plus"]
    assert details.recommendations[0].title == "Sicario"
    assert details.trailer_url == "https://www.youtube.com/watch?v=tFMo3UJ4B4g"
    assert details.poster_url == "https://image.tmdb.org/t/p/w500/x2FJsf1ElAgr63Y3PNPtJrcmpoe.jpg"
    assert details.imdb_id == "tt2543164"


def test_parse_sparse_response():
    """Test: Missing sub-resources become empty values."""
    details = parse_details({"title": "Bare"})

    assert details.overview == "Description not available."
    assert details.genres == []
    assert details.poster_url is None
    assert details.trailer_url is None


def test_fetch_details_sends_key_and_timeout():
    """Test: One request with api_key, append_to_response and the timeout."""
    session = FakeSession({"/movie/329865": ARRIVAL_RESPONSE})
    client = TMDBClient("key", timeout=2.5, session=session)

    result = client.fetch_details("329865")

    assert result.ok
    assert result.details.title == "Arrival"
    (url, params, timeout), = session.calls
    assert url == "https://api.themoviedb.org/3/movie/329865"
    assert params["api_key"] == "key"
    assert "credits" in params["append_to_response"]
    assert timeout == 2.5


def test_fetch_failures_degrade():
    """Test: Connection errors and 404s give ok=False with default details."""
    down = TMDBClient("key", session=FakeSession(error=requests.ConnectionError("refused")))
    result = down.fetch_details("1")
    assert not result.ok
    assert "refused" in result.error
    assert result.details.overview == "Description not available."

    missing = TMDBClient("key", session=FakeSession())
    result = missing.fetch_details("1")
    assert not result.ok
    assert result.details.vote_average == 0


def test_fetch_many_dedupes():
    """Test: Duplicate ids are fetched once; results keyed by id."""
    session = FakeSession({"/movie/329865": ARRIVAL_RESPONSE})
    client = TMDBClient("key", session=session)

    results = client.fetch_many(["329865", "329865", "404"])

    assert set(results) == {"329865", "404"}
    assert results["329865"].ok
    assert not results["404"].ok
    assert len(session.calls) == 2


def test_fetch_many_deadline():
    """Test: Slow fetches past the shared deadline degrade to defaults."""
    session = FakeSession({"/movie/1": ARRIVAL_RESPONSE}, delay=5)
    client = TMDBClient("key", deadline_seconds=0.1, max_workers=2, session=session)

    try:
        results = client.fetch_many(["1", "2"])
    finally:
        session.release.set()

    assert set(results) == {"1", "2"}
    assert all(not r.ok for r in results.values())
    assert results["1"].error == "deadline exceeded"


def test_list_candidates():
    """Test: Trending list maps to candidates in upstream order."""
    session = FakeSession({
        "/trending/movie/week": {"results": [
            {"id": 2, "title": "Second", "release_date": "2026-01-02"},
            {"id": 1, "title": "First", "release_date": ""},
            {"title": "No id"},
        ]},
    })
    client = TMDBClient("key", session=session)

    candidates = client.list_candidates(FeedSort.TRENDING)

    assert [c.external_id for c in candidates] == ["2", "1"]
    assert candidates[0].year == "2026"
    assert candidates[1].year == "Unknown Year"


def test_discover_with_genre():
    """Test: Genre names resolve to ids for the discover call."""
    session = FakeSession({
        "/genre/movie/list": {"genres": [{"id": 878, "name": "Science Fiction"}]},
        "/discover/movie": {"results": [{"id": 329865, "title": "Arrival", "release_date": "2016-11-10"}]},
    })
    client = TMDBClient("key", session=session)

    candidates = client.list_candidates(FeedSort.POPULAR, genre="science fiction", min_rating=7)

    assert [c.title for c in candidates] == ["Arrival"]
    discover_params = session.calls[-1][1]
    assert discover_params["with_genres"] == "878"
    assert discover_params["vote_average.gte"] == 7


def test_list_failure_is_empty():
    """Test: Upstream failure yields [] and catalog order is rejected."""
    client = TMDBClient("key", session=FakeSession(error=requests.Timeout("slow")))
    assert client.list_candidates(FeedSort.TOP_RATED) == []

    with pytest.raises(ValueError):
        client.list_candidates(FeedSort.CATALOG)


def main():
    print("\n" + "=" * 60)
    print("SMOKE TEST: TMDB Client")
    print("=" * 60)

    tests = [
        ("Parse Details", test_parse_details),
        ("Parse Sparse Response", test_parse_sparse_response),
        ("Fetch Sends Key + Timeout", test_fetch_details_sends_key_and_timeout),
        ("Fetch Failures Degrade", test_fetch_failures_degrade),
        ("Fetch Many Dedupes", test_fetch_many_dedupes),
        ("Fetch Many Deadline", test_fetch_many_deadline),
        ("List Candidates", test_list_candidates),
        ("Discover With Genre", test_discover_with_genre),
        ("List Failure Is Empty", test_list_failure_is_empty),
    ]

    results = []
    for name, test in tests:
        try:
            test()
            results.append((name, True))
        except AssertionError as e:
            print(f"  ✗ {name}: {e}")
            results.append((name, False))

    passed = sum(1 for _, r in results if r)
    for name, result in results:
        status = "✓ PASS" if result else "✗ FAIL"
        print(f"  {status}: {name}")

    print(f"\n  Result: {passed}/{len(results)} tests passed")
    return 0 if passed == len(results) else 1


if __name__ == "__main__":
    sys.exit(main())
