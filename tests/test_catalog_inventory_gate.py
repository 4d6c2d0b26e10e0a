#!/usr/bin/env python3
"""
Catalog Inventory Gate Test

Validates that the shipped catalog CSV meets minimum inventory requirements
and data integrity invariants before allowing deploys/merges.

This gate prevents:
- Deployments with too few picks to fill a premium feed
- Rows the loader would silently drop (no title / no tmdb_id)
- Duplicate or non-numeric TMDB ids
- Years and release dates the feed cannot date

Configuration via environment variables:
- MIN_CATALOG_MOVIES: Minimum usable rows (default: 10)
- CATALOG_PATH: Catalog to check (default: movies/daily_discovery.csv)

Usage:
    # Run with pytest
    pytest tests/test_catalog_inventory_gate.py -v

    # Run standalone
    python tests/test_catalog_inventory_gate.py

    # With custom thresholds
    MIN_CATALOG_MOVIES=25 pytest tests/test_catalog_inventory_gate.py -v
"""

import csv
import os
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.lib.catalog import load_candidates
from src.lib.rss import parse_release_date
from src.models.schemas import UNKNOWN_RELEASE, UNKNOWN_YEAR


REQUIRED_COLUMNS = ("title", "year", "imdb_id", "tmdb_id", "released", "url")


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class InventoryConfig:
    """Configuration for inventory gate thresholds."""
    min_movies: int
    catalog_path: Path

    @classmethod
    def from_env(cls) -> "InventoryConfig":
        """Load configuration from environment variables with defaults."""
        path = Path(os.environ.get("CATALOG_PATH", "movies/daily_discovery.csv"))
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return cls(
            min_movies=int(os.environ.get("MIN_CATALOG_MOVIES", "10")),
            catalog_path=path,
        )


# =============================================================================
# Catalog Checks
# =============================================================================

def read_raw_rows(path: Path) -> List[dict]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return list(csv.DictReader(f))


def get_missing_columns(path: Path) -> List[str]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        header = next(csv.reader(f), [])
    return [column for column in REQUIRED_COLUMNS if column not in header]


def get_dropped_row_count(path: Path) -> int:
    """Rows the loader skips."""
    return len(read_raw_rows(path)) - len(load_candidates(path))


def get_duplicate_ids(path: Path) -> List[str]:
    counts = Counter(candidate.external_id for candidate in load_candidates(path))
    return sorted(tmdb_id for tmdb_id, n in counts.items() if n > 1)


def get_non_numeric_ids(path: Path) -> List[str]:
    return [c.external_id for c in load_candidates(path) if not c.external_id.isdigit()]


def get_undated_titles(path: Path) -> List[str]:
    """Titles with no year or a release date that does not parse."""
    undated = []
    for candidate in load_candidates(path):
        if candidate.year == UNKNOWN_YEAR or not candidate.year.isdigit():
            undated.append(candidate.title)
        elif candidate.release_date == UNKNOWN_RELEASE or parse_release_date(candidate.release_date) is None:
            undated.append(candidate.title)
    return undated


# =============================================================================
# Pytest Fixtures
# =============================================================================

@pytest.fixture(scope="module")
def config():
    """Provide inventory configuration."""
    return InventoryConfig.from_env()


# =============================================================================
# Test Cases
# =============================================================================

class TestCatalogInventoryGate:
    """Catalog inventory validation tests."""

    def test_catalog_exists(self, config):
        assert config.catalog_path.is_file(), (
            f"INVENTORY GATE FAILED: Catalog not found\n"
            f"  Path: {config.catalog_path}\n"
            f"  Action: Add the CSV or set CATALOG_PATH"
        )

    def test_header_has_required_columns(self, config):
        missing = get_missing_columns(config.catalog_path)

        assert not missing, (
            f"INVENTORY GATE FAILED: Missing columns {missing}\n"
            f"  Required: {list(REQUIRED_COLUMNS)}"
        )

    def test_movie_count(self, config):
        """Test that usable rows meet minimum threshold."""
        total = len(load_candidates(config.catalog_path))

        assert total >= config.min_movies, (
            f"INVENTORY GATE FAILED: Catalog below minimum\n"
            f"  Actual: {total}\n"
            f"  Required: {config.min_movies}\n"
            f"  Action: Add more picks or adjust MIN_CATALOG_MOVIES"
        )

    def test_no_dropped_rows(self, config):
        dropped = get_dropped_row_count(config.catalog_path)

        assert dropped == 0, (
            f"INVENTORY GATE FAILED: {dropped} rows lack a title or tmdb_id\n"
            f"  Action: Fix or remove those rows"
        )

    def test_no_duplicate_ids(self, config):
        duplicates = get_duplicate_ids(config.catalog_path)

        assert not duplicates, (
            f"INVENTORY GATE FAILED: Duplicate tmdb_id values {duplicates}"
        )

    def test_ids_are_numeric(self, config):
        bad = get_non_numeric_ids(config.catalog_path)

        assert not bad, (
            f"INVENTORY GATE FAILED: Non-numeric tmdb_id values {bad}"
        )

    def test_every_row_is_dated(self, config):
        undated = get_undated_titles(config.catalog_path)

        assert not undated, (
            f"INVENTORY GATE FAILED: Missing or unparseable dates for {undated}\n"
            f"  Action: Fill in year and released (YYYY-MM-DD)"
        )


# =============================================================================
# Standalone Runner (for non-pytest execution)
# =============================================================================

def run_standalone() -> int:
    """
    Run inventory gate as standalone script.

    Returns:
        0 if all checks pass, 1 if any fail
    """
    print("\n" + "=" * 70)
    print("CATALOG INVENTORY GATE")
    print("=" * 70)

    config = InventoryConfig.from_env()
    print("\nConfiguration:")
    print(f"  MIN_CATALOG_MOVIES: {config.min_movies}")
    print(f"  CATALOG_PATH: {config.catalog_path}")

    if not config.catalog_path.is_file():
        print(f"\n✗ FAILED: Catalog not found at {config.catalog_path}")
        return 1

    path = config.catalog_path
    total = len(load_candidates(path))
    checks = [
        ("Required Columns", not get_missing_columns(path), f"missing: {get_missing_columns(path)}"),
        ("Movie Count", total >= config.min_movies, f"{total} movies (min: {config.min_movies})"),
        ("No Dropped Rows", get_dropped_row_count(path) == 0, f"{get_dropped_row_count(path)} dropped"),
        ("No Duplicate IDs", not get_duplicate_ids(path), f"duplicates: {get_duplicate_ids(path)}"),
        ("Numeric IDs", not get_non_numeric_ids(path), f"bad: {get_non_numeric_ids(path)}"),
        ("Dated Rows", not get_undated_titles(path), f"undated: {get_undated_titles(path)}"),
    ]

    results = []
    for name, passed, detail in checks:
        print("\n" + "-" * 50)
        print(f"TEST: {name}")
        status = "✓ PASS" if passed else "✗ FAIL"
        print(f"  {status}: {detail}")
        results.append((name, passed))

    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)

    passed_count = sum(1 for _, p in results if p)
    failed_count = sum(1 for _, p in results if not p)

    print(f"\n  Passed: {passed_count}")
    print(f"  Failed: {failed_count}")

    if failed_count == 0:
        print("\n" + "=" * 70)
        print("✓ CATALOG INVENTORY GATE: PASSED")
        print("=" * 70)
        return 0

    print("\n" + "=" * 70)
    print("✗ CATALOG INVENTORY GATE: FAILED")
    print("  Deployment blocked until issues are resolved.")
    print("=" * 70)
    return 1


if __name__ == "__main__":
    sys.exit(run_standalone())
