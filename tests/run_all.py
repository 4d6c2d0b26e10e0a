#!/usr/bin/env python3
"""
Run all smoke tests in order.

Usage:
    python tests/run_all.py

The API and config tests need pytest fixtures; they run through pytest.
"""

import subprocess
import sys
from pathlib import Path


def run_test(name: str, command: list) -> bool:
    """Run a test command and return success status."""
    print(f"\n{'='*70}")
    print(f"RUNNING: {name}")
    print(f"{'='*70}")

    result = subprocess.run(command, capture_output=False)

    return result.returncode == 0


def main():
    print("\n" + "=" * 70)
    print("DAILY MOVIE DISCOVERY - SMOKE TEST SUITE")
    print("=" * 70)

    tests_dir = Path(__file__).parent
    scripts = [
        ("A) Catalog Loading", tests_dir / "test_catalog.py"),
        ("B) Feed Selection", tests_dir / "test_selector.py"),
        ("C) RSS Assembly", tests_dir / "test_rss.py"),
        ("D) TMDB Client", tests_dir / "test_tmdb.py"),
        ("E) Subscription Store", tests_dir / "test_subscriptions.py"),
        ("F) Webhook Ingestion", tests_dir / "test_webhooks.py"),
        ("G) Catalog Inventory Gate", tests_dir / "test_catalog_inventory_gate.py"),
    ]
    pytest_modules = [
        ("H) Configuration", tests_dir / "test_config.py"),
        ("I) End-to-end API", tests_dir / "test_api.py"),
    ]

    commands = [(name, path, [sys.executable, str(path)]) for name, path in scripts]
    commands += [
        (name, path, [sys.executable, "-m", "pytest", str(path), "-q"])
        for name, path in pytest_modules
    ]

    results = []
    for name, path, command in commands:
        if path.exists():
            passed = run_test(name, command)
            results.append((name, passed))
        else:
            print(f"⚠ Skipping {name}: {path} not found")
            results.append((name, None))

    print("\n" + "=" * 70)
    print("FINAL SUMMARY")
    print("=" * 70)

    labels = {True: "✓ PASS", False: "✗ FAIL", None: "⚠ SKIP"}
    for name, passed in results:
        print(f"  {labels[passed]}: {name}")

    outcomes = [passed for _, passed in results]
    print(f"\n  Passed: {outcomes.count(True)}  Failed: {outcomes.count(False)}  Skipped: {outcomes.count(None)}")

    if False in outcomes:
        print("\nSOME TESTS FAILED - SEE ABOVE FOR DETAILS")
        return 1
    print("\nALL SMOKE TESTS PASSED")
    return 0


if __name__ == "__main__":
    sys.exit(main())
