#!/usr/bin/env python3
"""
Set up the database schema.
Run this once to create the tables, indexes and RPC functions.

Usage:
    python scripts/setup_database.py           # print SQL for the Supabase editor
    python scripts/setup_database.py --apply   # apply over a direct Postgres connection

Note: --apply needs DATABASE_URL (or SUPABASE_DB_URL). The webhook writes
go through record_subscription_change, so the functions must exist before
the service takes traffic.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv


def print_schema():
    """Print the schema SQL for manual execution."""
    from src.db.schema import SCHEMA_SQL, INDEXES_SQL, FUNCTIONS_SQL

    print("=" * 60)
    print("DATABASE SCHEMA")
    print("=" * 60)
    print("\nCopy and paste this SQL into Supabase SQL Editor:\n")
    print("-" * 60)
    print(SCHEMA_SQL)
    print("-" * 60)
    print("\nINDEXES:")
    print("-" * 60)
    print(INDEXES_SQL)
    print("-" * 60)
    print("\nFUNCTIONS:")
    print("-" * 60)
    print(FUNCTIONS_SQL)
    print("-" * 60)


def apply():
    """Apply the schema directly and report which tables were missing."""
    import psycopg2

    from src.db import apply_schema, get_postgres_connection, missing_tables

    try:
        conn = get_postgres_connection()
    except (ValueError, psycopg2.Error) as e:
        print(f"✗ {e}")
        return 1

    try:
        before = missing_tables(conn)
        if before:
            print(f"Missing tables: {', '.join(before)}")
        else:
            print("All tables present; refreshing indexes and functions")

        apply_schema(conn)

        after = missing_tables(conn)
        if after:
            print(f"✗ Still missing after apply: {', '.join(after)}")
            return 1
    finally:
        conn.close()

    print("✓ Schema applied")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Database setup")
    parser.add_argument("--apply", action="store_true", help="Apply schema over DATABASE_URL")
    args = parser.parse_args()

    load_dotenv()

    print("Daily Movie Discovery - Database Setup")
    print("=" * 40)
    print()

    if args.apply:
        sys.exit(apply())

    print("This script outputs the SQL schema for your database.")
    print("For safety, please run the SQL manually in Supabase,")
    print("or re-run with --apply against a direct connection.")
    print()

    print_schema()

    print()
    print("Next steps:")
    print("1. Go to your Supabase project dashboard")
    print("2. Open the SQL Editor")
    print("3. Paste the schema SQL above and run it")
    print("4. Then run: python scripts/admin.py stats")


if __name__ == "__main__":
    main()
