#!/usr/bin/env python3
"""
Admin utilities for managing Daily Movie Discovery.

Commands:
    python scripts/admin.py stats                - Show database stats
    python scripts/admin.py subscriptions EMAIL  - List subscriptions for an email
    python scripts/admin.py grant EMAIL PLAN     - Create a subscription by hand (comps, support)
    python scripts/admin.py cancel ID            - Cancel a subscription
    python scripts/admin.py top                  - Most selected movies
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv


ADMIN_SOURCE = "admin"


def cmd_stats(client, args):
    """Show database statistics."""
    print("\n📊 Database Statistics")
    print("=" * 40)

    users = client.table("users").select("email", count="exact").execute()
    print(f"Users: {users.count or 0}")

    active_users = (
        client.table("users")
        .select("email", count="exact")
        .eq("has_active_subscription", True)
        .execute()
    )
    print(f"Users with an active subscription: {active_users.count or 0}")

    subs = client.table("subscriptions").select("id", count="exact").execute()
    active_subs = (
        client.table("subscriptions")
        .select("id", count="exact")
        .eq("status", "active")
        .execute()
    )
    print(f"Subscriptions: {subs.count or 0} ({active_subs.count or 0} active)")

    events = client.table("analytics").select("id", count="exact").execute()
    print(f"Analytics events: {events.count or 0}")


def cmd_subscriptions(client, args):
    """List subscriptions for one email."""
    from src.lib import SubscriptionStore

    store = SubscriptionStore(client=client)
    subs = store.get_user_subscriptions(args.email)

    print(f"\n🎟  Subscriptions for {args.email}")
    print("=" * 60)
    if not subs:
        print("  (none)")
        return

    now = store.clock()
    for sub in subs:
        state = "valid" if sub.is_valid_at(now) else sub.status.value
        print(
            f"  [{state:9}] {sub.plan_id.value:18} {sub.id} "
            f"(expires {sub.expires_at:%Y-%m-%d})"
        )


def cmd_grant(client, args):
    """Create a subscription without a payment event."""
    from src.lib import SubscriptionStore, StoreWriteError

    store = SubscriptionStore(client=client)
    metadata = {"genre": args.genre} if args.genre else {}

    try:
        grant = store.create_subscription(args.email, args.plan, ADMIN_SOURCE, metadata=metadata)
    except (ValueError, StoreWriteError) as e:
        print(f"✗ {e}")
        return

    print(f"✓ Created {grant.id}")
    print(f"  Token:   {grant.token}")
    print(f"  Expires: {grant.expires_at:%Y-%m-%d}")


def cmd_cancel(client, args):
    """Cancel a subscription by ID."""
    from src.lib import SubscriptionNotFound, SubscriptionStore, StoreWriteError

    store = SubscriptionStore(client=client)
    try:
        store.cancel_subscription(args.id)
    except SubscriptionNotFound:
        print(f"✗ Subscription {args.id} not found")
        return
    except StoreWriteError as e:
        print(f"✗ {e}")
        return

    print(f"✓ Subscription {args.id} cancelled")


def cmd_top(client, args):
    """Show the most frequently selected movies."""
    from src.lib import Analytics

    print("\n🎬 Most Selected Movies")
    print("=" * 40)

    for row in Analytics(client=client).get_top_selected_movies(args.limit):
        print(f"  {row.get('tmdb_id', '?'):>8}  {row.get('selection_count', 0):5}")


def main():
    parser = argparse.ArgumentParser(description="Admin utilities")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Stats command
    subparsers.add_parser("stats", help="Show database statistics")

    # Subscriptions command
    subs_parser = subparsers.add_parser("subscriptions", help="List subscriptions for an email")
    subs_parser.add_argument("email", help="Subscriber email")

    # Grant command
    grant_parser = subparsers.add_parser("grant", help="Create a subscription by hand")
    grant_parser.add_argument("email", help="Subscriber email")
    grant_parser.add_argument("plan", help="Plan id, e.g. premium-monthly")
    grant_parser.add_argument("--genre", help="Genre for genre-pack grants")

    # Cancel command
    cancel_parser = subparsers.add_parser("cancel", help="Cancel a subscription")
    cancel_parser.add_argument("id", help="Subscription ID")

    # Top command
    top_parser = subparsers.add_parser("top", help="Most selected movies")
    top_parser.add_argument("--limit", type=int, default=10)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    load_dotenv()

    from src.db import get_admin_client

    client = get_admin_client()

    commands = {
        "stats": cmd_stats,
        "subscriptions": cmd_subscriptions,
        "grant": cmd_grant,
        "cancel": cmd_cancel,
        "top": cmd_top,
    }

    commands[args.command](client, args)


if __name__ == "__main__":
    main()
