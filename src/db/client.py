"""
Supabase client configuration.
One service-role client per process, built on first use.

Only server-side code touches the store (webhooks, token checks,
analytics), so there is no anon/RLS client.
"""

import threading
from typing import Optional

from supabase import create_client, Client

from ..config import get_settings


_admin_client: Optional[Client] = None
_admin_lock = threading.Lock()


def get_admin_client() -> Client:
    """
    Get Supabase client with service role key (bypasses RLS).

    Built lazily and reused across requests in a warm instance.
    Concurrent first callers block on the lock so only one client is created.
    """
    global _admin_client
    if _admin_client is None:
        with _admin_lock:
            if _admin_client is None:
                settings = get_settings()
                _admin_client = create_client(
                    settings.supabase_url, settings.supabase_service_key
                )
    return _admin_client


def reset_admin_client() -> None:
    """Drop the cached client (tests and credential rotation)."""
    global _admin_client
    with _admin_lock:
        _admin_client = None
