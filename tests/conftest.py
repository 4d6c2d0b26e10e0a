"""Shared pytest fixtures. The fakes themselves live in fakes.py."""

import pytest

import src.config as config
from src.db import reset_admin_client


TEST_ENV = {
    "TMDB_API_KEY": "test-tmdb-key",
    "SUPABASE_URL": "https://testproject.supabase.co",
    "SUPABASE_SERVICE_KEY": "test-service-key",
    "WEBHOOK_SECRET": "test-webhook-secret",
    "STRIPE_WEBHOOK_SECRET": "whsec_test",
}


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Known env for every test; no settings or clients leak between tests."""
    for name, value in TEST_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setattr(config, "_settings", None)
    reset_admin_client()
    yield
    reset_admin_client()
