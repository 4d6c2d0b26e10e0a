"""
Configuration loader for Daily Movie Discovery.

Reads settings from the environment (a local .env is loaded by the app)
and provides typed access to them. Missing credentials fail at startup,
not on the first request that needs them.
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


PROJECT_ROOT = Path(__file__).resolve().parent.parent

REQUIRED_VARS = (
    "TMDB_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
    "WEBHOOK_SECRET",
)


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    tmdb_api_key: str
    supabase_url: str
    supabase_service_key: str
    webhook_secret: str
    stripe_webhook_secret: Optional[str] = None
    catalog_path: Path = PROJECT_ROOT / "movies" / "daily_discovery.csv"
    public_base_url: Optional[str] = None
    tmdb_timeout_seconds: float = 5.0
    tmdb_fetch_deadline_seconds: float = 10.0
    tmdb_max_workers: int = 8
    webhook_tolerance_seconds: int = 300
    ultimate_coffee_threshold: int = 3
    app_env: str = "production"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Raises:
        ConfigError: If a required variable is unset or a number is malformed.
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_VARS if not env.get(name)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    catalog_path = Path(env.get("CATALOG_PATH", "movies/daily_discovery.csv"))
    if not catalog_path.is_absolute():
        catalog_path = PROJECT_ROOT / catalog_path

    try:
        return Settings(
            tmdb_api_key=env["TMDB_API_KEY"],
            supabase_url=env["SUPABASE_URL"],
            supabase_service_key=env["SUPABASE_SERVICE_KEY"],
            webhook_secret=env["WEBHOOK_SECRET"],
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET") or None,
            catalog_path=catalog_path,
            public_base_url=(env.get("PUBLIC_BASE_URL") or "").rstrip("/") or None,
            tmdb_timeout_seconds=float(env.get("TMDB_TIMEOUT_SECONDS", "5")),
            tmdb_fetch_deadline_seconds=float(env.get("TMDB_FETCH_DEADLINE_SECONDS", "10")),
            tmdb_max_workers=int(env.get("TMDB_MAX_WORKERS", "8")),
            webhook_tolerance_seconds=int(env.get("WEBHOOK_TOLERANCE_SECONDS", "300")),
            ultimate_coffee_threshold=int(env.get("ULTIMATE_COFFEE_THRESHOLD", "3")),
            app_env=env.get("APP_ENV", "production"),
        )
    except ValueError as e:
        raise ConfigError(f"Invalid numeric setting: {e}") from e


# Singleton instance - load once, use everywhere
_settings: Optional[Settings] = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get the global settings instance (lazy-loaded, first caller wins)."""
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = load_settings()
    return _settings
