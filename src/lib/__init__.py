from .analytics import Analytics
from .auth import TokenError, get_subscription_store, verify_feed_token
from .catalog import CatalogUnavailable, load_candidates
from .feeds import FeedService
from .subscriptions import (
    StoreError,
    StoreWriteError,
    SubscriptionNotFound,
    SubscriptionStore,
)
from .tmdb import TMDBClient
from .webhooks import MalformedWebhook, WebhookAuthError, WebhookIngestor

__all__ = [
    "Analytics",
    "TokenError",
    "get_subscription_store",
    "verify_feed_token",
    "CatalogUnavailable",
    "load_candidates",
    "FeedService",
    "StoreError",
    "StoreWriteError",
    "SubscriptionNotFound",
    "SubscriptionStore",
    "TMDBClient",
    "MalformedWebhook",
    "WebhookAuthError",
    "WebhookIngestor",
]
