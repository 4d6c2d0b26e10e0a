"""
Feed token authentication.
The token in the URL is the only credential; no accounts, no sessions.
"""

from fastapi import Depends, status

from ..models import Subscription
from .subscriptions import SubscriptionStore


class TokenError(Exception):
    """Rendered as {"error": message} with the given status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def get_subscription_store() -> SubscriptionStore:
    return SubscriptionStore()


async def verify_feed_token(
    token: str,
    store: SubscriptionStore = Depends(get_subscription_store),
) -> Subscription:
    """
    Resolve a feed token to its subscription.

    401 if nobody owns the token, 403 if it is cancelled or expired.
    """
    subscription = store.validate_token(token)
    if subscription is not None:
        return subscription

    if store.lookup_token(token) is None:
        raise TokenError(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    raise TokenError(status.HTTP_403_FORBIDDEN, "Token expired or cancelled")
