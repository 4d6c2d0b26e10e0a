"""
Subscription and token store.
Backed by Supabase tables `subscriptions` and `users`.

Key design:
- Every paid event gets its own subscription row and its own token
- Tokens are opaque bearer strings, matched exactly (case-sensitive)
- expires_at is fixed at creation: yearly plans 365 days, everything else 30
- Subscription + user rows are written together through one RPC call
  (record_subscription_change) so they never disagree
- Nothing is hard-deleted; cancellation flips status
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import pytz

from ..db import get_admin_client
from ..models import Plan, Subscription, SubscriptionGrant, SubscriptionStatus, User


logger = logging.getLogger(__name__)

MONTHLY_DAYS = 30
YEARLY_DAYS = 365


class StoreError(Exception):
    """The document store could not be read or written."""


class StoreWriteError(StoreError):
    """A write failed; nothing was applied."""


class SubscriptionNotFound(LookupError):
    pass


def generate_token() -> str:
    """Unique URL-safe token for feed access."""
    return secrets.token_urlsafe(24)


def expiry_for(plan: Plan, created_at: datetime) -> datetime:
    days = YEARLY_DAYS if plan.is_yearly else MONTHLY_DAYS
    return created_at + timedelta(days=days)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class SubscriptionStore:
    """Handles all subscription and token logic."""

    def __init__(self, client=None, clock: Callable[[], datetime] = utc_now):
        self.client = client if client is not None else get_admin_client()
        self.clock = clock

    # =========================================================================
    # Writes
    # =========================================================================

    def create_subscription(
        self,
        email: str,
        plan_id: str,
        source: str,
        metadata: Optional[Dict[str, Any]] = None,
        external_ref: Optional[str] = None,
    ) -> SubscriptionGrant:
        """
        Record a paid subscription and mint its token.

        Also marks the user as having an active subscription.

        Raises:
            ValueError: For the free plan (never recorded) or an unknown plan.
            StoreWriteError: If the store rejected the write.
        """
        plan = Plan(plan_id)
        if plan == Plan.FREE:
            raise ValueError("The free tier is not recorded")

        now = self.clock()
        subscription = Subscription(
            id=f"{source}_{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}",
            email=email.strip().lower(),
            plan_id=plan,
            source=source,
            status=SubscriptionStatus.ACTIVE,
            created_at=now,
            expires_at=expiry_for(plan, now),
            token=generate_token(),
            external_ref=external_ref,
            metadata=metadata or {},
        )

        self._record(subscription, has_active=True, latest_subscription_id=subscription.id)
        logger.info(
            "Created %s subscription %s (source=%s)", plan.value, subscription.id, source
        )

        return SubscriptionGrant(
            id=subscription.id,
            token=subscription.token,
            expires_at=subscription.expires_at,
        )

    def cancel_subscription(self, subscription_id: str) -> Subscription:
        """
        Mark a subscription cancelled.

        The user's has_active_subscription flag is re-derived from their
        other active, unexpired subscriptions. expires_at is left as is.

        Raises:
            SubscriptionNotFound: If no such subscription exists.
            StoreWriteError: If the store rejected the write.
        """
        subscription = self.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFound(subscription_id)

        if subscription.status == SubscriptionStatus.CANCELLED:
            return subscription

        now = self.clock()
        cancelled = subscription.model_copy(
            update={"status": SubscriptionStatus.CANCELLED, "cancelled_at": now}
        )
        still_active = any(
            other.is_valid_at(now)
            for other in self.get_user_subscriptions(subscription.email)
            if other.id != subscription.id
        )

        self._record(cancelled, has_active=still_active)
        logger.info("Cancelled subscription %s", subscription_id)
        return cancelled

    def _record(
        self,
        subscription: Subscription,
        has_active: bool,
        latest_subscription_id: Optional[str] = None,
    ) -> None:
        """Write subscription + user rows in one transaction."""
        user_row = User(
            email=subscription.email,
            has_active_subscription=has_active,
            latest_subscription_id=latest_subscription_id,
        ).model_dump()
        try:
            self.client.rpc(
                "record_subscription_change",
                {
                    "p_subscription": subscription.model_dump(mode="json"),
                    "p_user": user_row,
                },
            ).execute()
        except Exception as e:
            logger.error("Failed to record subscription %s", subscription.id, exc_info=True)
            raise StoreWriteError(f"Could not record subscription {subscription.id}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    def _fetch(self, query) -> List[Subscription]:
        try:
            result = query.execute()
        except Exception as e:
            logger.error("Subscription query failed", exc_info=True)
            raise StoreError("Could not read subscriptions") from e
        return [Subscription.model_validate(row) for row in result.data or []]

    def _table(self):
        return self.client.table("subscriptions").select("*")

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        rows = self._fetch(self._table().eq("id", subscription_id).limit(1))
        return rows[0] if rows else None

    def lookup_token(self, token: str) -> Optional[Subscription]:
        """Subscription owning this token, whatever its state."""
        if not token:
            return None
        rows = self._fetch(self._table().eq("token", token).limit(1))
        # Exact match only, even if the store collates loosely
        matches = [row for row in rows if row.token == token]
        return matches[0] if matches else None

    def validate_token(self, token: str) -> Optional[Subscription]:
        """The active, unexpired subscription for this token, else None."""
        subscription = self.lookup_token(token)
        if subscription is None or not subscription.is_valid_at(self.clock()):
            return None
        return subscription

    def find_by_external_ref(self, source: str, external_ref: str) -> Optional[Subscription]:
        """Resolve a provider subscription id to our newest matching record."""
        if not external_ref:
            return None
        rows = self._fetch(
            self._table()
            .eq("source", source)
            .eq("external_ref", external_ref)
            .order("created_at", desc=True)
            .limit(1)
        )
        return rows[0] if rows else None

    def get_user_subscriptions(self, email: str) -> List[Subscription]:
        """All subscriptions for an email, newest first."""
        if not email:
            return []
        return self._fetch(
            self._table().eq("email", email.strip().lower()).order("created_at", desc=True)
        )

    def has_active_subscription(self, email: str) -> bool:
        now = self.clock()
        return any(sub.is_valid_at(now) for sub in self.get_user_subscriptions(email))
