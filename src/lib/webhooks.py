"""
Webhook ingestion.
Payment-provider events -> subscription records.

Providers:
- buymeacoffee: HMAC-SHA256 over "<timestamp>.<raw body>", X-Signature / X-Timestamp
- stripe: Stripe-Signature, verified by the stripe library

Events are validated into a closed set of variants before anything is
written. Unknown-but-well-formed events are acknowledged so the provider
does not retry them forever.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Annotated, Optional, Tuple, Union

import stripe
from pydantic import Field, TypeAdapter, ValidationError

from ..models import (
    MembershipEvent,
    Plan,
    SubscriptionCancelledEvent,
    SubscriptionUpdatedEvent,
    SupportEvent,
    UnknownEvent,
    WebhookEvent,
    WebhookResponse,
)
from ..models.schemas import MembershipData
from .subscriptions import SubscriptionNotFound, SubscriptionStore


logger = logging.getLogger(__name__)

BMC_SOURCE = "buymeacoffee"
STRIPE_SOURCE = "stripe"

KNOWN_EVENT_TYPES = frozenset({
    "subscription_created",
    "membership_created",
    "subscription_updated",
    "subscription_cancelled",
    "support_created",
})

ENDED_STATUSES = frozenset({"cancelled", "canceled", "inactive", "expired"})
STRIPE_ENDED_STATUSES = frozenset({"canceled", "unpaid", "incomplete_expired"})

# TMDB genre names, used to read the genre out of a support note
TMDB_GENRES = (
    "Action", "Adventure", "Animation", "Comedy", "Crime", "Documentary",
    "Drama", "Family", "Fantasy", "History", "Horror", "Music", "Mystery",
    "Romance", "Science Fiction", "TV Movie", "Thriller", "War", "Western",
)
GENRE_ALIASES = {
    "sci-fi": "Science Fiction",
    "scifi": "Science Fiction",
    "sf": "Science Fiction",
    "romcom": "Romance",
    "animated": "Animation",
    "docs": "Documentary",
}

_event_adapter = TypeAdapter(Annotated[WebhookEvent, Field(discriminator="event_type")])


class WebhookAuthError(Exception):
    """Signature missing, wrong or stale."""


class MalformedWebhook(Exception):
    """Body is not a recognisable event."""


# =============================================================================
# Authenticity
# =============================================================================

def compute_signature(secret: str, timestamp: str, payload: bytes) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_signature(
    secret: str,
    timestamp: Optional[str],
    payload: bytes,
    signature: Optional[str],
    tolerance: int = 300,
    now: Optional[float] = None,
) -> None:
    """
    Check an HMAC webhook signature and its freshness.

    Raises:
        WebhookAuthError: On a missing/invalid signature or a timestamp
            outside the tolerance window.
    """
    if not secret:
        raise WebhookAuthError("Webhook secret not configured")
    if not timestamp or not signature:
        raise WebhookAuthError("Missing signature headers")

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise WebhookAuthError("Invalid timestamp")

    current = time.time() if now is None else now
    if abs(current - sent_at) > tolerance:
        raise WebhookAuthError("Timestamp outside tolerance window")

    expected = compute_signature(secret, timestamp, payload)
    provided = signature.strip().lower().encode("utf-8", "surrogateescape")
    if not hmac.compare_digest(expected.encode("ascii"), provided):
        raise WebhookAuthError("Signature mismatch")


def verify_stripe_signature(payload: bytes, sig_header: Optional[str], secret: str, tolerance: int = 300) -> dict:
    """Verify a Stripe-Signature header and return the decoded event."""
    if not secret:
        raise WebhookAuthError("Stripe webhook secret not configured")
    if not sig_header:
        raise WebhookAuthError("Missing Stripe-Signature header")

    try:
        stripe.Webhook.construct_event(payload, sig_header, secret, tolerance)
    except ValueError as e:
        raise MalformedWebhook("Invalid payload") from e
    except stripe.SignatureVerificationError as e:
        raise WebhookAuthError("Invalid Stripe signature") from e

    # Handlers read plain dicts, not StripeObject
    event = json.loads(payload)
    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        raise MalformedWebhook("Missing event type")
    return event


# =============================================================================
# Parsing + classification
# =============================================================================

def parse_event(payload: bytes) -> Union[WebhookEvent, UnknownEvent]:
    """
    Raw body -> one of the known event variants, or UnknownEvent.

    Raises:
        MalformedWebhook: Not JSON, no event_type, or a known type whose
            payload does not validate.
    """
    try:
        body = json.loads(payload)
    except ValueError as e:
        raise MalformedWebhook("Invalid JSON") from e

    if not isinstance(body, dict) or not isinstance(body.get("event_type"), str):
        raise MalformedWebhook("Missing event_type")

    if body["event_type"] not in KNOWN_EVENT_TYPES:
        return UnknownEvent(event_type=body["event_type"])

    try:
        return _event_adapter.validate_python(body)
    except ValidationError as e:
        raise MalformedWebhook(f"Invalid {body['event_type']} payload") from e


def plan_for_membership(data: MembershipData, ultimate_threshold: int) -> Plan:
    """Monthly/yearly from the duration, ultimate on a big enough quantity."""
    level = data.membership_level_name.lower()
    yearly = data.duration_type.lower().startswith("year") or "year" in level
    ultimate = data.quantity >= ultimate_threshold or "ultimate" in level

    tier = "ultimate" if ultimate else "premium"
    cadence = "yearly" if yearly else "monthly"
    return Plan(f"{tier}-{cadence}")


def extract_genre(note: str) -> Optional[str]:
    """First TMDB genre named in a free-text note."""
    lowered = note.lower()
    for alias, genre in GENRE_ALIASES.items():
        if alias in lowered.replace(",", " ").split():
            return genre
    for genre in sorted(TMDB_GENRES, key=len, reverse=True):
        if genre.lower() in lowered:
            return genre
    return None


def classify_support(note: str) -> Tuple[Plan, Optional[str]]:
    """Genre-pack purchases mention 'genre' in the note; anything else is a tip."""
    if "genre" in (note or "").lower():
        return Plan.GENRE_PACK, extract_genre(note)
    return Plan.ONE_TIME_SUPPORT, None


# =============================================================================
# Ingestor
# =============================================================================

class WebhookIngestor:
    """Applies verified provider events to the subscription store."""

    def __init__(self, store: SubscriptionStore, feed_base_url: str, ultimate_threshold: int = 3):
        self.store = store
        self.feed_base_url = feed_base_url.rstrip("/")
        self.ultimate_threshold = ultimate_threshold

    def feed_url(self, token: str) -> str:
        return f"{self.feed_base_url}/rss/{token}"

    def handle(self, event: Union[WebhookEvent, UnknownEvent]) -> WebhookResponse:
        """
        Dispatch one Buy Me a Coffee event.

        StoreError propagates; the route turns it into a 500.
        """
        if isinstance(event, MembershipEvent):
            return self._membership_created(event)

        if isinstance(event, SubscriptionUpdatedEvent):
            status = (event.data.status or "").lower()
            if status in ENDED_STATUSES:
                return self._cancel_by_ref(BMC_SOURCE, event.data.subscription_id)
            return WebhookResponse(
                success=True,
                message=f"subscription_updated acknowledged; no state change for status '{status or 'unknown'}'",
            )

        if isinstance(event, SubscriptionCancelledEvent):
            return self._cancel_by_ref(BMC_SOURCE, event.data.subscription_id)

        if isinstance(event, SupportEvent):
            return self._support_created(event)

        logger.info("Unhandled webhook event type: %s", event.event_type)
        return WebhookResponse(success=True, message=f"Unhandled event type: {event.event_type}")

    def _membership_created(self, event: MembershipEvent) -> WebhookResponse:
        data = event.data
        plan = plan_for_membership(data, self.ultimate_threshold)
        grant = self.store.create_subscription(
            email=data.supporter_email,
            plan_id=plan.value,
            source=BMC_SOURCE,
            metadata={
                "event_type": event.event_type,
                "membership_level_name": data.membership_level_name,
                "duration_type": data.duration_type,
                "quantity": data.quantity,
            },
            external_ref=data.subscription_id,
        )
        return WebhookResponse(
            success=True,
            message=f"Subscription created: {plan.value}",
            feed_url=self.feed_url(grant.token),
        )

    def _support_created(self, event: SupportEvent) -> WebhookResponse:
        data = event.data
        plan, genre = classify_support(data.support_note)
        metadata = {
            "event_type": event.event_type,
            "support_note": data.support_note,
            "quantity": data.quantity,
        }
        if genre:
            metadata["genre"] = genre

        grant = self.store.create_subscription(
            email=data.supporter_email,
            plan_id=plan.value,
            source=BMC_SOURCE,
            metadata=metadata,
            external_ref=data.support_id,
        )

        if plan == Plan.GENRE_PACK:
            return WebhookResponse(
                success=True,
                message=f"Genre pack created{f' ({genre})' if genre else ''}",
                feed_url=self.feed_url(grant.token),
            )
        return WebhookResponse(success=True, message="Thanks for the support!")

    def _cancel_by_ref(self, source: str, external_ref: Optional[str]) -> WebhookResponse:
        subscription = self.store.find_by_external_ref(source, external_ref) if external_ref else None
        if subscription is None:
            logger.warning("No %s subscription matches provider id %s", source, external_ref)
            return WebhookResponse(
                success=False,
                message=f"No matching subscription for provider id {external_ref}",
            )

        try:
            self.store.cancel_subscription(subscription.id)
        except SubscriptionNotFound:
            return WebhookResponse(success=False, message=f"Subscription {subscription.id} disappeared")
        return WebhookResponse(success=True, message=f"Subscription cancelled: {subscription.id}")

    # =========================================================================
    # Stripe
    # =========================================================================

    def handle_stripe(self, event: dict) -> WebhookResponse:
        """
        Dispatch one verified Stripe event.

        - checkout.session.completed: create (plan from session metadata)
        - customer.subscription.deleted: cancel
        - customer.subscription.updated: cancel if the status ended
        """
        event_type = event["type"]
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed":
            email = (obj.get("customer_details") or {}).get("email") or obj.get("customer_email")
            if not email:
                return WebhookResponse(success=False, message="Checkout session has no customer email")

            plan_value = (obj.get("metadata") or {}).get("plan_id", Plan.PREMIUM_MONTHLY.value)
            try:
                plan = Plan(plan_value)
            except ValueError:
                plan = None
            if plan is None or plan == Plan.FREE:
                return WebhookResponse(success=False, message=f"Unknown plan: {plan_value}")

            grant = self.store.create_subscription(
                email=email,
                plan_id=plan.value,
                source=STRIPE_SOURCE,
                metadata={"checkout_session": obj.get("id"), "customer": obj.get("customer")},
                external_ref=obj.get("subscription") or obj.get("id"),
            )
            return WebhookResponse(
                success=True,
                message=f"Subscription created: {plan.value}",
                feed_url=self.feed_url(grant.token),
            )

        if event_type == "customer.subscription.deleted":
            return self._cancel_by_ref(STRIPE_SOURCE, obj.get("id"))

        if event_type == "customer.subscription.updated":
            status = obj.get("status") or ""
            if status in STRIPE_ENDED_STATUSES:
                return self._cancel_by_ref(STRIPE_SOURCE, obj.get("id"))
            return WebhookResponse(
                success=True,
                message=f"customer.subscription.updated acknowledged; no state change for status '{status}'",
            )

        logger.info("Unhandled Stripe event type: %s", event_type)
        return WebhookResponse(success=True, message=f"Unhandled event type: {event_type}")
