"""
Webhook handler.
Buy Me a Coffee is the main provider; Stripe is accepted as well.

Handles (buymeacoffee):
- subscription_created / membership_created
- subscription_updated
- subscription_cancelled
- support_created

All subscription state is managed via webhooks.
Unauthenticated or malformed requests get 403 and nothing is written.
Unknown event types get 200 so the provider stops retrying.
"""

import logging
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ...config import Settings
from ...lib import MalformedWebhook, StoreError, WebhookAuthError, WebhookIngestor
from ...lib.webhooks import BMC_SOURCE, STRIPE_SOURCE, parse_event, verify_signature, verify_stripe_signature
from ..dependencies import get_webhook_ingestor, settings_dependency


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    provider: Optional[str] = None,
    settings: Settings = Depends(settings_dependency),
    ingestor: WebhookIngestor = Depends(get_webhook_ingestor),
):
    """
    Verify and apply a payment-provider event.

    Provider comes from `?provider=` or the X-Webhook-Provider header
    (default buymeacoffee).

    Returns:
    - success: whether the event changed state as intended
    - message: what happened (or why not)
    - feedUrl: token feed URL for newly created feed subscriptions
    """
    provider = (provider or request.headers.get("x-webhook-provider") or BMC_SOURCE).lower()
    payload = await request.body()

    try:
        if provider == BMC_SOURCE:
            verify_signature(
                settings.webhook_secret,
                request.headers.get("x-timestamp"),
                payload,
                request.headers.get("x-signature"),
                tolerance=settings.webhook_tolerance_seconds,
            )
            apply_event = partial(ingestor.handle, parse_event(payload))
        elif provider == STRIPE_SOURCE:
            event = verify_stripe_signature(
                payload,
                request.headers.get("stripe-signature"),
                settings.stripe_webhook_secret or "",
                tolerance=settings.webhook_tolerance_seconds,
            )
            apply_event = partial(ingestor.handle_stripe, event)
        else:
            raise WebhookAuthError(f"Unknown provider: {provider}")
    except (WebhookAuthError, MalformedWebhook) as e:
        logger.warning("Rejected %s webhook: %s", provider, e)
        return JSONResponse(status_code=403, content={"success": False, "message": "Forbidden"})

    try:
        result = await run_in_threadpool(apply_event)
    except StoreError:
        logger.error("Webhook from %s not applied: store unavailable", provider)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal Server Error"},
        )

    return result.model_dump(by_alias=True, exclude_none=True)
