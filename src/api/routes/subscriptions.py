"""
Subscription info routes.
Read-only; all state changes arrive through the webhook.

Endpoints:
- GET /subscription/plans    - Plan catalogue (feed sizes, cadence)
- GET /subscription/{token}  - Status of the subscription behind a feed token
"""

from fastapi import APIRouter, Depends

from ...lib import verify_feed_token
from ...lib.selector import PLAN_LIMITS
from ...lib.subscriptions import MONTHLY_DAYS, YEARLY_DAYS
from ...models import Plan, Subscription


router = APIRouter()


@router.get("/plans")
async def get_plans():
    """
    Available plans.

    Returns per plan:
    - default_count / max_count: feed size
    - duration_days: how long one purchase lasts (None for the free tier)
    - sortable: whether popular/trending/top_rated ordering is available
    """
    plans = {}
    for plan in Plan:
        default_count, max_count = PLAN_LIMITS[plan]
        if plan == Plan.FREE:
            duration = None
        else:
            duration = YEARLY_DAYS if plan.is_yearly else MONTHLY_DAYS
        plans[plan.value] = {
            "default_count": default_count,
            "max_count": max_count,
            "duration_days": duration,
            "sortable": plan.is_paid_feed,
        }
    return plans


@router.get("/{token}")
async def get_subscription_status(
    subscription: Subscription = Depends(verify_feed_token),
):
    """
    Status of the subscription that owns a feed token.

    401 for unknown tokens, 403 once cancelled or expired.
    """
    return {
        "plan_id": subscription.plan_id.value,
        "status": subscription.status.value,
        "created_at": subscription.created_at.isoformat(),
        "expires_at": subscription.expires_at.isoformat(),
        "genre": subscription.metadata.get("genre"),
    }
