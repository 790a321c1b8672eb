"""
API endpoints for subscription usage and limits.

The records system owns subscriptions and counters; callers post the
current snapshot and get derived usage, alerts and gate decisions back.
"""

import logging
from datetime import timedelta
from typing import Optional
from fastapi import APIRouter, Body, Depends

from storefront.api.deps import get_clock
from storefront.core.clock import Clock
from storefront.core.config import settings
from storefront.core.feature_gates import (
    check_browse_limit,
    check_listing_limit,
    check_listing_visibility,
)
from storefront.core.quota import build_usage_stats, classify_alerts
from storefront.models.subscription import SubscriptionSnapshot
from storefront.schemas.subscription import (
    LimitCheck,
    SubscriptionUsageResponse,
    VisibilityCheck,
    VisibilityCheckRequest,
)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])
logger = logging.getLogger(__name__)


@router.post("/usage", response_model=SubscriptionUsageResponse)
def get_subscription_usage(
    subscription: SubscriptionSnapshot,
    clock: Clock = Depends(get_clock)
):
    """
    Compute usage figures and alerts for a subscription snapshot.

    Returns:
        SubscriptionUsageResponse: browse/listing usage, expiry flags, and
        alerts in display order
    """
    stats = build_usage_stats(
        subscription,
        clock.now(),
        timedelta(days=settings.SUBSCRIPTION_EXPIRING_SOON_DAYS)
    )
    alerts = list(classify_alerts(subscription, stats))

    if alerts:
        logger.info(f"Subscription alerts for user {subscription.user_id}: {[alert.id for alert in alerts]}")

    return SubscriptionUsageResponse(stats=stats, alerts=alerts)


@router.post("/check-browse", response_model=LimitCheck)
def check_browse(
    subscription: Optional[SubscriptionSnapshot] = Body(default=None),
    clock: Clock = Depends(get_clock)
):
    """Check whether another item detail view is allowed"""
    return check_browse_limit(subscription, clock.now())


@router.post("/check-listing", response_model=LimitCheck)
def check_listing(
    subscription: Optional[SubscriptionSnapshot] = Body(default=None),
    clock: Clock = Depends(get_clock)
):
    """Check whether another listing may be created"""
    return check_listing_limit(subscription, clock.now())


@router.post("/check-visibility", response_model=VisibilityCheck)
def check_visibility(
    request: VisibilityCheckRequest,
    clock: Clock = Depends(get_clock)
):
    """Check whether a listing is visible to the subscriber yet"""
    return check_listing_visibility(request.listing_created_at, request.subscription, clock.now())
