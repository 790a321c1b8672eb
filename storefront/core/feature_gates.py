"""
Feature gates for subscription-based access control.

Controls browsing, listing creation, listing visibility and notifications
based on the subscriber's plan and usage counters.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, TypeVar

from fastapi import HTTPException, status

from storefront.core.quota import as_utc, compute_usage, compute_window
from storefront.models.subscription import (
    FREE_PLAN,
    MAX_VISIBILITY_DELAY_HOURS,
    SubscriptionSnapshot,
    SubscriptionStatus,
)
from storefront.schemas.subscription import LimitCheck, VisibilityCheck

T = TypeVar("T")


def _inactive_reason(subscription: SubscriptionSnapshot, now: datetime) -> Optional[str]:
    if not subscription.is_active:
        return f"Subscription is {subscription.status.value}."
    if compute_window(subscription.end_date, now).is_expired:
        return "Subscription has expired."
    return None


def _check_limit(
    subscription: SubscriptionSnapshot,
    now: datetime,
    used: int,
    allowed: int,
    limit_name: str
) -> LimitCheck:
    reason = _inactive_reason(subscription, now)
    if reason:
        return LimitCheck(allowed=False, remaining=0, limit_reached=True, message=reason)

    usage = compute_usage(used, allowed)
    if usage.limit_reached:
        return LimitCheck(
            allowed=False,
            remaining=0,
            limit_reached=True,
            message=f"{limit_name.capitalize()} limit reached ({usage.allowed}). Contact your administrator to upgrade."
        )

    return LimitCheck(allowed=True, remaining=usage.remaining, limit_reached=False)


def check_browse_limit(subscription: Optional[SubscriptionSnapshot], now: datetime) -> LimitCheck:
    """
    Check if the user may open another item detail view.

    Users without a subscription browse on the free plan allowance.

    Args:
        subscription: User's subscription snapshot, or None
        now: Current time

    Returns:
        LimitCheck: allowed flag, remaining views and denial message
    """
    if subscription is None:
        return LimitCheck(
            allowed=True,
            remaining=FREE_PLAN.max_browse_count,
            limit_reached=False,
            message="No active subscription. Free plan limits apply."
        )
    return _check_limit(
        subscription,
        now,
        subscription.browse_count_used,
        subscription.plan.max_browse_count,
        "browse"
    )


def check_listing_limit(subscription: Optional[SubscriptionSnapshot], now: datetime) -> LimitCheck:
    """
    Check if the user may create another listing.

    Listing creation requires an active, unexpired subscription with
    listing allowance left.
    """
    if subscription is None:
        return LimitCheck(
            allowed=False,
            remaining=0,
            limit_reached=True,
            message="No active subscription. Listing creation not allowed."
        )
    return _check_limit(
        subscription,
        now,
        subscription.listing_count_used,
        subscription.plan.max_listing_count,
        "listing"
    )


def require_browse_allowed(subscription: Optional[SubscriptionSnapshot], now: datetime) -> LimitCheck:
    """
    Raise HTTPException if the user cannot browse further.

    Raises:
        HTTPException: 403 Forbidden when the browse limit is reached or the subscription is inactive
    """
    check = check_browse_limit(subscription, now)
    if not check.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=check.message)
    return check


def require_listing_allowed(subscription: Optional[SubscriptionSnapshot], now: datetime) -> LimitCheck:
    """
    Raise HTTPException if the user cannot create a listing.

    Raises:
        HTTPException: 403 Forbidden when the listing limit is reached or the subscription is inactive
    """
    check = check_listing_limit(subscription, now)
    if not check.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=check.message)
    return check


def _visibility_delay_hours(subscription: Optional[SubscriptionSnapshot]) -> int:
    if subscription is None:
        return FREE_PLAN.listing_visibility_delay_hours
    if subscription.status != SubscriptionStatus.ACTIVE:
        return MAX_VISIBILITY_DELAY_HOURS
    return subscription.plan.listing_visibility_delay_hours


def check_listing_visibility(
    listing_created_at: datetime,
    subscription: Optional[SubscriptionSnapshot],
    now: datetime
) -> VisibilityCheck:
    """
    Decide whether a newly created listing is visible to this subscriber yet.

    - No subscription: free plan delay from listing creation
    - Inactive subscription: maximum delay, counted from now
    - Active subscription: the plan's delay from listing creation
    """
    delay_hours = _visibility_delay_hours(subscription)

    if subscription is not None and subscription.status != SubscriptionStatus.ACTIVE:
        return VisibilityCheck(
            visible=False,
            delay_hours=delay_hours,
            available_at=now + timedelta(hours=delay_hours)
        )

    available_at = as_utc(listing_created_at) + timedelta(hours=delay_hours)
    return VisibilityCheck(
        visible=now >= available_at,
        delay_hours=delay_hours,
        available_at=available_at
    )


def filter_visible_listings(
    listings: Iterable[T],
    subscription: Optional[SubscriptionSnapshot],
    now: datetime,
    created_at: Callable[[T], datetime]
) -> List[T]:
    """
    Drop listings the subscriber is not allowed to see yet (browse pages).

    Inactive subscribers fall back to the free plan delay here.
    """
    delay_hours = FREE_PLAN.listing_visibility_delay_hours
    if subscription is not None and subscription.is_active:
        delay_hours = subscription.plan.listing_visibility_delay_hours
    delay = timedelta(hours=delay_hours)

    return [listing for listing in listings if now >= as_utc(created_at(listing)) + delay]


def can_receive_notifications(subscription: Optional[SubscriptionSnapshot]) -> bool:
    """
    Check if the user's plan allows listing notifications.

    Returns:
        bool: True for active subscriptions whose plan enables notifications
    """
    if subscription is None or not subscription.is_active:
        return False
    return subscription.plan.notifications_enabled
