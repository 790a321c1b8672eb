"""
Quota tracking for subscription usage.

Turns raw counters and plan limits supplied by the records system into
derived usage state and subscriber alerts. Every function here is pure:
nothing is cached and nothing raises for well-typed input (out-of-range
counters are clamped).
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from storefront.models.subscription import (
    PaymentStatus,
    SubscriptionSnapshot,
    SubscriptionStatus,
)
from storefront.schemas.subscription import (
    Alert,
    AlertSeverity,
    SubscriptionUsageStats,
    SubscriptionWindow,
    UsageLimit,
)

DEFAULT_EXPIRING_SOON_DAYS = 30

# Usage percentage from which the usage card flags "high usage"
HIGH_USAGE_PERCENTAGE = 80.0


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def compute_usage(used: int, allowed: int) -> UsageLimit:
    """
    Compute usage of one resource.

    ``allowed == 0`` means no limit is configured: percentage is 0 and the
    limit is never reached. Negative inputs are clamped to 0.

    Examples:
        compute_usage(80, 100)  -> 80%, 20 remaining, not reached
        compute_usage(120, 100) -> 100%, 0 remaining, reached
    """
    used = max(0, used)
    allowed = max(0, allowed)

    if allowed > 0:
        percentage = min(100.0, (used / allowed) * 100)
        limit_reached = used >= allowed
    else:
        percentage = 0.0
        limit_reached = False

    return UsageLimit(
        used=used,
        allowed=allowed,
        percentage=percentage,
        remaining=max(0, allowed - used),
        limit_reached=limit_reached,
        high_usage=percentage >= HIGH_USAGE_PERCENTAGE
    )


def compute_window(
    end_date: Optional[datetime],
    now: datetime,
    expiring_soon_threshold: timedelta = timedelta(days=DEFAULT_EXPIRING_SOON_DAYS)
) -> SubscriptionWindow:
    """
    Compute expiry flags for a subscription end date.

    - is_expired: now is past end_date
    - is_expiring_soon: not expired and less than the threshold left
    - days_remaining: whole days left, rounded up, never negative

    A missing end_date is neither expired nor expiring.
    """
    if end_date is None:
        return SubscriptionWindow()

    end_date = as_utc(end_date)
    now = as_utc(now)
    left = end_date - now

    is_expired = now > end_date
    return SubscriptionWindow(
        end_date=end_date,
        is_expired=is_expired,
        is_expiring_soon=not is_expired and left < expiring_soon_threshold,
        days_remaining=max(0, math.ceil(left / timedelta(days=1)))
    )


def build_usage_stats(
    subscription: SubscriptionSnapshot,
    now: datetime,
    expiring_soon_threshold: timedelta = timedelta(days=DEFAULT_EXPIRING_SOON_DAYS)
) -> SubscriptionUsageStats:
    """Usage card figures for a snapshot"""
    window = compute_window(subscription.end_date, now, expiring_soon_threshold)
    return SubscriptionUsageStats(
        browse_count=compute_usage(subscription.browse_count_used, subscription.plan.max_browse_count),
        listing_count=compute_usage(subscription.listing_count_used, subscription.plan.max_listing_count),
        days_remaining=window.days_remaining,
        is_expiring_soon=window.is_expiring_soon,
        is_expired=window.is_expired
    )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _generate_alerts(subscription: SubscriptionSnapshot, stats: SubscriptionUsageStats) -> Iterator[Alert]:
    if subscription.payment_status == PaymentStatus.PENDING:
        yield Alert(
            id="pending-payment",
            severity=AlertSeverity.ADVISORY,
            title="Payment Verification Pending",
            message=(
                "Your payment for this subscription is being verified by our team. "
                "Some features may be limited until verification is complete."
            )
        )

    if stats.is_expired:
        ended = subscription.end_date.strftime("%b %d, %Y") if subscription.end_date else "an earlier date"
        yield Alert(
            id="expired",
            severity=AlertSeverity.CRITICAL,
            title="Subscription Expired",
            message=f"Your subscription ended on {ended}. Contact your administrator to renew."
        )

    if stats.is_expiring_soon and not stats.is_expired:
        yield Alert(
            id="expiring",
            severity=AlertSeverity.ADVISORY,
            title="Subscription Expiring Soon",
            message=(
                f"Your subscription expires in {_plural(stats.days_remaining, 'day')}. "
                "Contact your administrator to extend it."
            )
        )

    if stats.browse_count.limit_reached:
        yield Alert(
            id="browse-limit",
            severity=AlertSeverity.CRITICAL,
            title="Browse Limit Reached",
            message=(
                f"You have reached your monthly browse limit ({stats.browse_count.allowed}). "
                "Contact your administrator to increase your plan."
            )
        )

    if stats.listing_count.limit_reached:
        yield Alert(
            id="listing-limit",
            severity=AlertSeverity.CRITICAL,
            title="Listing Limit Reached",
            message=(
                f"You have reached your listing limit ({stats.listing_count.allowed}). "
                "Contact your administrator to increase your plan."
            )
        )

    if subscription.status == SubscriptionStatus.SUSPENDED:
        yield Alert(
            id="suspended",
            severity=AlertSeverity.CRITICAL,
            title="Subscription Suspended",
            message=(
                f"Your subscription has been suspended. Reason: {subscription.notes or 'Not specified'}. "
                "Contact your administrator."
            )
        )


class AlertSequence:
    """
    Lazily evaluated alerts for one snapshot.

    Iterating evaluates the conditions again each time, in fixed priority
    order: pending payment, expired, expiring soon, browse limit, listing
    limit, suspended.
    """

    def __init__(self, subscription: SubscriptionSnapshot, stats: SubscriptionUsageStats):
        self.subscription = subscription
        self.stats = stats

    def __iter__(self) -> Iterator[Alert]:
        return _generate_alerts(self.subscription, self.stats)


def classify_alerts(subscription: SubscriptionSnapshot, stats: SubscriptionUsageStats) -> AlertSequence:
    """
    Classify derived subscription state into alerts.

    Conditions are independent; every one that holds yields an alert, except
    that expiring-soon is suppressed once the subscription has expired.

    Args:
        subscription: Snapshot from the records system (status, payment, notes)
        stats: Usage figures computed by build_usage_stats()

    Returns:
        AlertSequence: iterable of Alert, recomputed on every iteration
    """
    return AlertSequence(subscription, stats)
