"""
Unit tests for quota tracking.

Tests:
- Usage computation and clamping
- Subscription window (expired / expiring soon / days remaining)
- Alert classification and ordering
"""

from datetime import datetime, timedelta, timezone

import pytest

from storefront.core.quota import (
    build_usage_stats,
    classify_alerts,
    compute_usage,
    compute_window,
)
from storefront.models.subscription import (
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionSnapshot,
    SubscriptionStatus,
)
from storefront.schemas.subscription import AlertSeverity, SubscriptionUsageStats

NOW = datetime(2024, 6, 1, 9, 0, 0, tzinfo=timezone.utc)


class TestComputeUsage:
    """Test usage figures"""

    def test_partial_usage(self):
        usage = compute_usage(used=80, allowed=100)

        assert usage.percentage == 80
        assert usage.remaining == 20
        assert usage.limit_reached is False
        assert usage.high_usage is True

    def test_over_limit(self):
        usage = compute_usage(used=120, allowed=100)

        assert usage.percentage == 100
        assert usage.remaining == 0
        assert usage.limit_reached is True

    def test_exactly_at_limit(self):
        usage = compute_usage(used=5, allowed=5)

        assert usage.limit_reached is True
        assert usage.remaining == 0

    def test_no_limit_configured(self):
        usage = compute_usage(used=7, allowed=0)

        assert usage.percentage == 0
        assert usage.limit_reached is False
        assert usage.remaining == 0

    def test_negative_values_are_clamped(self):
        usage = compute_usage(used=-3, allowed=10)

        assert usage.used == 0
        assert usage.remaining == 10
        assert usage.percentage == 0

        assert compute_usage(used=4, allowed=-10).limit_reached is False

    def test_low_usage_not_flagged(self):
        assert compute_usage(used=10, allowed=100).high_usage is False


class TestComputeWindow:
    """Test subscription window flags"""

    def test_no_end_date(self):
        window = compute_window(None, NOW)

        assert window.is_expired is False
        assert window.is_expiring_soon is False
        assert window.days_remaining == 0

    def test_far_future(self):
        window = compute_window(NOW + timedelta(days=90), NOW)

        assert window.is_expired is False
        assert window.is_expiring_soon is False
        assert window.days_remaining == 90

    def test_expiring_soon(self):
        window = compute_window(NOW + timedelta(days=5, hours=3), NOW)

        assert window.is_expiring_soon is True
        assert window.days_remaining == 6

    def test_threshold_boundary(self):
        threshold = timedelta(days=30)

        assert compute_window(NOW + threshold, NOW, threshold).is_expiring_soon is False
        assert compute_window(NOW + threshold - timedelta(seconds=1), NOW, threshold).is_expiring_soon is True

    def test_custom_threshold(self):
        window = compute_window(NOW + timedelta(days=10), NOW, timedelta(days=7))

        assert window.is_expiring_soon is False

    def test_ends_now(self):
        window = compute_window(NOW, NOW)

        assert window.is_expired is False
        assert window.is_expiring_soon is True
        assert window.days_remaining == 0

    def test_expired(self):
        window = compute_window(NOW - timedelta(days=3), NOW)

        assert window.is_expired is True
        assert window.is_expiring_soon is False
        assert window.days_remaining == 0

    def test_naive_end_date_treated_as_utc(self):
        window = compute_window(datetime(2024, 6, 3, 9, 0, 0), NOW)

        assert window.days_remaining == 2


def snapshot(**overrides):
    values = {
        "plan": SubscriptionPlan(max_browse_count=100, max_listing_count=5),
        "end_date": NOW + timedelta(days=90),
        "browse_count_used": 10,
        "listing_count_used": 1,
    }
    values.update(overrides)
    return SubscriptionSnapshot(**values)


def alert_ids(subscription):
    stats = build_usage_stats(subscription, NOW)
    return [alert.id for alert in classify_alerts(subscription, stats)]


class TestBuildUsageStats:
    """Test usage card figures"""

    def test_stats(self):
        stats = build_usage_stats(snapshot(browse_count_used=95, end_date=NOW + timedelta(days=3)), NOW)

        assert stats.browse_count.percentage == 95
        assert stats.listing_count.remaining == 4
        assert stats.is_expiring_soon is True
        assert stats.days_remaining == 3


class TestClassifyAlerts:
    """Test alert classification"""

    def test_no_alerts_for_healthy_subscription(self):
        assert alert_ids(snapshot()) == []

    def test_browse_limit_and_suspended(self):
        subscription = snapshot(browse_count_used=100, status=SubscriptionStatus.SUSPENDED, notes="Chargeback")

        stats = build_usage_stats(subscription, NOW)
        alerts = list(classify_alerts(subscription, stats))

        assert [alert.id for alert in alerts] == ["browse-limit", "suspended"]
        assert all(alert.severity == AlertSeverity.CRITICAL for alert in alerts)
        assert "Chargeback" in alerts[1].message

    def test_order_is_stable_across_calls(self):
        subscription = snapshot(browse_count_used=100, status=SubscriptionStatus.SUSPENDED)

        assert alert_ids(subscription) == alert_ids(subscription)

    def test_sequence_is_restartable(self):
        subscription = snapshot(listing_count_used=5)
        alerts = classify_alerts(subscription, build_usage_stats(subscription, NOW))

        assert list(alerts) == list(alerts)
        assert [alert.id for alert in alerts] == ["listing-limit"]

    def test_all_conditions_in_priority_order(self):
        subscription = snapshot(
            payment_status=PaymentStatus.PENDING,
            end_date=NOW + timedelta(days=2),
            browse_count_used=100,
            listing_count_used=5,
            status=SubscriptionStatus.SUSPENDED
        )

        assert alert_ids(subscription) == [
            "pending-payment",
            "expiring",
            "browse-limit",
            "listing-limit",
            "suspended",
        ]

    def test_expired_suppresses_expiring(self):
        subscription = snapshot(end_date=NOW - timedelta(days=1))

        assert alert_ids(subscription) == ["expired"]

    def test_expired_message_has_end_date(self):
        subscription = snapshot(end_date=datetime(2024, 5, 20, tzinfo=timezone.utc))
        alerts = list(classify_alerts(subscription, build_usage_stats(subscription, NOW)))

        assert "May 20, 2024" in alerts[0].message

    @pytest.mark.parametrize("days, text", [(1, "1 day."), (4, "4 days.")])
    def test_expiring_message_pluralization(self, days, text):
        subscription = snapshot(end_date=NOW + timedelta(days=days))
        alerts = list(classify_alerts(subscription, build_usage_stats(subscription, NOW)))

        assert alerts[0].severity == AlertSeverity.ADVISORY
        assert text in alerts[0].message

    def test_suspended_without_reason(self):
        subscription = snapshot(status=SubscriptionStatus.SUSPENDED)
        alerts = list(classify_alerts(subscription, build_usage_stats(subscription, NOW)))

        assert "Reason: Not specified" in alerts[0].message

    def test_alerts_reflect_changed_inputs(self):
        """Nothing is memoized: a counter increment shows up on the next call"""
        subscription = snapshot(browse_count_used=99)
        assert alert_ids(subscription) == []

        incremented = subscription.model_copy(update={"browse_count_used": 100})
        assert alert_ids(incremented) == ["browse-limit"]

    def test_stats_built_by_hand(self):
        subscription = snapshot()
        stats = SubscriptionUsageStats(
            browse_count=compute_usage(10, 10),
            listing_count=compute_usage(0, 2),
            days_remaining=40,
            is_expiring_soon=False,
            is_expired=False
        )

        assert [alert.id for alert in classify_alerts(subscription, stats)] == ["browse-limit"]
