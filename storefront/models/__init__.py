"""
Models package.
"""

from storefront.models.verification import VerificationRecord, VerificationResult, VerificationStatus
from storefront.models.subscription import (
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionSnapshot,
    SubscriptionStatus,
)

__all__ = [
    "VerificationRecord",
    "VerificationResult",
    "VerificationStatus",
    "PaymentStatus",
    "SubscriptionPlan",
    "SubscriptionSnapshot",
    "SubscriptionStatus",
]
