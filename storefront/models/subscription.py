"""
Subscription figures supplied by the external records system.

The access core never stores these; it only interprets a snapshot of them
to derive usage state, alerts and feature gates.
"""

import enum
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class SubscriptionStatus(str, enum.Enum):
    """
    Subscription lifecycle states (admin-assigned plans).

    - ACTIVE: assigned and in good standing
    - EXPIRED: end date has passed
    - SUSPENDED: access revoked by an administrator
    """
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"


class PaymentStatus(str, enum.Enum):
    """Manual payment verification state."""
    NONE = "none"
    PENDING = "pending"
    VERIFIED = "verified"


class SubscriptionPlan(BaseModel):
    """
    Plan limits.

    max_browse_count: full item detail views per billing period
    max_listing_count: items the user can create/list
    listing_visibility_delay_hours: delay before the user sees new listings
    """
    name: str = "free"
    display_name: str = "Free"
    max_browse_count: int = 10
    max_listing_count: int = 2
    listing_visibility_delay_hours: int = 72
    notifications_enabled: bool = False


# Limits applied when a user has no subscription at all
FREE_PLAN = SubscriptionPlan()

# Delay applied to users whose subscription is not active
MAX_VISIBILITY_DELAY_HOURS = 168


class SubscriptionSnapshot(BaseModel):
    """
    Point-in-time view of a user's subscription and usage counters.

    Counters come straight from the records system and are not validated
    here; negative values are clamped when usage is computed.
    """
    user_id: Optional[str] = None
    plan: SubscriptionPlan = Field(default_factory=SubscriptionPlan)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    payment_status: PaymentStatus = PaymentStatus.NONE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    browse_count_used: int = 0
    listing_count_used: int = 0
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """Check if subscription allows access to plan features."""
        return self.status == SubscriptionStatus.ACTIVE
