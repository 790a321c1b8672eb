"""
Pydantic schemas for derived subscription state.

All of these are computed on demand from a SubscriptionSnapshot; none are stored.
"""

import enum
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from storefront.models.subscription import SubscriptionSnapshot


class UsageLimit(BaseModel):
    """Usage of one metered resource against its plan allowance"""
    model_config = ConfigDict(frozen=True)

    used: int
    allowed: int
    percentage: float
    remaining: int
    limit_reached: bool
    high_usage: bool = False


class SubscriptionWindow(BaseModel):
    """Where "now" sits relative to the subscription end date"""
    model_config = ConfigDict(frozen=True)

    end_date: Optional[datetime] = None
    is_expired: bool = False
    is_expiring_soon: bool = False
    days_remaining: int = 0


class AlertSeverity(str, enum.Enum):
    ADVISORY = "advisory"
    CRITICAL = "critical"


class Alert(BaseModel):
    """Warning shown to a subscriber"""
    model_config = ConfigDict(frozen=True)

    id: str
    severity: AlertSeverity
    title: str
    message: str


class SubscriptionUsageStats(BaseModel):
    """Usage card figures for a subscriber"""
    browse_count: UsageLimit
    listing_count: UsageLimit
    days_remaining: int
    is_expiring_soon: bool
    is_expired: bool


class SubscriptionUsageResponse(BaseModel):
    """Response for the usage endpoint"""
    stats: SubscriptionUsageStats
    alerts: List[Alert]


class LimitCheck(BaseModel):
    """Result of a browse/listing limit check"""
    allowed: bool
    remaining: int
    limit_reached: bool
    message: Optional[str] = None


class VisibilityCheck(BaseModel):
    """Whether a listing is visible yet to a subscriber"""
    visible: bool
    delay_hours: int
    available_at: datetime


class VisibilityCheckRequest(BaseModel):
    listing_created_at: datetime
    subscription: Optional[SubscriptionSnapshot] = None
