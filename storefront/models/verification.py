"""
Verification code records and verdicts.

A record is single-use, time-limited and attempt-limited. At most one live
record exists per identifier; issuing a new code replaces the old one and
remembers the replaced code only for as long as the new record lives.
"""

import enum
from datetime import datetime
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


class VerificationStatus(str, enum.Enum):
    """
    Outcome of a verification attempt.

    - VERIFIED: code matched, record consumed
    - INVALID: code did not match, attempts remain
    - EXPIRED: record was past its expiry, record purged
    - ATTEMPTS_EXHAUSTED: attempt ceiling reached, record purged
    - NO_ACTIVE_CODE: nothing issued, already consumed, or a replaced code
    """
    VERIFIED = "verified"
    INVALID = "invalid"
    EXPIRED = "expired"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    NO_ACTIVE_CODE = "no_active_code"


class VerificationRecord(BaseModel):
    """Live verification code bound to an identifier."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts_used: int = Field(default=0, ge=0)
    # Codes this record replaced; they answer NO_ACTIVE_CODE while it lives
    superseded_codes: Tuple[str, ...] = ()

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def with_failed_attempt(self) -> "VerificationRecord":
        return self.model_copy(update={"attempts_used": self.attempts_used + 1})


class VerificationResult(BaseModel):
    """Verdict returned by VerificationService.verify()"""

    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    attempts_remaining: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == VerificationStatus.VERIFIED

    @property
    def message(self) -> str:
        """Default user-facing text for the verdict."""
        if self.status == VerificationStatus.VERIFIED:
            return "Verification code accepted"
        if self.status == VerificationStatus.INVALID:
            return f"Invalid verification code. {self.attempts_remaining} attempts remaining."
        if self.status == VerificationStatus.EXPIRED:
            return "Verification code has expired. Please request a new code."
        if self.status == VerificationStatus.ATTEMPTS_EXHAUSTED:
            return "Maximum attempts exceeded. Please request a new code."
        return "No active verification code. Please request a new one."
