"""
Pydantic schemas for verification code endpoints.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator
import re

from storefront.core.verification import MAX_CODE_LENGTH
from storefront.models.verification import VerificationStatus


class SendCodeRequest(BaseModel):
    """Request to send (or resend) a verification code"""
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    """Request to verify a numeric code"""
    email: EmailStr
    code: str = Field(..., min_length=1, max_length=MAX_CODE_LENGTH, description="Numeric verification code")

    @field_validator('code')
    @classmethod
    def validate_code_format(cls, v: str) -> str:
        """Ensure code is digits only"""
        v = v.strip()
        if not re.match(r'^\d+$', v):
            raise ValueError('Code must contain digits only')
        return v


class SendCodeResponse(BaseModel):
    """Response after sending a verification code (never includes the code)"""
    success: bool
    message: str
    expires_in_minutes: int


class VerificationResponse(BaseModel):
    """Response after a verification attempt"""
    success: bool
    status: VerificationStatus
    message: str
    attempts_remaining: Optional[int] = None


class VerificationStateResponse(BaseModel):
    """Whether an identifier has a pending code"""
    email: str
    pending: bool
    message: str
    expires_at: Optional[datetime] = None
    attempts_remaining: Optional[int] = None


class RevokeCodeResponse(BaseModel):
    success: bool
    revoked: bool
