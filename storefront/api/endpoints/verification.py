"""
Email verification endpoints.

Handles sending, resending, verifying and revoking numeric verification codes.
The code itself only ever travels through the notifier, never in a response.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import EmailStr

from storefront.api.deps import get_verification_service
from storefront.core.verification import VerificationService
from storefront.schemas.verification import (
    RevokeCodeResponse,
    SendCodeRequest,
    SendCodeResponse,
    VerificationResponse,
    VerificationStateResponse,
    VerifyCodeRequest,
)

router = APIRouter(prefix="/auth", tags=["Email Verification"])
logger = logging.getLogger(__name__)


def _expires_in_minutes(service: VerificationService) -> int:
    return int(service.expiry_window.total_seconds() // 60)


@router.post("/send-verification-code", response_model=SendCodeResponse)
def send_verification_code(
    request: SendCodeRequest,
    service: VerificationService = Depends(get_verification_service)
):
    """
    Generate and send a verification code to an email address.

    Any code previously sent to the address stops working.

    Returns:
        SendCodeResponse: Success message and expiration time

    Raises:
        HTTPException 502: Code could not be delivered
        HTTPException 503: Verification store unavailable
    """
    service.issue(request.email)

    logger.info(f"Verification code sent to {request.email}")

    return SendCodeResponse(
        success=True,
        message=f"Verification code sent to {request.email}",
        expires_in_minutes=_expires_in_minutes(service)
    )


@router.post("/resend-verification-code", response_model=SendCodeResponse)
def resend_verification_code(
    request: SendCodeRequest,
    service: VerificationService = Depends(get_verification_service)
):
    """
    Resend a verification code.

    Discards the pending code and sends a new one.
    """
    service.reissue(request.email)

    logger.info(f"Verification code resent to {request.email}")

    return SendCodeResponse(
        success=True,
        message=f"New verification code sent to {request.email}",
        expires_in_minutes=_expires_in_minutes(service)
    )


@router.post("/verify-email", response_model=VerificationResponse)
def verify_email(
    request: VerifyCodeRequest,
    service: VerificationService = Depends(get_verification_service)
):
    """
    Verify an email address with the code that was sent to it.

    Returns:
        VerificationResponse: status "verified"

    Raises:
        HTTPException 400: Invalid, expired, exhausted or missing code; the
            detail carries the same fields as the success response
    """
    result = service.verify(request.email, request.code)
    response = VerificationResponse(
        success=result.success,
        status=result.status,
        message=result.message,
        attempts_remaining=result.attempts_remaining
    )

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=response.model_dump(mode="json")
        )

    logger.info(f"{request.email} successfully verified")
    return response


@router.get("/verification-status", response_model=VerificationStateResponse)
def get_verification_status(
    email: EmailStr = Query(...),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Report whether an email address has a pending verification code.
    """
    record = service.get_active_record(email)

    if record is None:
        return VerificationStateResponse(
            email=email,
            pending=False,
            message="No pending verification. Please request a verification code."
        )

    return VerificationStateResponse(
        email=email,
        pending=True,
        message="Verification pending. Please check your email for the code.",
        expires_at=record.expires_at,
        attempts_remaining=service.max_attempts - record.attempts_used
    )


@router.delete("/verification-code", response_model=RevokeCodeResponse)
def revoke_verification_code(
    email: EmailStr = Query(...),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Discard any pending code for an email address (e.g. account deactivated).
    """
    revoked = service.revoke(email)
    return RevokeCodeResponse(success=True, revoked=revoked)
