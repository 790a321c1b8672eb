"""
Celery tasks for email operations.

Handles asynchronous verification email sending with retry logic.
"""

import logging
from typing import Optional
from celery import shared_task

logger = logging.getLogger(__name__)

_email_service = None


def get_email_service():
    """Lazily build the SES-backed service so importing tasks needs no AWS config"""
    global _email_service
    if _email_service is None:
        from storefront.services.email_service import EmailService
        _email_service = EmailService()
    return _email_service


class EmailNotSent(Exception):
    """SES did not accept the message; raised so Celery retries the task."""


@shared_task(
    bind=True,
    name="send_verification_email_task",
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(EmailNotSent,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True
)
def send_verification_email_task(
    self,
    to_email: str,
    verification_code: str,
    user_name: Optional[str] = None
):
    """
    Celery task to send a verification email asynchronously.

    Features:
    - Automatic retry on failure (up to 3 attempts)
    - Exponential backoff with jitter

    Raises:
        EmailNotSent: If SES rejects the message (triggers a retry)
    """
    logger.info(f"Sending verification email to {to_email} (attempt {self.request.retries + 1})")

    success = get_email_service().send_verification_email(
        to_email=to_email,
        verification_code=verification_code,
        user_name=user_name
    )

    if not success:
        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for {to_email}")
        raise EmailNotSent(f"Failed to send verification email to {to_email}")

    logger.info(f"Verification email sent successfully to {to_email}")
    return {"status": "success", "email": to_email}
