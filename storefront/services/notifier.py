"""
Out-of-band delivery of verification codes.

The verification service only needs "deliver this code to this identifier";
which transport is used is decided by configuration.
"""

import logging
from typing import List, Optional, Tuple

from storefront.core.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)


class CodeNotifier:
    """Abstract base class for code delivery channels"""

    def send_code(self, identifier: str, code: str) -> None:
        """
        Deliver a code to the identifier.

        Raises:
            DeliveryFailed: The channel did not accept the code
        """
        raise NotImplementedError


class LoggingCodeNotifier(CodeNotifier):
    """
    Development channel: records the issuance in the application log.

    The code value itself is only written at DEBUG level.
    """

    def send_code(self, identifier: str, code: str) -> None:
        logger.info(f"Verification code issued for {identifier} (log delivery)")
        logger.debug(f"Verification code for {identifier}: {code}")


class RecordingCodeNotifier(CodeNotifier):
    """Keeps delivered codes in memory. Used by tests and local tooling."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    def send_code(self, identifier: str, code: str) -> None:
        self.sent.append((identifier, code))

    def last_code_for(self, identifier: str) -> str:
        for sent_to, code in reversed(self.sent):
            if sent_to == identifier:
                return code
        raise KeyError(identifier)


class EmailCodeNotifier(CodeNotifier):
    """Sends the code synchronously through AWS SES."""

    def __init__(self, email_service=None):
        if email_service is None:
            from storefront.services.email_service import EmailService
            email_service = EmailService()
        self.email_service = email_service

    def send_code(self, identifier: str, code: str) -> None:
        sent = self.email_service.send_verification_email(
            to_email=identifier,
            verification_code=code
        )
        if not sent:
            raise DeliveryFailed(identifier, "email service rejected the message")


class QueuedEmailCodeNotifier(CodeNotifier):
    """
    Hands the code to a Celery worker that sends it through SES.

    Retries and backoff are the worker's concern; this only fails when the
    task cannot be queued at all. A message still waiting when the code
    expires is discarded by the worker.
    """

    def __init__(self, expires_in_seconds: Optional[int] = None):
        self.expires_in_seconds = expires_in_seconds

    def send_code(self, identifier: str, code: str) -> None:
        from storefront.core.celery_app import celery_app  # noqa: F401  binds shared tasks to the Redis broker
        from storefront.tasks.email_tasks import send_verification_email_task

        try:
            result = send_verification_email_task.apply_async(
                kwargs={"to_email": identifier, "verification_code": code},
                expires=self.expires_in_seconds
            )
        except Exception as e:
            logger.error(f"Failed to queue verification email for {identifier}: {str(e)}")
            raise DeliveryFailed(identifier, str(e)) from e

        logger.info(f"Verification email queued for {identifier} (task {result.id})")


def build_notifier(settings) -> CodeNotifier:
    """Select the delivery channel named by VERIFICATION_NOTIFIER"""
    if settings.VERIFICATION_NOTIFIER == "email":
        return EmailCodeNotifier()
    if settings.VERIFICATION_NOTIFIER == "queue":
        return QueuedEmailCodeNotifier(expires_in_seconds=settings.VERIFICATION_CODE_EXPIRY_MINUTES * 60)
    return LoggingCodeNotifier()
