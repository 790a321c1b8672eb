"""
Core verification code logic.

Handles generation, validation, and lifecycle management of numeric
one-time codes bound to an identifier (normally an email address).
"""

import hmac
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from storefront.core.clock import Clock, SystemClock
from storefront.core.verification_store import VerificationStore
from storefront.models.verification import (
    VerificationRecord,
    VerificationResult,
    VerificationStatus,
)
from storefront.services.notifier import CodeNotifier

logger = logging.getLogger(__name__)


# Defaults, overridable through Settings
CODE_LENGTH = 6
CODE_EXPIRATION_MINUTES = 10
MAX_VERIFICATION_ATTEMPTS = 3

# Longest code the verify endpoint accepts
MAX_CODE_LENGTH = 12


def generate_verification_code(length: int = CODE_LENGTH) -> str:
    """
    Generate a secure numeric verification code.

    The value is a uniform draw over the full range of ``length``-digit
    numbers (100000-999999 for 6 digits), so it is never zero padded.
    Uses the secrets module to prevent prediction attacks.

    Returns:
        str: numeric code (e.g., "123456")
    """
    if length < 1:
        raise ValueError("Code length must be at least 1")
    if length > MAX_CODE_LENGTH:
        raise ValueError(f"Code length must be at most {MAX_CODE_LENGTH}")
    lowest = 10 ** (length - 1) if length > 1 else 0
    highest = 10 ** length - 1
    return str(lowest + secrets.randbelow(highest - lowest + 1))


def code_space(length: int = CODE_LENGTH) -> int:
    """Number of distinct codes generate_verification_code can return"""
    if length == 1:
        return 10
    return 9 * 10 ** (length - 1)


def normalize_identifier(identifier: str) -> str:
    """Canonical form used as the store key (emails are case-insensitive)."""
    return identifier.strip().lower()


class VerificationService:
    """
    Issues and validates single-use verification codes.

    Rules:
    - One live code per identifier; issuing replaces the previous code
    - Codes expire ``expiry_window`` after issuance (checked lazily)
    - At most ``max_attempts`` wrong submissions per code
    - A code is consumed by its first successful verification
    """

    def __init__(
        self,
        store: VerificationStore,
        notifier: CodeNotifier,
        clock: Optional[Clock] = None,
        code_length: int = CODE_LENGTH,
        expiry_window: timedelta = timedelta(minutes=CODE_EXPIRATION_MINUTES),
        max_attempts: int = MAX_VERIFICATION_ATTEMPTS
    ):
        if not 1 <= code_length <= MAX_CODE_LENGTH:
            raise ValueError(f"code_length must be between 1 and {MAX_CODE_LENGTH}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if expiry_window <= timedelta(0):
            raise ValueError("expiry_window must be positive")
        self.store = store
        self.notifier = notifier
        self.clock = clock or SystemClock()
        self.code_length = code_length
        self.expiry_window = expiry_window
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(
        cls,
        settings,
        store: VerificationStore,
        notifier: CodeNotifier,
        clock: Optional[Clock] = None
    ) -> "VerificationService":
        return cls(
            store=store,
            notifier=notifier,
            clock=clock,
            code_length=settings.VERIFICATION_CODE_DIGITS,
            expiry_window=timedelta(minutes=settings.VERIFICATION_CODE_EXPIRY_MINUTES),
            max_attempts=settings.VERIFICATION_MAX_ATTEMPTS
        )

    def issue(self, identifier: str) -> str:
        """
        Create a new verification code for an identifier and dispatch it.

        - Replaces any previous code for the identifier
        - Persists the record, then hands the code to the notifier

        Args:
            identifier: Key the code is bound to (e.g. email address)

        Returns:
            str: The issued code. Callers must not echo it back to the
            requester; it travels only through the notifier.

        Raises:
            StorageUnavailable: The record could not be persisted
            DeliveryFailed: The notifier rejected the code
        """
        key = normalize_identifier(identifier)
        now = self.clock.now()
        candidate = generate_verification_code(self.code_length)

        def replace(
            current: Optional[VerificationRecord]
        ) -> Tuple[VerificationRecord, VerificationRecord]:
            superseded = ()
            if current is not None:
                superseded = current.superseded_codes + (current.code,)
                if len(superseded) >= code_space(self.code_length):
                    # Every possible code was handed out in this chain; start a new one
                    superseded = ()
            code = candidate
            # A replaced code must never become valid again
            while code in superseded:
                code = generate_verification_code(self.code_length)
            record = VerificationRecord(
                identifier=key,
                code=code,
                issued_at=now,
                expires_at=now + self.expiry_window,
                attempts_used=0,
                superseded_codes=superseded
            )
            return record, record

        record = self.store.update(key, replace)
        logger.info(
            f"Verification code issued for {key} (replaced_previous={bool(record.superseded_codes)}, "
            f"expires_at={record.expires_at.isoformat()})",
            extra={"identifier": key}
        )

        self.notifier.send_code(key, record.code)
        return record.code

    def reissue(self, identifier: str) -> str:
        """
        Replace any pending code with a fresh one ("resend").

        The replaced code answers NO_ACTIVE_CODE from now on.

        Returns:
            str: The newly issued code
        """
        logger.info(f"Verification code resend requested for {normalize_identifier(identifier)}")
        return self.issue(identifier)

    def revoke(self, identifier: str) -> bool:
        """
        Purge any pending code for an identifier.

        Returns:
            bool: True if a record existed
        """
        key = normalize_identifier(identifier)
        removed = self.store.update(key, lambda current: (None, current is not None))
        if removed:
            logger.info(f"Verification code revoked for {key}", extra={"identifier": key})
        return removed

    def verify(self, identifier: str, submitted_code: str) -> VerificationResult:
        """
        Check a submitted code.

        Checks, in order:
        - A record must exist (NO_ACTIVE_CODE otherwise, nothing changes)
        - The record must not be expired (EXPIRED, record purged)
        - The attempt ceiling must not be reached (ATTEMPTS_EXHAUSTED, record purged)
        - The code must match (VERIFIED, record consumed)
        - A code replaced by a later issue gets NO_ACTIVE_CODE, nothing changes
        - A mismatch costs one attempt (INVALID with attempts remaining, or
          ATTEMPTS_EXHAUSTED when it was the last one)

        Args:
            identifier: Key the code was issued for
            submitted_code: Code entered by the user

        Returns:
            VerificationResult: The verdict

        Raises:
            StorageUnavailable: The store could not be read or written
        """
        key = normalize_identifier(identifier)
        submitted = (submitted_code or "").strip()
        now = self.clock.now()

        def decide(
            current: Optional[VerificationRecord]
        ) -> Tuple[Optional[VerificationRecord], VerificationResult]:
            if current is None:
                return None, VerificationResult(status=VerificationStatus.NO_ACTIVE_CODE)

            if current.is_expired(now):
                return None, VerificationResult(status=VerificationStatus.EXPIRED)

            if current.attempts_used >= self.max_attempts:
                return None, VerificationResult(
                    status=VerificationStatus.ATTEMPTS_EXHAUSTED,
                    attempts_remaining=0
                )

            if hmac.compare_digest(current.code.encode(), submitted.encode()):
                return None, VerificationResult(status=VerificationStatus.VERIFIED)

            if any(hmac.compare_digest(old.encode(), submitted.encode()) for old in current.superseded_codes):
                return current, VerificationResult(status=VerificationStatus.NO_ACTIVE_CODE)

            updated = current.with_failed_attempt()
            remaining = self.max_attempts - updated.attempts_used
            if remaining <= 0:
                return None, VerificationResult(
                    status=VerificationStatus.ATTEMPTS_EXHAUSTED,
                    attempts_remaining=0
                )
            return updated, VerificationResult(
                status=VerificationStatus.INVALID,
                attempts_remaining=remaining
            )

        result = self.store.update(key, decide)
        log_context = {"identifier": key, "verification_status": result.status.value}

        if result.status == VerificationStatus.VERIFIED:
            logger.info(f"Verification succeeded for {key}", extra=log_context)
        elif result.status == VerificationStatus.INVALID:
            logger.info(f"Invalid verification code for {key} ({result.attempts_remaining} attempts remaining)", extra=log_context)
        elif result.status == VerificationStatus.NO_ACTIVE_CODE:
            logger.info(f"Verification attempted for {key} with no active code", extra=log_context)
        else:
            logger.warning(f"Verification for {key} ended with {result.status.value}; record purged", extra=log_context)

        return result

    def get_active_record(self, identifier: str) -> Optional[VerificationRecord]:
        """
        Get the pending (non-expired, not exhausted) record for an identifier.

        Read-only: an expired record found here is left for verify() to purge.
        """
        record = self.store.get(normalize_identifier(identifier))
        if record is None:
            return None
        if record.is_expired(self.clock.now()) or record.attempts_used >= self.max_attempts:
            return None
        return record
