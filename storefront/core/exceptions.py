"""
Infrastructure failures raised by the access core.

Verification verdicts (expired, invalid, ...) are NOT exceptions; they are
returned as VerificationResult values. Only failures of the collaborators
(persistence, code delivery) are raised, and never retried here.
"""


class AccessCoreError(Exception):
    """Base class for errors surfaced by the access core."""


class StorageUnavailable(AccessCoreError):
    """The verification record store could not be read or written."""


class DeliveryFailed(AccessCoreError):
    """The notification channel failed to accept a verification code."""

    def __init__(self, identifier: str, reason: str = ""):
        self.identifier = identifier
        self.reason = reason
        message = f"Failed to deliver verification code to {identifier}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
