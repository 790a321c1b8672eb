"""
Database table backing SqlAlchemyVerificationStore.

One row per identifier: issuing a code overwrites the row, consuming or
exhausting it deletes the row.
"""

from sqlalchemy import Column, String, DateTime, Integer, Index, JSON
from storefront.core.database import Base


class VerificationCode(Base):
    """
    Live verification code for an identifier.

    Features:
    - Primary key on identifier (one live code per identifier)
    - Expiry timestamp checked lazily at verification time
    - Attempt counter for brute force protection
    """
    __tablename__ = "verification_codes"

    identifier = Column(String(320), primary_key=True)

    code = Column(String(16), nullable=False)

    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    attempts_used = Column(Integer, nullable=False, default=0)

    # Codes replaced by this one, dropped together with the row
    superseded_codes = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index('ix_verification_codes_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"<VerificationCode(identifier={self.identifier}, expires_at={self.expires_at}, attempts_used={self.attempts_used})>"
