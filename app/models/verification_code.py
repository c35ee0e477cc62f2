from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.database import Base
from app.utils.clock import utcnow


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    # One live code per number; issuing a new one replaces the row
    phone_number = Column(String, primary_key=True)
    # Account that asked for the code. The number is copied onto it only on confirmation.
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    code_hash = Column(String, nullable=False)
    issued_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    attempts_remaining = Column(Integer, nullable=False)
