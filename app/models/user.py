import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Integer,
    String,
    UniqueConstraint,
)

from app.database import Base
from app.utils.clock import utcnow


class AuthProvider(str, enum.Enum):
    email = "email"
    google = "google"
    apple = "apple"


EXTERNAL_PROVIDERS = (AuthProvider.google, AuthProvider.apple)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
        # password_hash only for email accounts, provider_id only for linked ones
        CheckConstraint(
            "(provider = 'email' AND password_hash IS NOT NULL AND provider_id IS NULL) OR "
            "(provider != 'email' AND password_hash IS NULL AND provider_id IS NOT NULL)",
            name="ck_users_provider_credential",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, nullable=True)

    provider = Column(
        Enum(AuthProvider, name="auth_provider", native_enum=False),
        nullable=False,
        default=AuthProvider.email,
    )
    password_hash = Column(String, nullable=True)
    provider_id = Column(String, nullable=True, index=True)

    # E.164, only ever written once confirmed, so uniqueness covers verified numbers
    phone_number = Column(String, unique=True, nullable=True)
    phone_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
