import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import EXTERNAL_PROVIDERS, AuthProvider, User
from app.models.verification_code import VerificationCode
from app.services.exceptions import Conflict, Invalid, NotFound, Unauthorized
from app.services.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    return normalized or None


class CredentialStore:
    """Persists user identity records.

    Uniqueness of ``email``, ``(provider, provider_id)`` and ``phone_number``
    is enforced by the database; integrity errors surface as ``Conflict``.
    """

    def __init__(self, db: Session, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    def create_user(self, email: str | None, name: str | None, provider, credential: str) -> User:
        provider = parse_provider(provider)
        email = normalize_email(email)

        if email and self.db.query(User.id).filter(User.email == email).first():
            raise Conflict("An account with this email already exists")

        user = User(email=email, name=name, provider=provider, phone_verified=False)
        if provider == AuthProvider.email:
            if not email:
                raise Invalid("Email is required for password accounts")
            user.password_hash = self.hasher.hash(credential)
        else:
            if not credential:
                raise Invalid("Provider id is required for linked accounts")
            user.provider_id = credential

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # lost a race with a concurrent insert of the same identity
            self.db.rollback()
            raise Conflict()
        self.db.refresh(user)
        logger.info("Created %s account id=%s", provider.value, user.id)
        return user

    def find_by_email(self, email: str) -> User:
        user = self.db.query(User).filter(User.email == normalize_email(email)).first()
        if not user:
            raise NotFound("User not found")
        return user

    def get_by_id(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    def find_by_provider(self, provider, provider_id: str) -> User | None:
        return (
            self.db.query(User)
            .filter(User.provider == parse_provider(provider), User.provider_id == provider_id)
            .first()
        )

    def find_by_phone(self, phone_number: str) -> User | None:
        return self.db.query(User).filter(User.phone_number == phone_number).first()

    def verify_password(self, email: str, plaintext: str) -> User:
        user = self.db.query(User).filter(User.email == normalize_email(email)).first()
        if not user or user.provider != AuthProvider.email:
            # same bcrypt cost as a real check, so timing does not reveal the account
            self.hasher.verify(plaintext, self.hasher.dummy_hash)
            raise Unauthorized()
        if not self.hasher.verify(plaintext, user.password_hash):
            raise Unauthorized()
        return user

    def ensure_phone_available(self, user_id: int | None, phone_number: str) -> None:
        holder = self.find_by_phone(phone_number)
        if holder and holder.id != user_id:
            raise Conflict("This phone number is linked to another account")

    def claim_phone(self, user: User, phone_number: str) -> User:
        """Record a confirmed number on ``user``. Flushes; the caller commits."""
        self.ensure_phone_available(user.id, phone_number)
        user.phone_number = phone_number
        user.phone_verified = True
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("This phone number is linked to another account")
        logger.info("Phone verified for user id=%s", user.id)
        return user

    def update_profile(self, user: User, name: str | None) -> User:
        user.name = name
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, user: User) -> None:
        self.db.query(VerificationCode).filter(
            or_(
                VerificationCode.user_id == user.id,
                VerificationCode.phone_number == user.phone_number,
            )
        ).delete(synchronize_session=False)
        self.db.delete(user)
        self.db.commit()
        logger.info("Deleted account id=%s", user.id)


def parse_provider(value) -> AuthProvider:
    try:
        return AuthProvider(value)
    except ValueError:
        raise Invalid(f"Unknown provider: {value}")


def parse_external_provider(value) -> AuthProvider:
    provider = parse_provider(value)
    if provider not in EXTERNAL_PROVIDERS:
        raise Invalid(f"{provider.value} accounts cannot be linked")
    return provider
