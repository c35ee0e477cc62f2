import logging
import secrets
from functools import cached_property

import bcrypt

from app.services.exceptions import Invalid

logger = logging.getLogger(__name__)

# bcrypt silently ignores everything past this many bytes
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way bcrypt digests for email/password accounts."""

    def __init__(self, config):
        self.rounds = config.BCRYPT_ROUNDS

    def hash(self, plaintext: str) -> str:
        password_bytes = plaintext.encode("utf-8")
        if len(password_bytes) > MAX_PASSWORD_BYTES:
            raise Invalid(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify(self, plaintext: str, hashed: str | None) -> bool:
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

    @cached_property
    def dummy_hash(self) -> str:
        """Hash at the configured cost to check against when there is no account."""
        return self.hash(secrets.token_urlsafe(16))
