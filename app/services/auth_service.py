"""Stateless session tokens.

Tokens are JWTs signed with the process-wide ``JWT_SECRET``. Nothing is
stored server side: a token is valid while its signature checks out and
``exp`` is in the future.
"""

from datetime import timedelta
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from app.services.exceptions import TokenExpired, TokenInvalid
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


class SessionIssuer:
    def __init__(self, config):
        if not config.JWT_SECRET:
            raise RuntimeError("JWT_SECRET is not configured")
        self._secret = config.JWT_SECRET
        self._algorithm = config.ALGORITHM
        self._lifetime = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)

    @property
    def expires_in(self) -> int:
        return int(self._lifetime.total_seconds())

    def issue(self, user_id: int) -> str:
        """Mint a signed token for ``user_id`` that expires after the configured lifetime."""
        issued_at = utcnow()
        claims = {
            "sub": str(user_id),
            "type": ACCESS_TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + self._lifetime,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> int:
        """Return the user id carried by ``token``.

        Raises:
            TokenExpired: the token is past its ``exp`` claim.
            TokenInvalid: bad signature, wrong algorithm, wrong token type,
                or a malformed payload.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError as exc:
            logger.warning("Rejected session token: %s", exc)
            raise TokenInvalid()

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise TokenInvalid("Invalid token type")
        if "exp" not in payload:
            raise TokenInvalid("Token has no expiry")
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise TokenInvalid("Invalid token payload")
