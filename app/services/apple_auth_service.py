import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from app.services.exceptions import Unauthorized
from app.services.provider_linker import ProviderIdentity

APPLE_ISSUER = "https://appleid.apple.com"
APPLE_KEYS_URL = "https://appleid.apple.com/auth/keys"
_CACHE_TTL_SECONDS = 60 * 60
# unknown kids can come from forged tokens, so forced refetches are rate limited
_MIN_REFETCH_INTERVAL_SECONDS = 5 * 60

logger = logging.getLogger(__name__)


class AppleTokenVerifier:
    """Verifies Sign in with Apple identity tokens against Apple's published keys."""

    def __init__(self, config, http_client: Optional[httpx.Client] = None):
        self.audiences = config.apple_audiences
        self._http = http_client or httpx.Client(timeout=10)
        self._keys: List[Dict[str, Any]] = []
        self._keys_expire_at = 0.0
        self._fetched_at = 0.0

    def _fetch_keys(self, force: bool = False) -> List[Dict[str, Any]]:
        now = time.time()
        fresh = self._keys and self._keys_expire_at > now
        if fresh and (not force or now - self._fetched_at < _MIN_REFETCH_INTERVAL_SECONDS):
            return self._keys
        try:
            response = self._http.get(APPLE_KEYS_URL)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Could not fetch Apple signing keys: %s", exc)
            raise Unauthorized("Could not verify the Apple token")
        self._keys = response.json().get("keys", [])
        self._fetched_at = time.time()
        self._keys_expire_at = self._fetched_at + _CACHE_TTL_SECONDS
        return self._keys

    def _signing_key(self, kid: str | None) -> Optional[Dict[str, Any]]:
        for force in (False, True):
            # Apple rotates keys; an unknown kid triggers at most one refetch per interval
            for key in self._fetch_keys(force=force):
                if key.get("kid") == kid:
                    return key
        return None

    def verify(self, token: str, name: str | None = None) -> ProviderIdentity:
        if not self.audiences:
            raise Unauthorized("Apple sign-in is not configured")
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise Unauthorized("Invalid Apple token")

        key = self._signing_key(header.get("kid"))
        if key is None:
            raise Unauthorized("Unknown Apple signing key")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                issuer=APPLE_ISSUER,
                options={"verify_aud": False, "verify_at_hash": False},
            )
        except ExpiredSignatureError:
            raise Unauthorized("Apple token expired")
        except JWTError as exc:
            logger.warning("Rejected Apple identity token: %s", exc)
            raise Unauthorized("Invalid Apple token")

        if claims.get("aud") not in self.audiences:
            raise Unauthorized("Apple token was issued for another client")
        subject = claims.get("sub")
        if not subject:
            raise Unauthorized("Invalid Apple token")

        return ProviderIdentity(provider_id=subject, email=claims.get("email"), name=name)
