import logging

from authlib.integrations.starlette_client import OAuth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from app.services.exceptions import Unauthorized
from app.services.provider_linker import ProviderIdentity

logger = logging.getLogger(__name__)

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"
GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


def build_google_oauth(config) -> OAuth:
    """Register the Google client used by the browser redirect flow."""
    oauth = OAuth()
    oauth.register(
        name="google",
        client_id=config.GOOGLE_CLIENT_ID,
        client_secret=config.GOOGLE_CLIENT_SECRET,
        server_metadata_url=GOOGLE_METADATA_URL,
        client_kwargs={"scope": "openid email profile"},
    )
    return oauth


class GoogleTokenVerifier:
    """Verifies Google ID tokens sent by the web, iOS and Android clients."""

    def __init__(self, config):
        self.client_ids = config.google_client_ids
        self._request = google_requests.Request()

    def verify(self, token: str) -> ProviderIdentity:
        if not self.client_ids:
            raise Unauthorized("Google sign-in is not configured")
        try:
            # audience is checked against every configured client id below
            claims = google_id_token.verify_oauth2_token(token, self._request, audience=None)
        except (ValueError, GoogleAuthError) as exc:
            logger.warning("Rejected Google ID token: %s", exc)
            raise Unauthorized("Invalid Google token")
        return self.identity_from_claims(claims)

    def identity_from_claims(self, claims: dict) -> ProviderIdentity:
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise Unauthorized("Invalid Google token issuer")
        if claims.get("aud") not in self.client_ids:
            raise Unauthorized("Google token was issued for another client")
        subject = claims.get("sub")
        if not subject:
            raise Unauthorized("Invalid Google token")

        email = claims.get("email") if claims.get("email_verified") in (True, "true") else None
        return ProviderIdentity(provider_id=subject, email=email, name=claims.get("name"))
