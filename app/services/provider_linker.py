import logging
from dataclasses import dataclass

from app.models.user import User
from app.services.credential_store import CredentialStore, normalize_email, parse_external_provider
from app.services.exceptions import Conflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderIdentity:
    """A verified external identity as reported by Google or Apple."""

    provider_id: str
    email: str | None = None
    name: str | None = None


class ProviderLinker:
    """Associates Google/Apple identities with local user records."""

    def __init__(self, store: CredentialStore):
        self.store = store

    def link_or_create(self, provider, provider_id: str, email: str | None, name: str | None) -> User:
        """Return the user for ``(provider, provider_id)``, creating it on first sight.

        Apple only shares email and name on the very first sign-in, so later
        calls may pass ``None`` for both and still resolve the same record.
        """
        provider = parse_external_provider(provider)

        user = self.store.find_by_provider(provider, provider_id)
        if user:
            return user

        email = normalize_email(email)
        try:
            user = self.store.create_user(email, name, provider, provider_id)
        except Conflict:
            # a concurrent request may have created this identity first
            user = self.store.find_by_provider(provider, provider_id)
            if user:
                return user
            logger.warning("%s sign-in collided with an existing account email", provider.value)
            raise Conflict("This email is already registered with a different sign-in method")

        logger.info("Linked %s identity to new user id=%s", provider.value, user.id)
        return user
