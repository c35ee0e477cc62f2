from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.services.apple_auth_service import AppleTokenVerifier
from app.services.auth_service import SessionIssuer
from app.services.credential_store import CredentialStore
from app.services.exceptions import NotFound, TokenInvalid
from app.services.google_auth_service import GoogleTokenVerifier
from app.services.line_type_service import LineTypeLookup
from app.services.password_hasher import PasswordHasher
from app.services.phone_verification import PhoneVerificationService
from app.services.provider_linker import ProviderLinker
from app.services.sms_service import SmsSender

# Process-wide components are built once in app.main and kept on app.state.


def get_settings(request: Request):
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def get_sms_sender(request: Request) -> SmsSender:
    return request.app.state.sms_sender


def get_line_type_lookup(request: Request) -> LineTypeLookup:
    return request.app.state.line_type_lookup


def get_google_verifier(request: Request) -> GoogleTokenVerifier:
    return request.app.state.google_verifier


def get_apple_verifier(request: Request) -> AppleTokenVerifier:
    return request.app.state.apple_verifier


def get_credential_store(
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> CredentialStore:
    return CredentialStore(db, hasher)


def get_provider_linker(store: CredentialStore = Depends(get_credential_store)) -> ProviderLinker:
    return ProviderLinker(store)


def get_phone_verification(
    store: CredentialStore = Depends(get_credential_store),
    sender: SmsSender = Depends(get_sms_sender),
    lookup: LineTypeLookup = Depends(get_line_type_lookup),
    config=Depends(get_settings),
) -> PhoneVerificationService:
    return PhoneVerificationService(store.db, store, sender, lookup, config)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(settings.bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
    store: CredentialStore = Depends(get_credential_store),
) -> User:
    # TokenExpired / TokenInvalid propagate to the app-level AuthError handler
    user_id = issuer.validate(credentials.credentials)
    try:
        return store.get_by_id(user_id)
    except NotFound:
        # signed for an account that no longer exists
        raise TokenInvalid("Session refers to a deleted account")
