from fastapi import APIRouter, Depends, status

from app.models.user import AuthProvider, User
from app.schemas.user import (
    AppleLogin,
    LoginRequest,
    PhoneCodeConfirm,
    PhoneCodeRequest,
    ProfileResponse,
    SignupRequest,
    TokenResponse,
)
from app.services.apple_auth_service import AppleTokenVerifier
from app.services.auth_middleware import (
    get_apple_verifier,
    get_credential_store,
    get_current_user,
    get_phone_verification,
    get_provider_linker,
    get_session_issuer,
)
from app.services.auth_service import SessionIssuer
from app.services.credential_store import CredentialStore
from app.services.phone_verification import PhoneVerificationService
from app.services.provider_linker import ProviderLinker
from app.utils.response import create_response, handle_exception

router = APIRouter(prefix="/auth", tags=["Auth"])


def session_payload(user: User, issuer: SessionIssuer) -> dict:
    return TokenResponse(
        access_token=issuer.issue(user.id),
        expires_in=issuer.expires_in,
        user=ProfileResponse.model_validate(user),
    ).model_dump()


@router.post("/signup")
def signup(
    body: SignupRequest,
    store: CredentialStore = Depends(get_credential_store),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    try:
        user = store.create_user(body.email, body.name, AuthProvider.email, body.password)
        return create_response(
            message="Account created successfully",
            data=session_payload(user, issuer),
            status_code=status.HTTP_201_CREATED
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/login")
def login(
    body: LoginRequest,
    store: CredentialStore = Depends(get_credential_store),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    try:
        user = store.verify_password(body.email, body.password)
        return create_response(
            message="Login successful",
            data=session_payload(user, issuer),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/apple")
def apple_login(
    body: AppleLogin,
    verifier: AppleTokenVerifier = Depends(get_apple_verifier),
    linker: ProviderLinker = Depends(get_provider_linker),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    try:
        identity = verifier.verify(body.identity_token, name=body.name)
        user = linker.link_or_create(AuthProvider.apple, identity.provider_id, identity.email, identity.name)
        return create_response(
            message="Apple login success",
            data=session_payload(user, issuer),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/phone/request")
def request_phone_code(
    body: PhoneCodeRequest,
    current_user: User = Depends(get_current_user),
    verification: PhoneVerificationService = Depends(get_phone_verification),
):
    try:
        record = verification.request_code(body.phone_number, user_id=current_user.id)
        return create_response(
            message="Verification code sent",
            data={
                "phone_number": record.phone_number,
                "expires_at": record.expires_at,
                "attempts_remaining": record.attempts_remaining,
            },
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/phone/confirm")
def confirm_phone_code(
    body: PhoneCodeConfirm,
    current_user: User = Depends(get_current_user),
    verification: PhoneVerificationService = Depends(get_phone_verification),
):
    try:
        user = verification.confirm_code(body.phone_number, body.code, user_id=current_user.id)
        return create_response(
            message="Phone number verified",
            data=ProfileResponse.model_validate(user).model_dump(),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/phone/status")
def phone_status(
    current_user: User = Depends(get_current_user),
    verification: PhoneVerificationService = Depends(get_phone_verification),
):
    try:
        pending = verification.pending_for(current_user.id)
        state = verification.state_of(pending.phone_number) if pending else None
        return create_response(
            message="Phone verification status",
            data={
                "phone_number": current_user.phone_number,
                "phone_verified": current_user.phone_verified,
                "pending_number": pending.phone_number if pending else None,
                "pending_code": state.value if state else None,
            },
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    try:
        return create_response(
            message="Session is valid",
            data=ProfileResponse.model_validate(current_user).model_dump(),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
