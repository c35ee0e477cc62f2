import logging

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.models.user import AuthProvider
from app.routers.auth import session_payload
from app.schemas.user import GoogleTokenLogin
from app.services.auth_middleware import (
    get_google_verifier,
    get_provider_linker,
    get_session_issuer,
    get_settings,
)
from app.services.auth_service import SessionIssuer
from app.services.exceptions import Unauthorized
from app.services.google_auth_service import GoogleTokenVerifier
from app.services.provider_linker import ProviderLinker
from app.utils.response import create_response, handle_exception

router = APIRouter(prefix="/auth/google", tags=["Google Auth"])
logger = logging.getLogger(__name__)


@router.get("/login")
async def google_login(request: Request, config=Depends(get_settings)):
    if not config.GOOGLE_CLIENT_ID or not config.GOOGLE_REDIRECT_URI:
        return handle_exception(
            HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Google sign-in is not configured")
        )
    google_oauth = request.app.state.google_oauth.google
    return await google_oauth.authorize_redirect(request, config.GOOGLE_REDIRECT_URI)


@router.get("/callback")
async def google_callback(
    request: Request,
    verifier: GoogleTokenVerifier = Depends(get_google_verifier),
    linker: ProviderLinker = Depends(get_provider_linker),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    try:
        try:
            token = await request.app.state.google_oauth.google.authorize_access_token(request)
        except OAuthError as exc:
            logger.warning("Google authorization failed: %s", exc)
            raise Unauthorized("Google authentication failed")

        user_info = token.get("userinfo")
        if not user_info:
            raise Unauthorized("Invalid Google token")

        identity = verifier.identity_from_claims(dict(user_info))
        user = linker.link_or_create(AuthProvider.google, identity.provider_id, identity.email, identity.name)
        return create_response(
            message="Google login success",
            data=session_payload(user, issuer),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/token")
def google_token_login(
    body: GoogleTokenLogin,
    verifier: GoogleTokenVerifier = Depends(get_google_verifier),
    linker: ProviderLinker = Depends(get_provider_linker),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """Sign in with an ID token obtained by a native Google SDK."""
    try:
        identity = verifier.verify(body.id_token)
        user = linker.link_or_create(AuthProvider.google, identity.provider_id, identity.email, identity.name)
        return create_response(
            message="Google login success",
            data=session_payload(user, issuer),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
