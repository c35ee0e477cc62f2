import logging

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.config import settings
from app.database import Base, engine
from app.models import user, verification_code  # noqa: F401  (register tables)
from app.routers import auth, google_auth, profile
from app.services.apple_auth_service import AppleTokenVerifier
from app.services.auth_service import SessionIssuer
from app.services.exceptions import AuthError
from app.services.google_auth_service import GoogleTokenVerifier, build_google_oauth
from app.services.line_type_service import build_line_type_lookup
from app.services.password_hasher import PasswordHasher
from app.services.sms_service import build_sms_sender
from app.utils.response import auth_error_handler, create_response, handle_exception
from seed import run_seed

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(SessionMiddleware, secret_key=settings.JWT_SECRET)

# Auto create tables
Base.metadata.create_all(bind=engine)

# CORS for SPA / API access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Components shared by every request, built once from settings
app.state.settings = settings
app.state.password_hasher = PasswordHasher(settings)
app.state.session_issuer = SessionIssuer(settings)
app.state.sms_sender = build_sms_sender(settings)
app.state.line_type_lookup = build_line_type_lookup(settings)
app.state.google_oauth = build_google_oauth(settings)
app.state.google_verifier = GoogleTokenVerifier(settings)
app.state.apple_verifier = AppleTokenVerifier(settings)

app.add_exception_handler(AuthError, auth_error_handler)


# Seed default account on startup
@app.on_event("startup")
async def startup_event():
    logger.info("SMS provider=%s line type provider=%s", settings.SMS_PROVIDER, settings.LINE_TYPE_PROVIDER)
    run_seed()


# Add routes
app.include_router(auth.router)
app.include_router(google_auth.router)
app.include_router(profile.router)


@app.get("/")
def home():
    try:
        return create_response(
            message="Identity API running",
            data={"service": "identity-backend"},
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@app.get("/api-info")
def api_info():
    try:
        return create_response(
            message="API information",
            data={"service": settings.PROJECT_NAME, "docs_url": app.docs_url},
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
