import os
from pathlib import Path
from dotenv import load_dotenv
from fastapi.security import HTTPBearer

BASE_DIR = Path(__file__).resolve().parent.parent  # -> project root

# Load .env explicitly from project root
load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str, default: str = "") -> list[str]:
    return [
        item.strip()
        for item in os.getenv(name, default).split(",")
        if item.strip()
    ]


class Settings:
    """Process-wide configuration, read from the environment once at startup."""

    PROJECT_NAME = "Identity Backend"

    bearer_scheme = HTTPBearer()

    def __init__(self):
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./identity.db")

        # Sessions
        self.JWT_SECRET = os.getenv("JWT_SECRET")
        self.ALGORITHM = os.getenv("ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

        # Passwords
        self.BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

        # Phone verification
        self.PHONE_CODE_LENGTH = int(os.getenv("PHONE_CODE_LENGTH", 6))
        self.PHONE_CODE_TTL_MINUTES = int(os.getenv("PHONE_CODE_TTL_MINUTES", 10))
        self.PHONE_CODE_MAX_ATTEMPTS = int(os.getenv("PHONE_CODE_MAX_ATTEMPTS", 5))
        self.REJECT_VOIP_NUMBERS = _env_bool("REJECT_VOIP_NUMBERS")

        # SMS delivery: console | twilio | sns
        self.SMS_PROVIDER = os.getenv("SMS_PROVIDER", "console").lower()
        self.TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
        self.TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
        self.TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")
        self.AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
        self.AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
        self.AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
        self.SNS_SENDER_ID = os.getenv("SNS_SENDER_ID")

        # Line type lookup: none | twilio
        self.LINE_TYPE_PROVIDER = os.getenv("LINE_TYPE_PROVIDER", "none").lower()

        # Google sign-in
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
        self.GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI")
        self.GOOGLE_IOS_CLIENT_ID = os.getenv("GOOGLE_IOS_CLIENT_ID")
        self.GOOGLE_ANDROID_CLIENT_ID = os.getenv("GOOGLE_ANDROID_CLIENT_ID")

        # Apple sign-in
        self.APPLE_BUNDLE_ID = os.getenv("APPLE_BUNDLE_ID")
        self.APPLE_SERVICE_ID = os.getenv("APPLE_SERVICE_ID")

        # Default account created on an empty database
        self.SEED_EMAIL = os.getenv("SEED_EMAIL")
        self.SEED_PASSWORD = os.getenv("SEED_PASSWORD")
        self.SEED_NAME = os.getenv("SEED_NAME", "Admin")

        self.cors_origins = _env_list("CORS_ORIGINS", "*")

    @property
    def google_client_ids(self) -> list[str]:
        """Every OAuth client id whose Google ID tokens we accept."""
        candidates = (
            self.GOOGLE_CLIENT_ID,
            self.GOOGLE_IOS_CLIENT_ID,
            self.GOOGLE_ANDROID_CLIENT_ID,
        )
        return [client_id for client_id in candidates if client_id]

    @property
    def apple_audiences(self) -> list[str]:
        return [aud for aud in (self.APPLE_BUNDLE_ID, self.APPLE_SERVICE_ID) if aud]


settings = Settings()
