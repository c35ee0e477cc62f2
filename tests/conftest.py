import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

# Ensure predictable environment variables for tests before importing the app.
BASE_DIR = Path(__file__).resolve().parents[1]
TEST_DB_PATH = BASE_DIR / "test.db"

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{TEST_DB_PATH}")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SMS_PROVIDER", "console")
os.environ.setdefault("LINE_TYPE_PROVIDER", "none")

import app.main as main  # noqa: E402  (import after env vars are set)
from app.database import Base, SessionLocal, engine  # noqa: E402
from app.services.auth_middleware import get_line_type_lookup, get_sms_sender  # noqa: E402
from app.services.credential_store import CredentialStore  # noqa: E402
from app.services.line_type_service import LineType  # noqa: E402
from app.services.password_hasher import PasswordHasher  # noqa: E402
from app.services.sms_service import SmsDeliveryError  # noqa: E402


class FakeSmsSender:
    """Records outgoing messages; can be told to fail."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send(self, to_number: str, body: str) -> None:
        if self.fail:
            raise SmsDeliveryError("carrier unavailable")
        self.sent.append((to_number, body))

    def last_code(self) -> str:
        _, body = self.sent[-1]
        return next(word for word in body.replace(".", " ").split() if word.isdigit() and len(word) >= 4)


class FakeLineTypeLookup:
    def __init__(self, line_types: dict[str, LineType] | None = None):
        self.line_types = line_types or {}

    def classify(self, number: str) -> LineType:
        return self.line_types.get(number, LineType.mobile)


def make_config(**overrides):
    values = {
        "JWT_SECRET": "test-secret",
        "ALGORITHM": "HS256",
        "ACCESS_TOKEN_EXPIRE_MINUTES": 60,
        "BCRYPT_ROUNDS": 4,
        "PHONE_CODE_LENGTH": 6,
        "PHONE_CODE_TTL_MINUTES": 10,
        "PHONE_CODE_MAX_ATTEMPTS": 5,
        "REJECT_VOIP_NUMBERS": False,
        "google_client_ids": ["web-client.apps.googleusercontent.com"],
        "apple_audiences": ["com.example.app"],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def config_factory():
    return make_config


@pytest.fixture()
def config():
    return make_config()


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db, config):
    return CredentialStore(db, PasswordHasher(config))


@pytest.fixture()
def sms_sender():
    return FakeSmsSender()


@pytest.fixture()
def line_type_lookup():
    return FakeLineTypeLookup()


@pytest.fixture()
def client(monkeypatch, sms_sender, line_type_lookup):
    """Provide a TestClient with startup tasks patched out for isolation."""
    monkeypatch.setattr(main, "run_seed", lambda: None)
    main.app.dependency_overrides[get_sms_sender] = lambda: sms_sender
    main.app.dependency_overrides[get_line_type_lookup] = lambda: line_type_lookup

    with TestClient(main.app) as test_client:
        yield test_client

    main.app.dependency_overrides.pop(get_sms_sender, None)
    main.app.dependency_overrides.pop(get_line_type_lookup, None)
