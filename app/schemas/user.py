import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import AuthProvider

E164_PATTERN = re.compile(r"^\+[1-9]\d{7,14}$")


def _normalize_phone(value: str) -> str:
    compact = re.sub(r"[\s\-().]", "", value)
    if not E164_PATTERN.match(compact):
        raise ValueError("phone_number must be in E.164 format, e.g. +15551234567")
    return compact


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    name: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class GoogleTokenLogin(BaseModel):
    id_token: str


class AppleLogin(BaseModel):
    identity_token: str
    # Apple only includes the user's name in the first authorization
    name: str | None = None


class PhoneCodeRequest(BaseModel):
    phone_number: str

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        return _normalize_phone(value)


class PhoneCodeConfirm(BaseModel):
    phone_number: str
    code: str = Field(..., min_length=4, max_length=10)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        return _normalize_phone(value)

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        value = value.strip()
        if not value.isdigit():
            raise ValueError("code must contain only digits")
        return value


class ProfileUpdate(BaseModel):
    name: str | None = None


class ProfileResponse(BaseModel):
    id: int
    email: str | None
    name: str | None
    provider: AuthProvider
    phone_number: str | None
    phone_verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: ProfileResponse
