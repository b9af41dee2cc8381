from pydantic import field_validator

from src.schemas.common import BaseSchema


class Token(BaseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseSchema):
    refresh_token: str


class LoginRequest(BaseSchema):
    phone: str
    password: str


class RegisterRequest(BaseSchema):
    phone: str
    password: str
    name: str
    email: str | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        if not any(ch.isdigit() for ch in v):
            raise ValueError("Phone number must contain digits")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class QRPayloadResponse(BaseSchema):
    payload: str
