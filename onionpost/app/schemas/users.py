"""Pydantic models for registration, login and session tokens."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .profiles import ProfileSummary


class RegistrationRequest(BaseModel):
    """Payload used to register an account together with its first profile."""

    email: str
    password: str = Field(min_length=6)
    username: str = Field(min_length=1, max_length=50)
    display_name: str = Field(min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("email must include '@' and local part")
        return value.strip().lower()

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("username must not be blank")
        return value


class LoginRequest(BaseModel):
    email: str = Field(..., examples=["user@example.com"])
    password: str = Field(..., min_length=1, examples=["secret"])

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserSummary(BaseModel):
    user_id: UUID
    email: str
    primary_profile_id: UUID | None = None
    created_at: datetime


class SessionResponse(BaseModel):
    """Access token bound to one active profile."""

    access_token: str
    token_type: str = Field(default="bearer", examples=["bearer"])
    expires_in: int = Field(..., description="Token lifetime in seconds")
    profile: ProfileSummary


class AuthResponse(SessionResponse):
    user: UserSummary


__all__ = [
    "AuthResponse",
    "LoginRequest",
    "RegistrationRequest",
    "SessionResponse",
    "UserSummary",
]
