"""
Infinite Notepad Backend — Auth Schemas
=========================================

The user object keeps the snake_case keys the existing clients decode:

    { "id", "email", "created_at", "email_confirmed_at" }
"""

import re
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from notepad.config import settings

# Deliberately loose: the confirmation email is the real check
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserResponse(BaseModel):
    """Authenticated user snapshot."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    created_at: datetime
    email_confirmed_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        if isinstance(v, uuid.UUID):
            return str(v)
        return v


class Credentials(BaseModel):
    """Body of POST /api/auth/signup and POST /api/auth/login."""

    email: str = Field(description="Account email")
    password: str = Field(description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class SignupRequest(Credentials):
    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < settings.min_password_length:
            raise ValueError(
                f"Password must be at least {settings.min_password_length} characters"
            )
        return v


class LoginRequest(Credentials):
    pass


class AuthResponse(BaseModel):
    """Returned by login: a bearer token and the user it belongs to."""

    user: UserResponse
    token: str


class SignupResponse(BaseModel):
    """
    Returned by sign-up.

    When email confirmation is required, `token` is null and
    `requiresConfirmation` is true; the client stays signed out.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    user: UserResponse
    token: Optional[str] = None
    requires_confirmation: bool = Field(
        default=False,
        validation_alias=AliasChoices("requiresConfirmation", "requires_confirmation"),
        serialization_alias="requiresConfirmation",
    )


class VerifyResponse(BaseModel):
    user: UserResponse


class ConfirmResponse(BaseModel):
    message: str
    user: UserResponse
