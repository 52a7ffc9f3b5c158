"""
API request and response models for AuthEngine REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Password fields are capped at 72 characters -- bcrypt ignores everything
past 72 bytes, and the service rejects longer secrets rather than truncating.
Passwords are taken exactly as sent; whitespace is never stripped from them.
Usernames are stripped the same way on every model that carries one, so the
name registered is the name that authenticates.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import UserInfo


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _strip_optional(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    status: Optional[int] = None  # numeric AuthEngine status code, when known
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=64)
    is_admin: bool = False
    is_disabled: bool = False

    @field_validator("username", "first_name", "last_name")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("email", "phone_number")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_optional(value)


class CredentialsRequest(BaseModel):
    """Request body for POST /api/v1/auth/authenticate."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return _strip_required(value)


class ChangePasswordRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    old_password: str = Field(min_length=1, max_length=72)
    new_password: str = Field(min_length=1, max_length=72)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return _strip_required(value)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(min_length=1, max_length=72)


class UserInfoUpdate(BaseModel):
    """Request body for PUT /api/v1/auth/me. All four fields are overwritten."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=64)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime


class UserInfoResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    first_name: str
    last_name: str
    email: Optional[str]
    phone_number: Optional[str]

    @classmethod
    def from_user_info(cls, info: UserInfo) -> "UserInfoResponse":
        return cls(
            user_id=info.user_id,
            first_name=info.first_name,
            last_name=info.last_name,
            email=info.email,
            phone_number=info.phone_number,
        )


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str]
