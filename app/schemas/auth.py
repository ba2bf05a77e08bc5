"""Request/response schemas for user and admin auth endpoints."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)
from app.schemas.base import ApiModel


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class RegisterRequest(ApiModel):
    """Body for POST /auth/register and POST /admin/register."""

    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("username", "first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(ApiModel):
    """Credentials for login (users and admins log in by email)."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ProfileUpdate(ApiModel):
    """Body for PUT /auth/me; omitted fields are left unchanged."""

    username: str | None = Field(default=None, min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)

    @field_validator("username", "first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _strip_required(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else None


class UserOut(ApiModel):
    """Public view of a user account (no password)."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    date_of_join: datetime | None = Field(default=None, validation_alias="created_at")


class AdminOut(ApiModel):
    """Public view of an admin account (no password)."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    role: str


class AuthResponse(ApiModel):
    """Token plus user, returned by register and login."""

    success: bool = True
    token: str
    user: UserOut


class AdminAuthResponse(ApiModel):
    """Token plus admin, returned by admin register and login."""

    success: bool = True
    token: str
    admin: AdminOut


class UserResponse(ApiModel):
    success: bool = True
    user: UserOut


class AdminResponse(ApiModel):
    success: bool = True
    admin: AdminOut


class CurrentUser(ApiModel):
    """Authenticated user resolved from a bearer token, for dependency injection."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str


class CurrentAdmin(ApiModel):
    """Authenticated, active admin resolved from a bearer token."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    role: str
