"""
API request and response models for the User Login API.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

JSON keys are camelCase (isActive, createdAt, pageSize, totalPages); Python
attributes stay snake_case through an alias generator.

Validation rules for registration and login mirror what clients of this API
already rely on:
  - email must look like local@domain.tld
  - password at least 6 characters with a lowercase letter, an uppercase
    letter and a digit (registration and updates only)
  - firstname / lastname at least 2 characters after trimming
Any failure is answered with 400 validation_error by api/main.py.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

_MIN_PASSWORD = 6
# bcrypt refuses (or silently truncates) input past 72 bytes of UTF-8.
_MAX_PASSWORD = 72
_MIN_NAME = 2


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > _MAX_PASSWORD:
        raise ValueError(f"Password cannot be longer than {_MAX_PASSWORD} bytes")
    return value


def _check_password_strength(value: str) -> str:
    if len(value) < _MIN_PASSWORD:
        raise ValueError(f"Password must be at least {_MIN_PASSWORD} characters long")
    _check_password_bytes(value)
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


def _check_name(value: str, label: str) -> str:
    if len(value.strip()) < _MIN_NAME:
        raise ValueError(f"{label} must be at least {_MIN_NAME} characters long")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/users."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=_MAX_PASSWORD)
    firstname: str = Field(max_length=100)
    lastname: str = Field(max_length=100)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    phone: Optional[str] = Field(default=None, max_length=32)
    role: str = Field(default="user", min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_password_strength(value)

    @field_validator("firstname")
    @classmethod
    def valid_firstname(cls, value: str) -> str:
        return _check_name(value, "First name")

    @field_validator("lastname")
    @classmethod
    def valid_lastname(cls, value: str) -> str:
        return _check_name(value, "Last name")


class UserUpdate(BaseModel):
    """Request body for PUT /api/users/{id}. Every field is optional.

    Unknown keys are rejected so a typo cannot silently become a no-op.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=_MAX_PASSWORD)
    firstname: Optional[str] = Field(default=None, max_length=100)
    lastname: Optional[str] = Field(default=None, max_length=100)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    phone: Optional[str] = Field(default=None, max_length=32)
    role: Optional[str] = Field(default=None, min_length=1, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_email(value)

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_password_strength(value)

    @field_validator("firstname")
    @classmethod
    def valid_firstname(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_name(value, "First name")

    @field_validator("lastname")
    @classmethod
    def valid_lastname(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_name(value, "Last name")


class LoginRequest(BaseModel):
    """Request body for POST /api/users/login."""

    email: str = Field(max_length=255)
    password: str = Field(max_length=_MAX_PASSWORD)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Password cannot be empty")
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """A user record as returned by every user endpoint.

    password is the bcrypt hash, never the plaintext.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    email: str
    password: str
    firstname: str
    lastname: str
    age: Optional[int] = None
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Build a UserResponse from an auth.models.User."""
        return cls(
            id=user.id,
            email=user.email,
            password=user.password,
            firstname=user.firstname,
            lastname=user.lastname,
            age=user.age,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class UserListResponse(BaseModel):
    """One page of users plus pagination metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    users: list[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class LoginResponse(BaseModel):
    """Response for POST /api/users/login. The token is also set as a cookie."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail
