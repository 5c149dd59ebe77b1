"""
API request and response models for the Taskify REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
todos/models.py, which own the internal domain representation. Route handlers
map between the two.

Wire names: the frontend sends camelCase (newPassword, isDone). Fields are
declared snake_case with a camelCase alias; populate_by_name lets tests and
internal callers use either spelling. Responses are dumped by_alias.

UserPublic has no password field at all -- there is no way to serialize a
hash to a client through this module.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from todos.models import Todo

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_SPECIAL_CHARS = "!@#$%^&*"
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt input limit


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


def _check_new_password(value: str) -> str:
    """Apply the password policy: 6+ chars, one digit, one special character."""
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
    if not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one number")
    if not any(c in PASSWORD_SPECIAL_CHARS for c in value):
        raise ValueError("Password must contain at least one special character")
    return value


class _Request(BaseModel):
    """Base for request bodies: strip whitespace, accept alias or field name."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(_Request):
    email: str = Field(max_length=255)
    password: str
    name: str = Field(min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_new_password(value)


class LoginRequest(_Request):
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        return _check_email(value)


class ForgotPasswordRequest(_Request):
    email: str = Field(max_length=255)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        return _check_email(value)


class ResetPasswordRequest(_Request):
    token: str = Field(min_length=1, max_length=128)
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_new_password(value)


class ChangePasswordRequest(_Request):
    current_password: str = Field(alias="currentPassword", min_length=1, max_length=255)
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_new_password(value)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """Client-facing view of a User. Never carries password or reset fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    email: str
    name: str
    is_admin: bool = Field(default=False, serialization_alias="isAdmin")

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(id=user.id, email=user.email, name=user.name, is_admin=user.is_admin)


class AuthResponse(BaseModel):
    """Returned by register, login, reset-password and change-password."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserPublic


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ForgotPasswordResponse(BaseModel):
    """reset_token is only populated when EXPOSE_RESET_TOKEN is enabled."""

    model_config = ConfigDict(frozen=True)

    message: str
    reset_token: Optional[str] = Field(default=None, serialization_alias="resetToken")


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------


class TodoCreate(_Request):
    todo: str = Field(min_length=1, max_length=500)


class TodoUpdate(_Request):
    """Partial update. Omitted fields are left unchanged."""

    todo: Optional[str] = Field(default=None, min_length=1, max_length=500)
    is_done: Optional[bool] = Field(default=None, alias="isDone")


class TodoResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    todo: str
    is_done: bool = Field(serialization_alias="isDone")
    created_at: str = Field(serialization_alias="createdAt")
    updated_at: str = Field(serialization_alias="updatedAt")

    @classmethod
    def from_todo(cls, todo: Todo) -> "TodoResponse":
        return cls(
            id=todo.id,
            todo=todo.todo,
            is_done=todo.is_done,
            created_at=todo.created_at,
            updated_at=todo.updated_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    fields: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str = "ok"
