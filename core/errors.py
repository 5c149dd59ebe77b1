"""
core/errors.py -- Application error taxonomy.

Every failure a client can observe is an AppError subclass carrying an HTTP
status, a stable machine-readable code, and a human-readable message.
api/main.py registers one exception handler for AppError that renders the
ErrorResponse envelope, so auth/ and todos/ raise these without knowing
anything about FastAPI.

  ValidationError      400  malformed input
  AuthenticationError  401  missing / invalid / expired credential
  AuthorizationError   403  valid identity, insufficient privilege
  NotFoundError        404
  ConflictError        409  duplicate unique field
  InternalError        500  unexpected failure (message is always generic)

Layer rule: core/ is the kernel. No imports from api/, auth/, or todos/.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class AppError(Exception):
    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        fields: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message or type(self).message
        self.code = code or type(self).code
        self.fields = fields
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.fields:
            payload["fields"] = self.fields
        return payload


class ValidationError(AppError):
    status = HTTPStatus.BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Request validation failed."


class AuthenticationError(AppError):
    status = HTTPStatus.UNAUTHORIZED
    code = "AUTH_REQUIRED"
    message = "Authentication required"


class TokenExpired(AuthenticationError):
    code = "TOKEN_EXPIRED"
    message = "Token expired"


class TokenInvalid(AuthenticationError):
    code = "TOKEN_INVALID"
    message = "Invalid token"


class AuthorizationError(AppError):
    status = HTTPStatus.FORBIDDEN
    code = "ADMIN_REQUIRED"
    message = "Admin access required"


class NotFoundError(AppError):
    status = HTTPStatus.NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found."


class ConflictError(AppError):
    status = HTTPStatus.CONFLICT
    code = "CONFLICT"
    message = "Resource already exists."


class InternalError(AppError):
    pass
