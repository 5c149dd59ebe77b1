"""
auth/reset.py -- Single-use, time-limited password reset tokens.

Lifecycle:
  issue_reset_token()   forgot-password: store token + absolute expiry
  find_reset_user()     token -> user, only while present and unexpired
  consume_reset_token() reset-password: new hash + clear both fields, in one
                        conditional UPDATE (see UserStore.complete_password_reset)

Tokens come from secrets.token_hex(32): 256 bits of entropy as 64 hex chars.
They are stored as-is so the lookup is a plain indexed equality match.

Layer rule: no imports from api/ or todos/.
"""

from __future__ import annotations

import logging
import secrets

from auth.models import User
from auth.store import UserStore, now_ms
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("taskify.auth")

RESET_TOKEN_BYTES = 32
DEFAULT_RESET_TTL_SECONDS = 3600


class ResetTokenInvalid(ValidationError):
    code = "INVALID_RESET_TOKEN"
    message = "Invalid or expired token"


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def issue_reset_token(store: UserStore, user: User, ttl_seconds: int = DEFAULT_RESET_TTL_SECONDS) -> str:
    """Attach a fresh reset token to user and persist it. Returns the token.

    Any previously issued token for the same user is overwritten and stops
    working immediately.
    """
    token = generate_reset_token()
    expires = now_ms() + ttl_seconds * 1000
    if not store.set_reset_token(user.id, token, expires):
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    user.reset_token = token
    user.reset_token_expires = expires
    logger.info("Password reset token issued for user_id=%s", user.id)
    return token


def find_reset_user(store: UserStore, token: str) -> User:
    """Return the user holding an unexpired token, or raise ResetTokenInvalid."""
    user = store.get_by_reset_token(token)
    if user is None:
        raise ResetTokenInvalid()
    return user


def consume_reset_token(store: UserStore, token: str, new_password: str) -> User:
    """Set a new password using a reset token, burning the token.

    Raises ResetTokenInvalid (400) if the token is unknown, expired, or was
    consumed by a concurrent request between lookup and update.
    """
    user = find_reset_user(store, token)

    user.set_password(new_password)
    if not store.complete_password_reset(user.id, token, user.hashed_password):
        raise ResetTokenInvalid()

    user.reset_token = None
    user.reset_token_expires = None
    logger.info("Password reset completed for user_id=%s", user.id)
    return user
