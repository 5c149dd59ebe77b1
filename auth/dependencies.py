"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

authenticate() is the per-request auth middleware. It is mounted as a router
dependency (APIRouter(dependencies=[Depends(authenticate)])) or per route,
and walks a small state machine:

  NoToken      header missing or not "Bearer <token>"   -> 401 AUTH_REQUIRED
  TokenPresent verify(): expired                          -> 401 TOKEN_EXPIRED
                         bad signature / malformed         -> 401 TOKEN_INVALID
  TokenValid   user lookup (no password column): missing  -> 401 USER_NOT_FOUND
  Resolved     Identity attached to request.state.identity; continue

Any other failure (database down, driver error) is logged and converted to a
500 InternalError. The log line names the request, never the token.

require_auth() and require_admin() are guards. They only read the identity
authenticate() attached; they never parse headers themselves. Used without
authenticate() in front of them they therefore always reject with 401.

Layer rule: auth/dependencies.py may import from fastapi (for Request) because
this module is part of the FastAPI dependency injection system. No imports
from api/ or todos/.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import Identity
from auth.store import UserStore
from auth.tokens import SessionTokens
from core.errors import AuthenticationError, AuthorizationError, InternalError

logger = logging.getLogger("taskify.auth")

_BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def authenticate(request: Request) -> Identity:
    """Verify the bearer token, resolve the user, and attach the identity.

    Raises AuthenticationError subclasses for every client-side failure and
    InternalError for anything unexpected.
    """
    token = _bearer_token(request)
    if token is None:
        raise AuthenticationError()

    tokens: SessionTokens = request.app.state.tokens
    user_id = tokens.verify(token)

    user_store: UserStore = request.app.state.user_store
    try:
        user = user_store.get_by_id(user_id, with_password=False)
    except Exception as exc:
        logger.exception(
            "Auth lookup failed for user_id=%s on %s %s",
            user_id,
            request.method,
            request.url.path,
        )
        raise InternalError("Internal server error during authentication") from exc

    if user is None:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")

    identity = Identity(user=user, token=token, user_id=user.id)
    request.state.identity = identity
    return identity


def require_auth(request: Request) -> Identity:
    """Pass through only if authenticate() resolved an identity.

    Use as a FastAPI dependency after authenticate():
        @router.get("/protected", dependencies=[Depends(authenticate)])
        async def route(identity: Identity = Depends(require_auth)): ...
    """
    identity: Identity | None = getattr(request.state, "identity", None)
    if identity is None:
        raise AuthenticationError()
    return identity


def require_admin(request: Request) -> Identity:
    """Require an administrator. 401 when unauthenticated, 403 when not admin.

    The two codes differ on purpose: AUTH_REQUIRED tells the client to log
    in, ADMIN_REQUIRED tells it that logging in again will not help.
    """
    identity = require_auth(request)
    if not identity.is_admin:
        raise AuthorizationError()
    return identity
