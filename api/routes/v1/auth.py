"""
api/routes/v1/auth.py -- Authentication and account REST endpoints.

Routes:
  POST /api/auth/register          -- create account; returns token + user (201)
  POST /api/auth/login             -- password login; returns token + user
  POST /api/auth/forgot-password   -- issue a one-hour, single-use reset token
  POST /api/auth/reset-password    -- consume reset token, set new password
  GET  /api/auth/me                -- current user (requires auth)
  POST /api/auth/change-password   -- change password with the current one (requires auth)
  GET  /api/auth/users             -- list all users (admin only)

Security:
  Credential routes are rate-limited per IP with AUTH_RATE_LIMIT.
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Cache-Control: no-store on every response that carries a session token.
  Duplicate email is checked up front for a friendly error, and again by the
  UNIQUE constraint (IntegrityError) to close the concurrent-registration race.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import IntegrityError

from api.limiter import auth_limit, limiter
from api.models import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserPublic,
)
from auth.dependencies import authenticate, require_admin, require_auth
from auth.models import Identity, User
from auth.passwords import authenticate_user, verify_password
from auth.reset import consume_reset_token, issue_reset_token
from auth.store import UserStore
from auth.tokens import SessionTokens
from core.errors import AuthenticationError, ConflictError, InternalError, NotFoundError

logger = logging.getLogger("taskify.api")

# Auth policy:
# - POST /api/auth/register:         public, AUTH_RATE_LIMIT
# - POST /api/auth/login:            public, AUTH_RATE_LIMIT
# - POST /api/auth/forgot-password:  public, AUTH_RATE_LIMIT
# - POST /api/auth/reset-password:   public, AUTH_RATE_LIMIT
# - GET  /api/auth/me:               authenticate + require_auth
# - POST /api/auth/change-password:  authenticate + require_auth, AUTH_RATE_LIMIT
# - GET  /api/auth/users:            authenticate + require_admin
router = APIRouter()


def _session(request: Request, response: Response, user: User) -> AuthResponse:
    tokens: SessionTokens = request.app.state.tokens
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(token=tokens.issue(user.id), user=UserPublic.from_user(user))


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
@limiter.limit(auth_limit)
def register(request: Request, response: Response, body: RegisterRequest) -> AuthResponse:
    """Create an account and sign the new user in."""
    user_store: UserStore = request.app.state.user_store

    if user_store.get_by_email(body.email) is not None:
        raise ConflictError("User already exists", code="EMAIL_EXISTS")

    user = User(email=body.email, name=body.name)
    user.set_password(body.password)
    try:
        user.id = user_store.create_user(user)
    except IntegrityError as exc:
        # Lost the race against a concurrent registration for the same email.
        raise ConflictError("User already exists", code="EMAIL_EXISTS") from exc

    logger.info("User registered user_id=%s", user.id)
    return _session(request, response, user)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(auth_limit)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password.

    Returns the same error for an unknown email and a wrong password so the
    response does not reveal which accounts exist.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")
    return _session(request, response, user)


@router.post("/auth/forgot-password", response_model=ForgotPasswordResponse, response_model_exclude_none=True)
@limiter.limit(auth_limit)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> ForgotPasswordResponse:
    """Issue a password reset token for an existing account.

    The token is valid for RESET_TOKEN_EXPIRE_SECONDS and replaces any earlier
    one. It is only echoed back when EXPOSE_RESET_TOKEN is set; otherwise it
    has to reach the user out of band.
    """
    user_store: UserStore = request.app.state.user_store
    settings = request.app.state.settings

    user = user_store.get_by_email(body.email)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    token = issue_reset_token(user_store, user, ttl_seconds=settings.reset_token_expire_seconds)
    return ForgotPasswordResponse(
        message="Password reset token generated",
        reset_token=token if settings.expose_reset_token else None,
    )


@router.post("/auth/reset-password", response_model=AuthResponse)
@limiter.limit(auth_limit)
def reset_password(request: Request, response: Response, body: ResetPasswordRequest) -> AuthResponse:
    """Set a new password with a reset token and sign the user in.

    The token is burned in the same UPDATE that stores the new hash, so a
    second call with the same token fails with INVALID_RESET_TOKEN.
    """
    user_store: UserStore = request.app.state.user_store
    user = consume_reset_token(user_store, body.token, body.new_password)
    return _session(request, response, user)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserPublic, dependencies=[Depends(authenticate)])
def me(identity: Identity = Depends(require_auth)) -> UserPublic:
    """Return the currently authenticated user."""
    return UserPublic.from_user(identity.user)


@router.post("/auth/change-password", response_model=AuthResponse, dependencies=[Depends(authenticate)])
@limiter.limit(auth_limit)
def change_password(
    request: Request,
    response: Response,
    body: ChangePasswordRequest,
    identity: Identity = Depends(require_auth),
) -> AuthResponse:
    """Change the password after re-checking the current one.

    Clears any outstanding reset token and returns a fresh session token.
    Older session tokens stay valid until they expire.
    """
    user_store: UserStore = request.app.state.user_store

    user = user_store.get_by_id(identity.user_id)
    if user is None or user.hashed_password is None:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")
    if not verify_password(body.current_password, user.hashed_password):
        raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

    user.set_password(body.new_password)
    if not user_store.update_password(user.id, user.hashed_password):
        raise InternalError()

    logger.info("Password changed for user_id=%s", user.id)
    return _session(request, response, user)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/users", response_model=list[UserPublic], dependencies=[Depends(authenticate)])
def list_users(request: Request, identity: Identity = Depends(require_admin)) -> list[UserPublic]:
    """List all accounts. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserPublic.from_user(u) for u in user_store.list_users()]
