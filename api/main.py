"""
api/main.py -- FastAPI application entry point for Taskify.

Run with:  uvicorn asgi:app --reload
           python asgi.py            (uses PORT from Settings)

Middleware stack (outermost to innermost):
  1. log_requests          -- one access-log line per request
  2. security_headers      -- nosniff / frame-deny / referrer policy on every response
  3. SlowAPIMiddleware     -- enforces per-IP rate limits from api.limiter
  4. CORSMiddleware        -- adds CORS headers for the configured frontend origins
  5. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Lifespan reads Settings once, opens the stores (retrying while the database
is unreachable), and builds the SessionTokens issuer. Everything a handler
needs is injected through app.state; nothing below reads the environment.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, FieldError, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.todos import router as todos_router
from auth.store import UserStore
from auth.tokens import SessionTokens
from core.config import Settings, get_settings
from core.errors import AppError
from todos.store import TodoStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskify.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Database connection with retry
# ---------------------------------------------------------------------------


async def open_stores(settings: Settings) -> tuple[UserStore, TodoStore]:
    """Open both stores, retrying on a fixed delay while the DB is unreachable.

    DB_CONNECT_MAX_ATTEMPTS=0 retries forever. A positive value bounds the
    attempts; the last OperationalError is re-raised, which aborts lifespan
    startup and terminates the process.
    """
    attempt = 0
    while True:
        attempt += 1
        user_store: UserStore | None = None
        try:
            user_store = UserStore(settings.database_url)
            todo_store = TodoStore(settings.database_url)
            return user_store, todo_store
        except OperationalError:
            if user_store is not None:
                user_store.close()
            if settings.db_connect_max_attempts and attempt >= settings.db_connect_max_attempts:
                logger.critical("Database unreachable after %d attempts -- giving up", attempt)
                raise
            logger.warning(
                "Database unreachable (attempt %d) -- retrying in %.1fs",
                attempt,
                settings.db_connect_retry_delay,
            )
            await asyncio.sleep(settings.db_connect_retry_delay)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info(
        "Taskify API starting up (debug=%s, database=%s)",
        settings.debug,
        make_url(settings.database_url).get_backend_name(),
    )
    app.state.settings = settings
    app.state.user_store, app.state.todo_store = await open_stores(settings)
    app.state.tokens = SessionTokens(settings.secret_key, expire_days=settings.token_expire_days)
    logger.info("Database connected; session tokens expire after %d days", settings.token_expire_days)

    yield

    app.state.todo_store.close()
    app.state.user_store.close()
    logger.info("Taskify API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Taskify API",
    description="Multi-user to-do lists with email/password accounts.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST registered middleware
# is the outermost. The @app.middleware("http") functions below are registered
# later still, so they wrap everything registered here.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.trusted_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Logs method, path, status, latency and client host. Never the body or the
# Authorization header -- both can carry credentials.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(todos_router, prefix="/api", tags=["Todos"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render any AppError (auth, validation, not-found, conflict, internal)."""
    return _error(int(exc.status), ErrorDetail(**exc.to_dict()))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After is the length of the window of the limit that was hit.
    """
    retry_after = exc.limit.limit.get_expiry()
    response = _error(
        429,
        ErrorDetail(code="RATE_LIMITED", message="Too many requests. Please try again later.", detail=str(exc)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one entry per offending field.

    The body prefix is dropped from locations, and pydantic's "Value error, "
    prefix is dropped from messages raised by our own validators.
    """
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        fields.append(FieldError(field=".".join(loc) or "body", message=message))
    return _error(
        400,
        ErrorDetail(code="VALIDATION_ERROR", message="Request validation failed.", fields=fields),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and any HTTPException raised by a dependency."""
    return _error(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, ErrorDetail(code="INTERNAL_ERROR", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Exempt from rate limiting --
# health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
@limiter.exempt
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except OperationalError:
        logger.warning("Health check: database unreachable")
        database = "error"
    return HealthResponse(status="ok" if database == "ok" else "degraded", version=VERSION, database=database)
