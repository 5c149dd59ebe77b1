"""
tests/conftest.py -- Shared test fixtures for Taskify.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + todos
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus an admin user's session token
  - register_user: helper that registers a fresh account through the API
  - user_store: plain in-memory UserStore for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment must be set before any api/auth/core import:
  DEBUG=true            get_settings() auto-generates SECRET_KEY
  *_RATE_LIMIT          high enough that the suite never trips the limiter
  EXPOSE_RESET_TOKEN    forgot-password returns the token so reset can be tested
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("AUTH_RATE_LIMIT", "1000/minute")
os.environ.setdefault("GENERAL_RATE_LIMIT", "1000/minute")
os.environ.setdefault("EXPOSE_RESET_TOKEN", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import SessionTokens
from core.config import get_settings
from todos.store import TodoStore

ADMIN_EMAIL = "admin@taskify.test"
ADMIN_PASSWORD = "Admin123!"
DEFAULT_PASSWORD = "Secret1!"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, TodoStore]:
    """Create isolated named shared-memory SQLite stores for one test module.

    Both stores point at the same named DB, as they do in production.
    """
    db_url = f"sqlite:///file:test_taskify_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url), TodoStore(db_url)


def _patch_lifespan(user_store: UserStore, todo_store: TodoStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and a SessionTokens built from the cached
    Settings into app.state, mirroring api.main.lifespan.
    """
    settings = get_settings()

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.todo_store = todo_store
        app.state.tokens = SessionTokens(settings.secret_key, expire_days=settings.token_expire_days)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    One isolated database per test module (named after the module). The admin
    user is created directly in the store before the client starts.
    """
    user_store, todo_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])

    admin = User(email=ADMIN_EMAIL, name="Admin", is_admin=True)
    admin.set_password(ADMIN_PASSWORD)
    uid = user_store.create_user(admin)

    app.router.lifespan_context = _patch_lifespan(user_store, todo_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        token = client.app.state.tokens.issue(uid)
        yield client, token, uid

    todo_store.close()
    user_store.close()


@pytest.fixture
def register_user(api_client) -> Callable[..., dict]:
    """Return a helper that registers a unique account and returns the JSON body.

    The body is {"token": ..., "user": {...}}; the plaintext password used is
    added under "password" for tests that log in again.
    """
    client, _token, _uid = api_client

    def _register(email: str | None = None, password: str = DEFAULT_PASSWORD, name: str = "Test User") -> dict:
        email = email or f"user-{uuid.uuid4().hex[:12]}@taskify.test"
        resp = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
        assert resp.status_code == 201, f"register failed: {resp.status_code} {resp.text}"
        body = resp.json()
        body["password"] = password
        return body

    return _register


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore for store-level unit tests."""
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()
