"""Unit tests for api.main.open_stores -- database connection retry at startup.

Covers:
- transient OperationalError is retried until the store opens
- DB_CONNECT_MAX_ATTEMPTS bounds the retries and re-raises the last error
- a user store opened before the todo store failed is closed again
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

import api.main
from auth.store import UserStore
from core.config import Settings
from todos.store import TodoStore


def _settings(**kwargs) -> Settings:
    return Settings(
        _env_file=None,
        secret_key="k" * 32,
        database_url="sqlite:///:memory:",
        db_connect_retry_delay=0,
        **kwargs,
    )


def _down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("down"))


def test_retries_until_database_is_up(monkeypatch) -> None:
    calls = {"n": 0}

    def flaky_user_store(db_url: str) -> UserStore:
        calls["n"] += 1
        if calls["n"] < 3:
            raise _down()
        return UserStore(db_url)

    monkeypatch.setattr(api.main, "UserStore", flaky_user_store)
    user_store, todo_store = asyncio.run(api.main.open_stores(_settings()))

    assert calls["n"] == 3
    assert isinstance(user_store, UserStore)
    assert isinstance(todo_store, TodoStore)
    todo_store.close()
    user_store.close()


def test_gives_up_after_max_attempts(monkeypatch, caplog) -> None:
    calls = {"n": 0}

    def dead_user_store(db_url: str) -> UserStore:
        calls["n"] += 1
        raise _down()

    monkeypatch.setattr(api.main, "UserStore", dead_user_store)
    with pytest.raises(OperationalError):
        asyncio.run(api.main.open_stores(_settings(db_connect_max_attempts=2)))

    assert calls["n"] == 2
    assert any("giving up" in r.getMessage() for r in caplog.records)


def test_half_open_user_store_is_closed(monkeypatch) -> None:
    opened: list = []

    class TrackingUserStore(UserStore):
        closed = False

        def __init__(self, db_url: str) -> None:
            super().__init__(db_url)
            opened.append(self)

        def close(self) -> None:
            self.closed = True
            super().close()

    def failing_todo_store(db_url: str) -> TodoStore:
        raise _down()

    monkeypatch.setattr(api.main, "UserStore", TrackingUserStore)
    monkeypatch.setattr(api.main, "TodoStore", failing_todo_store)
    with pytest.raises(OperationalError):
        asyncio.run(api.main.open_stores(_settings(db_connect_max_attempts=1)))

    assert len(opened) == 1
    assert opened[0].closed is True
