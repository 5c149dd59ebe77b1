"""Unit tests for auth/reset.py -- reset token manager.

Covers:
- generate_reset_token(): 64 hex chars, unique
- issue_reset_token(): persists token + one-hour expiry
- consume_reset_token(): sets the new password and burns the token
- replayed, expired and unknown tokens raise ResetTokenInvalid (400)
"""

import pytest

from auth.models import User
from auth.passwords import verify_password
from auth.reset import (
    ResetTokenInvalid,
    consume_reset_token,
    find_reset_user,
    generate_reset_token,
    issue_reset_token,
)
from auth.store import UserStore, now_ms
from core.errors import NotFoundError


@pytest.fixture
def user(user_store: UserStore) -> User:
    u = User(email="reset@x.com", name="R")
    u.set_password("Secret1!")
    u.id = user_store.create_user(u)
    return u


class TestGenerate:
    def test_token_is_256_bit_hex(self) -> None:
        token = generate_reset_token()
        assert len(token) == 64
        int(token, 16)  # raises if not hex

    def test_tokens_are_unique(self) -> None:
        assert len({generate_reset_token() for _ in range(50)}) == 50


class TestIssue:
    def test_issue_persists_token_and_expiry(self, user_store: UserStore, user: User) -> None:
        before = now_ms()
        token = issue_reset_token(user_store, user)
        stored = user_store.get_by_id(user.id)
        assert stored.reset_token == token
        assert before + 3_600_000 <= stored.reset_token_expires <= now_ms() + 3_600_000
        assert user.reset_token == token, "in-memory entity is updated too"

    def test_issue_for_deleted_user(self, user_store: UserStore, user: User) -> None:
        user_store.delete_user(user.id)
        with pytest.raises(NotFoundError):
            issue_reset_token(user_store, user)

    def test_find_reset_user(self, user_store: UserStore, user: User) -> None:
        token = issue_reset_token(user_store, user)
        assert find_reset_user(user_store, token).id == user.id
        with pytest.raises(ResetTokenInvalid) as exc_info:
            find_reset_user(user_store, "unknown")
        assert exc_info.value.status == 400
        assert exc_info.value.code == "INVALID_RESET_TOKEN"


class TestConsume:
    def test_consume_sets_password_and_clears_token(self, user_store: UserStore, user: User) -> None:
        token = issue_reset_token(user_store, user)
        result = consume_reset_token(user_store, token, "Newpass9!")

        assert result.id == user.id
        stored = user_store.get_by_id(user.id)
        assert verify_password("Newpass9!", stored.hashed_password)
        assert not verify_password("Secret1!", stored.hashed_password)
        assert stored.reset_token is None
        assert stored.reset_token_expires is None

    def test_consumed_token_cannot_be_replayed(self, user_store: UserStore, user: User) -> None:
        token = issue_reset_token(user_store, user)
        consume_reset_token(user_store, token, "Newpass9!")

        with pytest.raises(ResetTokenInvalid) as exc_info:
            consume_reset_token(user_store, token, "Another9!")
        assert exc_info.value.code == "INVALID_RESET_TOKEN"
        assert exc_info.value.status == 400
        assert verify_password("Newpass9!", user_store.get_by_id(user.id).hashed_password)

    def test_expired_token(self, user_store: UserStore, user: User) -> None:
        token = issue_reset_token(user_store, user, ttl_seconds=-1)
        with pytest.raises(ResetTokenInvalid):
            consume_reset_token(user_store, token, "Newpass9!")
        assert verify_password("Secret1!", user_store.get_by_id(user.id).hashed_password)

    def test_unknown_token(self, user_store: UserStore, user: User) -> None:
        with pytest.raises(ResetTokenInvalid):
            consume_reset_token(user_store, "0" * 64, "Newpass9!")

    def test_lost_race_is_invalid(self, user_store: UserStore, user: User, monkeypatch) -> None:
        """If another request burns the token between lookup and update, this one fails."""
        token = issue_reset_token(user_store, user)
        monkeypatch.setattr(user_store, "complete_password_reset", lambda *a, **k: False)
        with pytest.raises(ResetTokenInvalid):
            consume_reset_token(user_store, token, "Newpass9!")
