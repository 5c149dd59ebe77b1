"""Unit tests for auth/passwords.py and User.set_password().

Covers:
- hashes are salted bcrypt strings with cost factor 10
- verify_password() matches, rejects, and never raises on garbage hashes
- User.set_password() hashes exactly once and repr() never shows the hash
- authenticate_user() returns None for unknown email and wrong password
"""

from auth.models import User
from auth.passwords import BCRYPT_ROUNDS, authenticate_user, hash_password, verify_password


class TestHashPassword:
    def test_hash_is_bcrypt_with_cost_10(self) -> None:
        hashed = hash_password("Secret1!")
        assert BCRYPT_ROUNDS == 10
        assert hashed.startswith("$2b$10$"), f"unexpected hash prefix: {hashed[:7]}"

    def test_same_password_gets_different_salts(self) -> None:
        """Salt is generated per hash, so two hashes of one password differ."""
        assert hash_password("Secret1!") != hash_password("Secret1!")

    def test_hash_never_contains_plaintext(self) -> None:
        assert "Secret1!" not in hash_password("Secret1!")


class TestVerifyPassword:
    def test_matching_password(self) -> None:
        assert verify_password("Secret1!", hash_password("Secret1!")) is True

    def test_wrong_password_returns_false(self) -> None:
        assert verify_password("Wrong1!", hash_password("Secret1!")) is False

    def test_malformed_hash_returns_false(self) -> None:
        """A corrupt stored hash is a non-match, not an exception."""
        assert verify_password("Secret1!", "not-a-bcrypt-hash") is False
        assert verify_password("Secret1!", "") is False


class TestUserSetPassword:
    def test_set_password_stores_hash(self) -> None:
        user = User(email="a@x.com", name="A")
        user.set_password("Secret1!")
        assert user.hashed_password is not None
        assert user.hashed_password != "Secret1!"
        assert verify_password("Secret1!", user.hashed_password)

    def test_set_password_replaces_previous_hash(self) -> None:
        user = User(email="a@x.com", name="A")
        user.set_password("Secret1!")
        first = user.hashed_password
        user.set_password("Other2@")
        assert user.hashed_password != first
        assert verify_password("Other2@", user.hashed_password)
        assert not verify_password("Secret1!", user.hashed_password)

    def test_repr_hides_hash_and_reset_token(self) -> None:
        user = User(email="a@x.com", name="A", reset_token="abc123")
        user.set_password("Secret1!")
        text = repr(user)
        assert user.hashed_password not in text
        assert "abc123" not in text

    def test_without_password_strips_secrets(self) -> None:
        user = User(email="a@x.com", name="A", reset_token="abc", reset_token_expires=1)
        user.set_password("Secret1!")
        public = user.without_password()
        assert public.hashed_password is None
        assert public.reset_token is None
        assert user.hashed_password is not None, "original must be left untouched"


class TestAuthenticateUser:
    def test_valid_credentials(self, user_store) -> None:
        user = User(email="a@x.com", name="A")
        user.set_password("Secret1!")
        uid = user_store.create_user(user)

        found = authenticate_user(user_store, "A@X.com", "Secret1!")
        assert found is not None
        assert found.id == uid

    def test_wrong_password(self, user_store) -> None:
        user = User(email="a@x.com", name="A")
        user.set_password("Secret1!")
        user_store.create_user(user)
        assert authenticate_user(user_store, "a@x.com", "Secret2!") is None

    def test_unknown_email(self, user_store) -> None:
        assert authenticate_user(user_store, "nobody@x.com", "Secret1!") is None
