"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper (same as todos/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and dependency
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database, not by a read-then-write check
  in code. Two concurrent registrations with the same email race on the
  INSERT; the loser gets sqlalchemy.exc.IntegrityError, which the route layer
  turns into 409.

  Emails are normalized (strip + lowercase) on every write and lookup so the
  UNIQUE constraint is effectively case-insensitive.

Reset tokens:
  complete_password_reset() writes the new hash and clears both reset columns
  in a single conditional UPDATE. The WHERE clause re-checks the token and its
  expiry, so of two concurrent consumers of the same token exactly one sees
  rowcount == 1. Nothing is acknowledged to the client until that statement
  has committed.

Layer rule: no imports from api/ or todos/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, Integer, MetaData, String, Table, Text, text
from sqlalchemy.engine import Engine

from auth.models import User
from core.db import make_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("name", String(100), nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("reset_token", String(64), index=True),
    Column("reset_token_expires", BigInteger),  # epoch milliseconds
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Every column except hashed_password -- used when resolving a request
# identity, where the hash has no business leaving the store.
_PUBLIC_COLUMNS = [c for c in _users.c if c.name != "hashed_password"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    """Current time as epoch milliseconds (the reset-token expiry unit)."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///taskify.db")
        user = User(email="a@x.com", name="A")
        user.set_password("Secret1!")
        user_id = store.create_user(user)
        user = store.get_by_email("A@X.com")
        store.close()

    The constructor connects (create_all), so an unreachable database raises
    sqlalchemy.exc.OperationalError here. api/main.py retries on that.
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        The user must already carry a hash (User.set_password). Raises
        sqlalchemy.exc.IntegrityError if the email already exists.
        """
        if not user.hashed_password:
            raise ValueError("create_user() requires a hashed password; call User.set_password() first.")
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=normalize_email(user.email),
                    hashed_password=user.hashed_password,
                    name=user.name.strip(),
                    is_admin=user.is_admin,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int, with_password: bool = True) -> User | None:
        """Look up a user by primary key. Returns None if not found.

        with_password=False leaves the hash column out of the SELECT
        entirely; the returned User has hashed_password=None.
        """
        columns = list(_users.c) if with_password else _PUBLIC_COLUMNS
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().with_only_columns(*columns).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_reset_token(self, token: str, now: int | None = None) -> User | None:
        """Return the user holding token if its expiry is strictly in the future."""
        now = now_ms() if now is None else now
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.reset_token == token) & (_users.c.reset_token_expires > now))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by email, without password hashes."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().with_only_columns(*_PUBLIC_COLUMNS).order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def set_reset_token(self, user_id: int, token: str, expires: int) -> bool:
        """Store a reset token and its expiry (epoch ms) on a user.

        Targeted two-column UPDATE -- no other field is re-validated or
        rewritten. Issuing a new token replaces any outstanding one.
        Returns True if a row was updated.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(reset_token=token, reset_token_expires=expires, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def complete_password_reset(self, user_id: int, token: str, hashed_password: str, now: int | None = None) -> bool:
        """Atomically swap in a new hash and clear the reset token.

        Matches only while the token is still present and unexpired. Returns
        False if another request consumed (or a newer request replaced) the
        token first.
        """
        now = now_ms() if now is None else now
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(
                    (_users.c.id == user_id)
                    & (_users.c.reset_token == token)
                    & (_users.c.reset_token_expires > now)
                )
                .values(
                    hashed_password=hashed_password,
                    reset_token=None,
                    reset_token_expires=None,
                    updated_at=_now_iso(),
                )
            )
            conn.commit()
        return result.rowcount == 1

    def update_password(self, user_id: int, hashed_password: str) -> bool:
        """Replace a user's hash and clear any outstanding reset token.

        Used by the authenticated change-password flow. A reset token issued
        before the change must not outlive it.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(
                    hashed_password=hashed_password,
                    reset_token=None,
                    reset_token_expires=None,
                    updated_at=_now_iso(),
                )
            )
            conn.commit()
        return result.rowcount > 0

    def set_admin(self, user_id: int, is_admin: bool) -> bool:
        """Grant or revoke the administrator flag. Returns True if a row was updated."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_admin=is_admin, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted.

        Outstanding session tokens for the user stay cryptographically valid;
        the auth dependency rejects them with USER_NOT_FOUND on next use.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # hashed_password is absent on rows fetched with _PUBLIC_COLUMNS.
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=getattr(row, "hashed_password", None),
        is_admin=bool(row.is_admin),
        reset_token=row.reset_token,
        reset_token_expires=row.reset_token_expires,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
