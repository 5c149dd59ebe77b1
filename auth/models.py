"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Stores and routes do the work; the only behaviour that
lives here is the explicit password setter, so there is exactly one code path
that turns a plaintext password into a stored hash.

Layer rule: no imports from api/ or todos/.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from auth.passwords import hash_password


@dataclass
class User:
    """A Taskify account.

    email is stored trimmed and lowercased; the store normalizes it on every
    write and lookup so uniqueness is case-insensitive.

    hashed_password is None when the record was loaded without the password
    column (see UserStore.get_by_id(with_password=False)). It is excluded
    from repr() so a logged User never carries the hash.

    reset_token / reset_token_expires (epoch milliseconds) are both None
    unless a forgot-password request is outstanding.
    """

    email: str
    name: str
    id: int | None = None
    hashed_password: str | None = field(default=None, repr=False)
    is_admin: bool = False
    reset_token: str | None = field(default=None, repr=False)
    reset_token_expires: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def set_password(self, plain: str) -> None:
        """Hash plain and store the result on this entity.

        Hashing happens here, synchronously, once per password-set event
        (registration, change, reset). Nothing else writes hashed_password
        from plaintext, so an existing hash is never hashed twice.
        """
        self.hashed_password = hash_password(plain)

    def without_password(self) -> User:
        return replace(self, hashed_password=None, reset_token=None, reset_token_expires=None)


@dataclass(frozen=True)
class Identity:
    """Request-scoped result of a successful authentication.

    Built by auth.dependencies.authenticate() and attached to
    request.state.identity. Discarded when the request ends.
    """

    user: User  # loaded without the password column
    token: str = field(repr=False)
    user_id: int

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin
