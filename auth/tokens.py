"""
auth/tokens.py -- Signed session tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only the subject (user id as a
       string), iat and exp. Nothing is stored server-side: validity is a
       pure function of the signing secret and the current time.

  Expiry vs. invalid: verify() raises TokenExpired for a correctly signed
       token whose exp has passed, and TokenInvalid for everything else (bad
       signature, malformed structure, missing or non-numeric subject). The
       two map to different client-facing codes -- an expired session means
       "log in again", an invalid one means the client is sending garbage.
       python-jose checks the signature before the claims, so a forged token
       with a stale exp is still reported as invalid.

  Revocation: none. Compromise is mitigated by the 7-day window and by
       rotating SECRET_KEY, which invalidates every outstanding token.

SessionTokens is built once in api/main.py lifespan from Settings and stored
on app.state.tokens. The secret is never read from the environment here.

Layer rule: no imports from api/ or todos/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from core.errors import TokenExpired, TokenInvalid

ALGORITHM = "HS256"
DEFAULT_EXPIRE_DAYS = 7


class SessionTokens:
    """Issue and verify session tokens for a single signing secret.

    Usage:
        tokens = SessionTokens(settings.secret_key)
        token = tokens.issue(user.id)
        user_id = tokens.verify(token)   # raises TokenExpired / TokenInvalid
    """

    def __init__(self, secret_key: str, expire_days: int = DEFAULT_EXPIRE_DAYS) -> None:
        self._secret_key = secret_key
        self.expire_days = expire_days

    def __repr__(self) -> str:
        return f"SessionTokens(expire_days={self.expire_days})"

    def issue(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the user id carried by token.

        Raises:
            TokenExpired: signature valid, exp in the past.
            TokenInvalid: anything else that is not a well-formed, correctly
                signed token with an integer subject.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise TokenInvalid() from exc

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise TokenInvalid()
        if "exp" not in payload:
            raise TokenInvalid()
        return int(subject)
