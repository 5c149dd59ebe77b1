"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Taskify happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Injection: api/main.py reads the Settings once in lifespan and hands the
      pieces each component needs (secret, DB URL, expiry windows) to the
      component constructors via app.state. auth/ and todos/ never call
      get_settings() themselves.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode (DEBUG=true) auto-generates a
      SECRET_KEY with a warning; production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. HS256 session tokens
  are only as strong as the key that signs them.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or todos/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("taskify.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'taskify.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `database_url` from DATABASE_URL.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL
    port: int = 5000

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    # Comma-separated lists. Kept as plain strings so a single origin can be
    # set without JSON quoting in the environment.
    allowed_origins: str = "http://localhost:3000"
    allowed_hosts: str = "*"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_days: int = 7
    reset_token_expire_seconds: int = 3600
    # There is no mail delivery. When enabled, forgot-password returns the
    # reset token in the response body so a client can complete the flow.
    expose_reset_token: bool = False

    # ------------------------------------------------------------------
    # Rate limiting (slowapi / limits syntax)
    # ------------------------------------------------------------------

    auth_rate_limit: str = "5/15 minutes"
    general_rate_limit: str = "30/minute"

    # ------------------------------------------------------------------
    # Database connection retry
    # ------------------------------------------------------------------

    db_connect_retry_delay: float = 5.0
    db_connect_max_attempts: int = 0  # 0 = retry forever

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("database_url", mode="before")
    @classmethod
    def strip_quotes(cls, value: str) -> str:
        """Drop whitespace and one pair of surrounding quotes.

        Values copied from hosted-database dashboards into .env files often
        keep their quotes, which SQLAlchemy cannot parse.
        """
        cleaned = str(value).strip()
        if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in ("'", '"'):
            cleaned = cleaned[1:-1]
        return cleaned

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.allowed_origins)

    @property
    def trusted_hosts(self) -> list[str]:
        return _split_csv(self.allowed_hosts) or ["*"]


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
