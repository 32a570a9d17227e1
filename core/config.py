"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the account service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead, or receive the values at construction time.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret_key -> JWT_SECRET_KEY).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Dev mode (DEBUG=true) may fill in a generated signing key
      and a local SQLite database; production mode refuses to start without
      either.

Security notes:
  JWT_SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing
  relies on key entropy -- a short key weakens every access token.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("accountmgmt.config")

_DEV_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'account_management.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field has a default so Settings() can be built in test environments
    without a real .env file; the validator decides whether the empty
    sentinels are acceptable.
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
    log_level: str = "INFO"
    http_host: str = "0.0.0.0"  # noqa: S104 # nosec B104 -- container bind address
    http_port: int = 8080

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    jwt_secret_key: str = ""
    access_token_ttl_minutes: int = 15
    refresh_token_ttl_minutes: int = 1440
    # Login answers account_not_found / incorrect_password separately when
    # True; both collapse to invalid_credentials when False.
    distinguish_login_failures: bool = True

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = ""

    # ------------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------------

    cors_enabled: bool = True
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Enforce the signing key, database URL and TTL policy.

        Dev mode (DEBUG=true): a missing key is generated (tokens will not
            survive restart) and a missing database URL points at a local
            SQLite file.

        Production mode: a missing key or database URL is a startup failure.

        Both modes: keys shorter than 32 characters and non-positive TTLs
            are rejected.
        """
        if not self.jwt_secret_key:
            if self.debug:
                self.jwt_secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated JWT_SECRET_KEY. " "Issued tokens will not survive a restart."
                )
            else:
                raise ValueError(
                    "JWT_SECRET_KEY is required in production mode. "
                    "Set JWT_SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret_key) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters.")

        if not self.database_url:
            if self.debug:
                self.database_url = _DEV_DB_URL
                logger.warning("WARNING: DATABASE_URL not set, using %s", _DEV_DB_URL)
            else:
                raise ValueError("DATABASE_URL is required in production mode.")

        if self.access_token_ttl_minutes <= 0:
            raise ValueError("ACCESS_TOKEN_TTL_MINUTES must be greater than zero.")
        if self.refresh_token_ttl_minutes <= 0:
            raise ValueError("REFRESH_TOKEN_TTL_MINUTES must be greater than zero.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
