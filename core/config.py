"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the verifier happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, auspost_bearer -> AUSPOST_BEARER).

  @model_validator(mode="after"): Cross-field checks run once the environment
      is resolved. Dev mode (DEBUG=true) generates a SECRET_KEY with a warning;
      production refuses to start without SECRET_KEY or AUSPOST_BEARER.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or verifications/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("verifier.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'verifier.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    app_name: str = "Verifier"
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    session_cookie_name: str = "session"
    session_expire_seconds: int = 7 * 24 * 60 * 60
    # None means "secure unless DEBUG" -- see cookie_secure.
    secure_cookies: Optional[bool] = None

    # ------------------------------------------------------------------
    # Address lookup provider
    # ------------------------------------------------------------------

    auspost_base_url: str = "https://digitalapi.auspost.com.au/postcode/search.json"
    auspost_bearer: str = ""
    auspost_timeout_seconds: float = 10.0
    debug_validation: bool = False

    # ------------------------------------------------------------------
    # Login rate limiting
    # ------------------------------------------------------------------

    login_rate_limit_attempts: int = 10
    login_rate_limit_window_seconds: int = 5 * 60

    # ------------------------------------------------------------------
    # Verification logs
    # ------------------------------------------------------------------

    logs_page_size: int = 50

    @property
    def cookie_secure(self) -> bool:
        """Whether the session cookie carries the Secure attribute."""
        if self.secure_cookies is not None:
            return self.secure_cookies
        return not self.debug

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce SECRET_KEY and provider credential policy.

        Dev mode (DEBUG=true): auto-generate a random SECRET_KEY with a warning.
            Sessions will not survive restart -- acceptable for local dev.
            A missing AUSPOST_BEARER is tolerated; lookups will fail upstream.

        Production mode: SECRET_KEY and AUSPOST_BEARER are both required.

        Both modes: SECRET_KEY shorter than 32 characters is rejected, and a
            configured AUSPOST_BEARER shorter than 10 characters is rejected.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")

        if not self.auspost_bearer and not self.debug:
            raise ValueError("AUSPOST_BEARER is required in production mode.")
        if self.auspost_bearer and len(self.auspost_bearer) < 10:
            raise ValueError("AUSPOST_BEARER looks too short.")
        if not self.auspost_base_url.startswith(("http://", "https://")):
            raise ValueError("AUSPOST_BASE_URL must be a valid http(s) URL.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
