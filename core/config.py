"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authcore happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead,
or better, accept a Settings instance from the caller.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      process entry point (asgi.py) relies on it; create_app() accepts an
      explicit Settings so tests can build isolated configurations.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Resolves the cookie Secure flag. When
      SECURE_COOKIES is not set, it follows the inverse of DEBUG: production
      deployments sit behind TLS and must never emit session cookies without
      the Secure attribute.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authcore.config")

SEVEN_DAYS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
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
    database_url: str = "sqlite:///authcore.db"
    # Passed to the driver; bounds how long a store call waits on a locked DB.
    db_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Credentials and sessions
    # ------------------------------------------------------------------

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    session_duration_seconds: int = Field(default=SEVEN_DAYS, gt=0)

    # ------------------------------------------------------------------
    # Cookies and CSRF
    # ------------------------------------------------------------------

    # None = derive from debug in the validator below.
    secure_cookies: Optional[bool] = None
    session_cookie_name: str = "session_token"
    csrf_cookie_name: str = "csrf_token"
    csrf_header_name: str = "X-CSRF-Token"
    csrf_exempt_paths: list[str] = [
        "/api/v1/auth/register",
        "/api/v1/auth/login",
        "/api/v1/auth/logout",
    ]

    # ------------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost:5173"]

    @model_validator(mode="after")
    def resolve_secure_cookies(self) -> "Settings":
        """Default the Secure cookie flag to on unless running in debug mode."""
        if self.secure_cookies is None:
            self.secure_cookies = not self.debug
            if self.debug:
                logger.warning("Secure cookies disabled in debug mode. Do not serve production traffic like this.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: build Settings(...) directly and pass it to create_app(), or call
    get_settings.cache_clear() if you need to inject different environment
    variables.
    """
    return Settings()
