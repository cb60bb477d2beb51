"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, token_expire_seconds -> TOKEN_EXPIRE_SECONDS).

  @model_validator(mode="after"): DEBUG-conditional SECRET_KEY policy. Dev mode
      generates a key with a warning; production mode refuses to start without one.

Session timing:
  Three durations are configured independently and are NOT kept in sync:
    token_expire_seconds    -- "exp" claim of the signed token
    session_cookie_max_age  -- Max-Age of the "token" cookie
    token_stale_seconds     -- age after which the nightly sweep deletes a record
  If they diverge, a token can outlive its database record (then authenticate
  fails with 403) or the other way round (then signature expiry fails with 403).

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("userapi.config")


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
    # "production" turns on Secure cookies and silences console access logs.
    environment: str = "development"
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""
    database_url: str = "sqlite:///./users.db"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = ["http://localhost:3000"]
    access_log_path: str = "logs/access.log"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    jwt_algorithm: str = "HS256"
    token_expire_seconds: int = 3600
    session_cookie_max_age: int = 3600
    # Forces secure cookies outside production (e.g. staging behind TLS).
    secure_cookies: bool = False
    # GET/PUT/DELETE /api/users/{id} are public unless this is set.
    require_auth_for_user_routes: bool = False

    # ------------------------------------------------------------------
    # Token cleanup
    # ------------------------------------------------------------------

    cleanup_enabled: bool = True
    cleanup_hour: int = 0
    cleanup_minute: int = 0
    token_stale_seconds: int = 3600

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production or self.secure_cookies

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens stop verifying after a restart.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not (0 <= self.cleanup_hour <= 23 and 0 <= self.cleanup_minute <= 59):
            raise ValueError("CLEANUP_HOUR must be 0-23 and CLEANUP_MINUTE 0-59.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() if you need to inject different
    environment variables.
    """
    return Settings()
