"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads for rolegate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() or
pass a Settings instance to identity.container.create_services().

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. A missing SECRET_KEY is fatal unless DEBUG=true; a missing
      DATABASE_URL is always fatal.

Layer rule: core/ is the kernel. This module may not import from identity/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Any

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigErrorKind, IdentityError

logger = logging.getLogger("rolegate.config")


class Settings(BaseSettings):
    """Settings loaded from environment variables and .env file.

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
    # Empty string is the "not configured" sentinel; the validator below
    # either generates a dev key or raises.
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///rolegate.db"

    # ------------------------------------------------------------------
    # Credentials and tokens
    # ------------------------------------------------------------------

    # bcrypt cost factor. Tests drop this to 4 (the bcrypt minimum).
    bcrypt_rounds: int = 12
    token_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Refuse to start on missing or weak required values.

        Dev mode (DEBUG=true): a missing SECRET_KEY is replaced with a random
            one and a warning is logged. Tokens will not survive a restart.

        Production mode: a missing SECRET_KEY is a hard startup failure.

        Both modes: SECRET_KEY shorter than 32 characters is rejected, and
            DATABASE_URL must not be empty.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not self.database_url:
            raise ValueError("DATABASE_URL is required.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self

    def get(self, name: str) -> Any:
        """Return a configured value by its environment variable name.

        Lookup is case-insensitive (SECRET_KEY and secret_key are the same
        setting). Unknown names and empty values raise MISSING_VARIABLE.
        """
        field = name.lower()
        if field not in type(self).model_fields:
            raise IdentityError(ConfigErrorKind.MISSING_VARIABLE, f"The configuration variable {name} is not defined")
        value = getattr(self, field)
        if value is None or value == "":
            raise IdentityError(ConfigErrorKind.MISSING_VARIABLE, f"The configuration variable {name} is missing")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
