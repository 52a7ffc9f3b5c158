"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthEngine happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion and validation are built in.

Token lifetimes:
  LOGIN_TOKEN_TTL_SECONDS   -- lifetime of a token minted by authenticate (1 hour).
  RENEWED_TOKEN_TTL_SECONDS -- lifetime of a token minted by renew (2 minutes).
  The two values differ on purpose; renewal is a short extension, not a new login.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authengine.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'authengine.db'}"

# Digest names accepted by auth.hashing.digest(). Kept here so Settings can
# reject a bad HASH_ALGORITHM at startup instead of on the first registration.
SUPPORTED_HASH_ALGORITHMS = ("md5", "sha1", "sha256", "sha384", "sha512")


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
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    hash_algorithm: str = "sha256"
    login_token_ttl_seconds: int = 3600
    renewed_token_ttl_seconds: int = 120

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    # bcrypt work factor. Tests drop this to 4 (the bcrypt minimum) for speed.
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("hash_algorithm")
    @classmethod
    def validate_hash_algorithm(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(
                f"HASH_ALGORITHM must be one of {', '.join(SUPPORTED_HASH_ALGORITHMS)}; got {value!r}."
            )
        return normalized

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @model_validator(mode="after")
    def validate_token_ttls(self) -> "Settings":
        """Reject non-positive token lifetimes.

        A zero or negative TTL would mint tokens that are already expired,
        which locks every user out without any visible configuration error.
        """
        if self.login_token_ttl_seconds <= 0:
            raise ValueError("LOGIN_TOKEN_TTL_SECONDS must be positive.")
        if self.renewed_token_ttl_seconds <= 0:
            raise ValueError("RENEWED_TOKEN_TTL_SECONDS must be positive.")
        if self.debug and self.bcrypt_rounds < 10:
            logger.warning("WARNING: BCRYPT_ROUNDS=%d is below the recommended minimum.", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
