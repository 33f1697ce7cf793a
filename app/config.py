"""
CampusConnect — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the CampusConnect backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Database
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    AUTO_CREATE_TABLES: bool = False  # Alembic owns the schema in production

    # ------------------------------------------------------------------ #
    # Discovery / matching
    # ------------------------------------------------------------------ #
    POTENTIAL_MATCHES_PAGE_SIZE: int = 10

    # ------------------------------------------------------------------ #
    # Security
    # ------------------------------------------------------------------ #
    BCRYPT_ROUNDS: int = 10
    SESSION_TOKEN_BYTES: int = 32

    # ------------------------------------------------------------------ #
    # Real-time chat
    # ------------------------------------------------------------------ #
    WS_PATH: str = "/ws"
    WS_POLICY_VIOLATION_CODE: int = 1008
    MESSAGE_MAX_LENGTH: int = 2000

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @field_validator(
        "POTENTIAL_MATCHES_PAGE_SIZE",
        "SESSION_TOKEN_BYTES",
        "MESSAGE_MAX_LENGTH",
    )
    @classmethod
    def _must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime.  Import this function anywhere you
    need access to configuration::

        from app.config import get_settings
        settings = get_settings()
    """
    return Settings()  # type: ignore[call-arg]
