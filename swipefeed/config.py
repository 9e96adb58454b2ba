"""
SwipeFeed — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.

The feed core never reads these settings directly: the swipe limit and the
prefetch threshold are handed to ``FeedController`` at construction by the
session registry.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the SwipeFeed service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Quota
    # ------------------------------------------------------------------ #
    DAILY_SWIPE_LIMIT: int = 10
    # "day": count swipes since the last reset on the current UTC day.
    # "session": count swipes since the last reset in this process.
    QUOTA_WINDOW: Literal["day", "session"] = "day"

    # ------------------------------------------------------------------ #
    # Feed pagination
    # ------------------------------------------------------------------ #
    PREFETCH_THRESHOLD: int = 2

    # ------------------------------------------------------------------ #
    # Profile source
    # ------------------------------------------------------------------ #
    PROFILE_SOURCE: Literal["mock", "http"] = "mock"
    PROFILE_SOURCE_URL: str = "http://localhost:9000/v1"
    SOURCE_TIMEOUT_SECONDS: float = 10.0
    SOURCE_MAX_RETRIES: int = 3
    MOCK_LATENCY_SECONDS: float = 1.0
    MOCK_PAGINATION_LATENCY_SECONDS: float = 0.5

    # ------------------------------------------------------------------ #
    # Local cache / ledger storage
    # ------------------------------------------------------------------ #
    CACHE_BACKEND: Literal["memory", "redis", "sql"] = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "swipefeed"
    DATABASE_URL: str = "sqlite+aiosqlite:///./swipefeed.db"

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #
    # Sessions untouched for this long are closed; 0 keeps them forever.
    SESSION_IDLE_SECONDS: float = 0
    SESSION_SWEEP_SECONDS: float = 60.0

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

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

    @field_validator(
        "DAILY_SWIPE_LIMIT", "PREFETCH_THRESHOLD", "SOURCE_MAX_RETRIES", "SESSION_IDLE_SECONDS"
    )
    @classmethod
    def _must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must be zero or positive, got {v}")
        return v

    @field_validator("SOURCE_TIMEOUT_SECONDS", "SESSION_SWEEP_SECONDS")
    @classmethod
    def _timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime::

        from swipefeed.config import get_settings
        settings = get_settings()
    """
    return Settings()
