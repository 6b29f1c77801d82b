"""
Service configuration loaded from environment variables.

Uses Pydantic BaseSettings for env var loading and validation. Required
variables abort startup when missing; optional ones have defaults.

CHANGELOG:
- 2026-10-19: Replace ad-hoc os.environ dict with Settings (STORY-002)
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """API configuration.

    Attributes:
        database_url: SQLAlchemy async URL, e.g. postgresql+asyncpg://...
        redis_url: Redis URL for the latest-state cache.
        max_request_bytes: Upper bound on an ingest request body.
        cache_ttl_s: TTL of cached status entries in seconds.
        analytics_window_hours: Default trailing window for analytics.
        log_level: Root log level name.
    """

    database_url: str
    redis_url: str
    max_request_bytes: int = 1048576
    cache_ttl_s: int = 5
    analytics_window_hours: float = 24.0
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def database_url_must_be_async(cls, v: str) -> str:
        """Reject sync driver URLs; the engine is created with create_async_engine."""
        if "+" not in v.split("://", 1)[0]:
            raise ValueError(
                "DATABASE_URL must name an async driver "
                "(e.g. postgresql+asyncpg://...)"
            )
        return v

    @field_validator("max_request_bytes")
    @classmethod
    def max_request_bytes_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_REQUEST_BYTES must be >= 1")
        return v

    @field_validator("cache_ttl_s")
    @classmethod
    def cache_ttl_must_be_positive(cls, v: int) -> int:
        """Redis SET ... EX rejects non-positive expiries."""
        if v < 1:
            raise ValueError("CACHE_TTL_S must be >= 1")
        return v

    @field_validator("analytics_window_hours")
    @classmethod
    def window_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("ANALYTICS_WINDOW_HOURS must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL '{v}'")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance."""
    return Settings()
