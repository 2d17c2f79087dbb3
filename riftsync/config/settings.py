"""
Configuration settings using Pydantic Settings.

All sensitive configuration must be loaded from environment variables.
Never hardcode API keys or credentials in the code.
"""

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from riftsync.contracts.common import Platform

CACHE_BACKENDS = ("redis", "file")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Riot API Configuration
    riot_api_key: str = Field(..., validation_alias=AliasChoices("RIOT_API_KEY", "API_KEY"))
    riot_platform: str = Field("na1", alias="RIOT_PLATFORM")
    riot_request_timeout_seconds: float = Field(8.0, alias="RIOT_REQUEST_TIMEOUT_SECONDS")
    riot_pool_size: int = Field(128, alias="RIOT_POOL_SIZE")
    riot_keepalive_seconds: float = Field(10.0, alias="RIOT_KEEPALIVE_SECONDS")
    riot_api_rate_limit_per_second: int = Field(20, alias="RIOT_API_RATE_LIMIT_PER_SECOND")

    # Match window and fetch tuning
    match_window_size: int = Field(300, alias="MATCH_WINDOW_SIZE")
    match_id_page_size: int = Field(100, alias="MATCH_ID_PAGE_SIZE")
    detail_batch_size: int = Field(20, alias="DETAIL_BATCH_SIZE")
    detail_concurrency: int = Field(8, alias="DETAIL_CONCURRENCY")
    # Must not exceed riot_api_rate_limit_per_second
    detail_requests_per_second: float = Field(15.0, alias="DETAIL_REQUESTS_PER_SECOND")

    # Cache Configuration
    cache_backend: str = Field("redis", alias="CACHE_BACKEND")
    redis_url: str = Field("redis://localhost:6379", alias="REDIS_URL")
    cache_key_prefix: str = Field("riftsync:player-cache", alias="CACHE_KEY_PREFIX")
    cache_ttl_seconds: int | None = Field(None, alias="CACHE_TTL_SECONDS")
    cache_dir: str = Field(".cache/match_history", alias="CACHE_DIR")
    # Per-player lock TTL; also how long a second sync waits for the first
    sync_lock_timeout_seconds: int = Field(300, alias="SYNC_LOCK_TIMEOUT_SECONDS")

    # Celery Configuration
    celery_broker_url: str = Field("redis://localhost:6379/0", alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field("redis://localhost:6379/1", alias="CELERY_RESULT_BACKEND")
    celery_task_time_limit: int = Field(300, alias="CELERY_TASK_TIME_LIMIT")

    # Application Configuration
    app_log_level: str = Field("INFO", alias="APP_LOG_LEVEL")

    @field_validator(
        "match_window_size",
        "match_id_page_size",
        "detail_batch_size",
        "detail_concurrency",
        "riot_pool_size",
        "riot_api_rate_limit_per_second",
        "sync_lock_timeout_seconds",
    )
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("match_id_page_size")
    @classmethod
    def _page_size_cap(cls, value: int) -> int:
        # Match-V5 rejects count > 100
        return min(value, 100)

    @field_validator("detail_requests_per_second", "riot_request_timeout_seconds")
    @classmethod
    def _positive_float(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("cache_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in CACHE_BACKENDS:
            raise ValueError(f"cache_backend must be one of {CACHE_BACKENDS}")
        return backend

    @field_validator("riot_platform")
    @classmethod
    def _known_platform(cls, value: str) -> str:
        platform = value.strip().lower()
        try:
            Platform(platform)
        except ValueError:
            known = ", ".join(p.value for p in Platform)
            raise ValueError(f"riot_platform must be one of: {known}") from None
        return platform

    @model_validator(mode="after")
    def _detail_rate_within_app_limit(self) -> "Settings":
        if self.detail_requests_per_second > self.riot_api_rate_limit_per_second:
            raise ValueError(
                f"detail_requests_per_second ({self.detail_requests_per_second}) exceeds "
                f"riot_api_rate_limit_per_second ({self.riot_api_rate_limit_per_second})"
            )
        return self


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings singleton.

    Loaded lazily so that importing the package does not require RIOT_API_KEY.
    """
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings


def reset_settings() -> None:
    """Drop the cached settings instance (tests, CLI overrides)."""
    global _settings
    _settings = None
