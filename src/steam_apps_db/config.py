"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation,
type coercion, and sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SteamAPIConfig(BaseSettings):
    """Steam Web API and Store API configuration."""

    model_config = SettingsConfigDict(env_prefix="STEAM_")

    api_key: SecretStr | None = Field(
        default=None,
        description="Steam Web API key, only required for workshop queries",
    )
    base_url: str = Field(
        default="https://api.steampowered.com",
        description="Base URL for Steam Web API",
    )
    store_url: str = Field(
        default="https://store.steampowered.com/api",
        description="Base URL for Steam Store API",
    )
    assets_url: str = Field(
        default="https://shared.akamai.steamstatic.com/store_item_assets/steam/apps",
        description="Base URL for static per-app store assets",
    )
    country_code: str = Field(default="us", description="Country code for store pricing")
    language: str = Field(default="en", description="Language for store descriptions")
    news_count: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Number of news items requested per app",
    )
    workshop_page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Workshop items requested per QueryFiles page",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )


class DatabaseConfig(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="sqlite:///data/steam_apps.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(default=False, description="Log emitted SQL statements")


class QueueConfig(BaseSettings):
    """Job dispatch, uniqueness and rate limiting configuration."""

    model_config = SettingsConfigDict(env_prefix="QUEUE_")

    name: str = Field(default="default", description="Queue the fetch jobs are pushed to")
    decay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=3600.0,
        description="Minimum spacing between executions of rate-limited jobs",
    )
    tries: int = Field(default=3, ge=1, le=10, description="Maximum attempts per job")
    backoff_seconds: float = Field(
        default=30.0,
        ge=0.0,
        le=3600.0,
        description="Fixed delay between job attempts",
    )
    unique_for_seconds: float | None = Field(
        default=None,
        ge=1.0,
        description=(
            "Optional expiry of a job uniqueness lock, renewed on every requeue. "
            "Unset holds the lock until the job succeeds or dies"
        ),
    )
    enable_news_scanning: bool = Field(
        default=False,
        description="Dispatch news jobs from the catalog import",
    )
    enable_workshop_scanning: bool = Field(
        default=False,
        description="Dispatch workshop jobs from the catalog import",
    )
    coordination: Literal["memory", "database"] = Field(
        default="memory",
        description="Where uniqueness locks and rate-limit windows live",
    )
    import_batch_size: int = Field(
        default=1000,
        ge=1,
        le=50000,
        description="Apps upserted per transaction during catalog import",
    )


class SchedulingConfig(BaseSettings):
    """Release-age thresholds and detail refresh intervals."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULE_")

    recent_months: int = Field(
        default=6,
        ge=0,
        description="Releases younger than this many months are 'recent'",
    )
    mid_max_years: int = Field(
        default=2,
        ge=0,
        description="Releases younger than this many years (and not recent) are 'mid'",
    )
    recent_days: int = Field(default=7, ge=0, description="Refresh interval for recent apps")
    mid_days: int = Field(default=30, ge=0, description="Refresh interval for mid-age apps")
    old_days: int = Field(default=183, ge=0, description="Refresh interval for old apps")
    details_batch_max_age_days: int = Field(
        default=365,
        ge=0,
        description="Batch details fetches also pick apps last refreshed longer ago than this",
    )
    news_batch_max_age_days: int = Field(
        default=30,
        ge=0,
        description="Batch news fetches also pick apps last refreshed longer ago than this",
    )


class RetryConfig(BaseSettings):
    """HTTP transport retry behavior."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of retry attempts",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Base delay between retries (exponential backoff)",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=300.0,
        description="Maximum delay between retries",
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.5,
        le=4.0,
        description="Base for exponential backoff calculation",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    include_timestamp: bool = Field(
        default=True,
        description="Include timestamp in log entries",
    )


class Settings(BaseSettings):
    """
    Main application settings.

    Aggregates all configuration sections and provides
    a single entry point for configuration access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    steam: SteamAPIConfig = Field(default_factory=SteamAPIConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    schedule: SchedulingConfig = Field(default_factory=SchedulingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        """Accept environment names in any case."""
        return v.lower() if isinstance(v, str) else v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
