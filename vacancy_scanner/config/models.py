"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class SourceType(str, Enum):
    """Supported external listing sources."""

    HEADHUNTER = "headhunter"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class SourceConfig(BaseModel):
    """Connection and paging settings for the external listing API."""

    type: SourceType = Field(SourceType.HEADHUNTER, description="Listing source type")
    base_url: str = Field("https://api.hh.ru", min_length=1, description="API base URL")
    per_page: int = Field(100, ge=1, le=100, description="Listings requested per page")
    max_pages: int = Field(
        20, ge=1, le=100, description="Hard stop for pagination per sub-query"
    )

    @field_validator("base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        """Strip whitespace and any trailing slash."""
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return stripped

    model_config = {"use_enum_values": True}


class SchedulerConfig(BaseModel):
    """Dispatcher tick and worker pool settings."""

    tick_interval: str = Field("60s", description="How often due users are loaded")
    batch_size: int = Field(
        200, ge=1, le=10000, description="Maximum due users loaded per tick"
    )
    worker_count: int = Field(1, ge=1, le=64, description="Number of worker threads")
    queue_size: int = Field(
        1000, ge=1, description="Capacity of the queue between the tick and workers"
    )
    shutdown_timeout: float = Field(
        30.0, ge=0, description="Seconds to wait for workers on shutdown"
    )

    # Computed field
    tick_interval_seconds: Optional[int] = None

    @field_validator("tick_interval")
    @classmethod
    def validate_tick_interval(cls, v: str) -> str:
        """Validate the tick interval string."""
        try:
            validate_duration_range(parse_duration(v))
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def compute_tick_seconds(self):
        """Store the parsed tick interval in seconds."""
        self.tick_interval_seconds = parse_duration(self.tick_interval)
        return self


class PreferenceDefaults(BaseModel):
    """Defaults applied to users who have not saved their own preferences."""

    days: int = Field(1, ge=1, le=30, description="Default lookback window in days")
    interval_minutes: int = Field(
        30, ge=1, le=1440, description="Default auto-update interval in minutes"
    )
    notify_enabled: bool = Field(True, description="Bot notifications on by default")


class NotificationConfig(BaseModel):
    """Notification fan-out settings."""

    bot_enabled: bool = Field(True, description="Send batches through the bot channel")
    stream_enabled: bool = Field(True, description="Publish batches to live subscribers")
    max_items_per_message: int = Field(
        10, ge=1, le=50, description="Maximum listings per bot message"
    )
    stream_queue_size: int = Field(
        100, ge=1, description="Pending events kept per live subscriber"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """Advanced runtime settings."""

    http_request_timeout: int = Field(
        10, ge=1, le=300, description="Timeout for every outbound HTTP call (seconds)"
    )
    user_agent: str = Field(
        "Mozilla/5.0 (compatible; VacancyBot/1.0)",
        min_length=1,
        description="User-Agent string for HTTP requests",
    )

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        """Strip whitespace from user agent."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class AppConfig(BaseModel):
    """Root configuration object for the vacancy scanner."""

    source: SourceConfig = Field(default_factory=SourceConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    defaults: PreferenceDefaults = Field(default_factory=PreferenceDefaults)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    advanced: AdvancedConfig = Field(default_factory=AdvancedConfig)
