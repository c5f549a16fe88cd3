"""Configuration management for the vacancy scanner."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config
from .models import (
    AdvancedConfig,
    AppConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    NotificationConfig,
    PreferenceDefaults,
    SchedulerConfig,
    SourceConfig,
    SourceType,
)

__all__ = [
    # Loaders
    "load_config",
    "load_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "SourceConfig",
    "SchedulerConfig",
    "PreferenceDefaults",
    "NotificationConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    # Enums
    "SourceType",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
