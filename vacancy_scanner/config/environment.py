"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        auth_service_url: str,
        auth_service_api_key: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.auth_service_url = auth_service_url.rstrip("/")
        self.auth_service_api_key = auth_service_api_key
        self.log_level = log_level
        self.database_url = database_url or "sqlite:///./data/vacancy_scanner.db"
        self.environment = environment or "local"


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required environment variables:
    - AUTH_SERVICE_URL: Base URL of the subscription/auth backend that issues
      user tokens, reports subscription status and relays bot messages

    Optional environment variables:
    - AUTH_SERVICE_API_KEY: Service key sent when requesting user tokens
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - DATABASE_URL: Database URL (default: sqlite:///./data/vacancy_scanner.db)
    - ENVIRONMENT: Environment label attached to every log line

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    auth_service_url = os.getenv("AUTH_SERVICE_URL")
    auth_service_api_key = os.getenv("AUTH_SERVICE_API_KEY")
    log_level = os.getenv("LOG_LEVEL")
    database_url = os.getenv("DATABASE_URL")
    environment = os.getenv("ENVIRONMENT")

    if not auth_service_url:
        errors.append("Missing required environment variable: AUTH_SERVICE_URL")
    elif not auth_service_url.startswith(("http://", "https://")):
        errors.append(
            f"Invalid AUTH_SERVICE_URL: '{auth_service_url}'. Must start with http:// or https://"
        )

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if database_url is not None and not database_url.strip():
        errors.append("DATABASE_URL is set but empty")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in the service URLs",
                "Ensure all required environment variables are set",
            ],
        )

    return EnvironmentConfig(
        auth_service_url=auth_service_url,
        auth_service_api_key=auth_service_api_key,
        log_level=log_level.upper() if log_level else None,
        database_url=database_url,
        environment=environment,
    )
