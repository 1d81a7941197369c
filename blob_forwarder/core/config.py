"""
Configuration module for the Blob Event Forwarder.

This module defines the settings and configuration parameters for the forwarder.
It uses Pydantic's Settings management to load configuration from environment variables.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(str, Enum):
    """Environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values are resolved once at process start; the forwarder never re-reads
    them per invocation.
    """
    # General settings
    PROJECT_NAME: str = "Blob Event Forwarder"
    PROJECT_DESCRIPTION: str = "Forwards storage blob events from Event Grid to a message queue"
    VERSION: str = "0.1.0"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False
    LOG_LEVEL: LogLevel = LogLevel.INFO
    API_PREFIX: str = "/api"
    PORT: int = 7071

    # RabbitMQ settings
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: SecretStr = Field(default=SecretStr("guest"))
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = ""
    RABBITMQ_CONNECTION_TIMEOUT: float = 5.0
    QUEUE_NAME: str = "blob-events"

    # Telemetry settings
    TELEMETRY_ENABLED: bool = False
    TELEMETRY_KEY: Optional[str] = None

    # Webhook settings
    WEBHOOK_KEY: Optional[SecretStr] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        use_enum_values=True,
        validate_default=True,
        extra="ignore",
    )


# Create global settings instance
settings = Settings()
