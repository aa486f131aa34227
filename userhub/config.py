"""Configuration loading for the userhub service.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # User store configuration
    store_backend: Literal["sqlite", "postgresql"] = Field(
        default="sqlite",
        description="User store backend type",
    )
    store_sqlite_path: str = Field(
        default="./data/users.db",
        description="SQLite database file path",
    )
    database_url: str = Field(
        default="",
        description="PostgreSQL connection URL (overrides the DB_* settings)",
    )
    db_host: str = Field(
        default="localhost",
        description="PostgreSQL host",
    )
    db_port: int = Field(
        default=5432,
        description="PostgreSQL port",
    )
    db_user: str = Field(
        default="postgres",
        description="PostgreSQL user",
    )
    db_password: str = Field(
        default="postgres",
        description="PostgreSQL password",
    )
    db_name: str = Field(
        default="userhub",
        description="PostgreSQL database name",
    )
    db_sslmode: str = Field(
        default="disable",
        description="PostgreSQL SSL mode",
    )
    store_pool_size: int = Field(
        default=10,
        description="Maximum pooled store connections",
    )
    statement_timeout_seconds: float = Field(
        default=5.0,
        description="Upper bound for a single store operation in seconds",
    )

    # HTTP server configuration
    server_host: str = Field(
        default="0.0.0.0",
        description="Host to listen on for the HTTP API",
    )
    server_port: int = Field(
        default=8081,
        description="Port to listen on for the HTTP API",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for handling a single HTTP request in seconds",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Run mode
    run_mode: Literal["server", "cli"] = Field(
        default="server",
        description="Run mode",
    )

    # Development
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging",
    )

    @field_validator("server_port", "db_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Ensure ports are in valid range."""
        if v <= 0 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("store_pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        """Ensure pool size is positive."""
        if v <= 0:
            raise ValueError("store_pool_size must be positive")
        return v

    @field_validator("statement_timeout_seconds", "request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure timeouts are positive."""
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
