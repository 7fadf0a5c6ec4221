"""
Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration management with validation,
loading settings from environment variables and .env files.
"""

from functools import lru_cache
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or passed
    explicitly when building an application with create_app().
    """

    # API Configuration
    project_name: str = Field(
        default="AutoCRUD API",
        description="Project name displayed in API docs"
    )
    api_prefix: str = Field(
        default="",
        description="Prefix prepended to the health endpoints and OpenAPI URL"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./autocrud.db",
        description="Async database connection URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Log every SQL statement (debug only)"
    )
    create_tables: bool = Field(
        default=False,
        description="Run metadata.create_all() on startup instead of relying on migrations"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    json_logs: bool = Field(
        default=True,
        description="Emit structured JSON logs (False for plain text)"
    )

    # CORS Configuration
    cors_origins: List[str] = Field(
        default_factory=list,
        description="Allowed CORS origins (empty disables CORS middleware)"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow cookies/credentials in CORS requests"
    )

    enable_health: bool = Field(
        default=True,
        description="Mount /health and /health/ready endpoints"
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
        env_nested_delimiter="__",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """
        Parse cors_origins from JSON string or list.

        Supports comma-separated origins for easier .env configuration.
        """
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # Fallback: split by comma if not valid JSON
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}. "
                f"Got: {v}"
            )
        return level

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        Only async drivers are accepted since every session is an AsyncSession.
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        valid_schemes = ["sqlite+aiosqlite", "postgresql+asyncpg", "mysql+aiomysql"]
        if not any(v.startswith(scheme + "://") for scheme in valid_schemes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(valid_schemes)}. "
                f"Got: {v[:20]}..."
            )
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
