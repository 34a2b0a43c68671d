"""
Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration for the engine and session
factories and for logging, loading settings from environment variables
and .env files.
"""

import logging
import re
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_SCHEMES = (
    "sqlite",
    "sqlite+aiosqlite",
    "sqlite+pysqlite",
    "postgresql",
    "postgresql+asyncpg",
    "postgresql+psycopg",
    "postgresql+psycopg2",
)


class Settings(BaseSettings):
    """
    Repository settings loaded from environment variables.

    All settings can be overridden via environment variables
    (DATABASE_URL, SQL_ECHO, LOG_LEVEL, LOG_JSON).
    """

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/repositori.db",
        description="Database connection URL; the driver marker is normalised per engine"
    )
    sql_echo: bool = Field(
        default=False,
        description="Echo SQL statements for debugging"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_json: bool = Field(
        default=True,
        description="Emit JSON log lines instead of plain text"
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        Ensures URL is not empty and uses a scheme the engines can be
        built for (SQLite or PostgreSQL, with or without a driver marker).
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        if not any(v.startswith(scheme + "://") for scheme in SUPPORTED_SCHEMES):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(SUPPORTED_SCHEMES)}. "
                f"Got: {v[:20]}..."
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise the level name and reject unknown ones."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(
                f"LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL. Got: {v}"
            )
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def async_database_url(self) -> str:
        """
        URL with an asyncio driver marker, required for AsyncEngine.

        sqlite URLs get +aiosqlite and postgresql URLs get +asyncpg.
        """
        url = self.database_url
        if self.is_sqlite:
            return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)
        return re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)

    @property
    def sync_database_url(self) -> str:
        """
        URL for the blocking Engine.

        Strips asyncio driver markers so SQLAlchemy picks its default
        blocking DBAPI (sqlite3, psycopg2). Explicit blocking drivers are kept.
        """
        url = self.database_url
        if self.is_sqlite:
            return re.sub(r"^sqlite\+aiosqlite://", "sqlite://", url)
        return re.sub(r"^postgresql\+asyncpg://", "postgresql://", url)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
