"""
Centralized configuration management using Pydantic Settings.

Settings are loaded from environment variables prefixed with
ALCHEMY_GENERICS_ and from an optional .env file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


VALID_DATABASE_SCHEMES = [
    "sqlite",
    "sqlite+aiosqlite",
    "postgresql",
    "postgresql+asyncpg",
    "mysql+aiomysql",
]

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """
    Library settings loaded from environment variables.

    All settings can be overridden via environment variables, e.g.
    ALCHEMY_GENERICS_PRELOAD_ASSOCIATIONS=true.
    """

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///:memory:",
        description="Database connection URL used by the engine helpers"
    )
    sql_echo: bool = Field(
        default=False,
        description="Echo generated SQL through the sqlalchemy.engine logger"
    )

    # Repository Defaults
    preload_associations: bool = Field(
        default=False,
        description="Default preload flag for repositories constructed without one"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Root logging level used by setup_logging()"
    )
    log_json: bool = Field(
        default=True,
        description="Emit structured JSON log lines instead of plain text"
    )

    model_config = SettingsConfigDict(
        env_prefix="ALCHEMY_GENERICS_",
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

        Only async-capable or SQLite schemes are accepted.
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        if not any(v.startswith(scheme + "://") for scheme in VALID_DATABASE_SCHEMES):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(VALID_DATABASE_SCHEMES)}. "
                f"Got: {v[:20]}..."
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of: {', '.join(VALID_LOG_LEVELS)}. Got: {v}"
            )
        return level


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance."""
    return Settings()
