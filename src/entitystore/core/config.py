"""Configuration management for EntityStore.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once and is
immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ENTITYSTORE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "EntityStore"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./es_data/entitystore.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False
    db_sqlite_foreign_keys: bool = True

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Schema Limits
    max_fields_per_entity: int = Field(default=100, ge=1)
    max_entity_name_length: int = Field(default=255, ge=1)
    max_description_length: int = Field(default=2000, ge=1)

    # Batch Limits
    max_batch_size: int = Field(default=100, ge=1)
    min_batch_size: int = Field(default=1, ge=1)

    # Metadata Limits
    max_metadata_size: int = Field(
        default=16 * 1024,
        description="Maximum serialized size of record metadata in bytes",
    )
    max_metadata_depth: int = 10

    # Validator cache (keyed by schema fingerprint)
    validator_cache_size: int = 256

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @model_validator(mode="after")
    def validate_batch_bounds(self) -> "Settings":
        """Validate that the batch size bounds are consistent."""
        if self.min_batch_size > self.max_batch_size:
            raise ValueError(
                f"min_batch_size ({self.min_batch_size}) cannot exceed "
                f"max_batch_size ({self.max_batch_size})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
