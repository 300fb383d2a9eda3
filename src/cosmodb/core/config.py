"""Configuration management for CosmoDB.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once per
process and is immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Document store configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COSMODB_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "CosmoDB"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Storage Settings
    default_adapter: str = "memory"
    storage_directory: str = "./cosmo_data"
    file_extension: str = ".json"

    # Collection Settings
    validate_schema: bool = True
    enforce_unique_ids: bool = Field(
        default=True,
        description="Reject inserts whose caller-supplied id is already stored",
    )
    sync_on_close: bool = False
    auto_sync: bool = False
    sync_interval: float = Field(
        default=5.0,
        description="Seconds between automatic syncs when auto_sync is enabled",
    )

    # Query Settings
    reserved_operator_prefix: str = "$"
    reserved_operator_policy: Literal["ignore", "reject"] = Field(
        default="ignore",
        description="How query fields starting with the reserved prefix are handled",
    )

    # Query Analytics Settings
    query_analytics_enabled: bool = True
    query_analytics_collection: str = "query_analytics"

    @field_validator("reserved_operator_prefix")
    @classmethod
    def validate_operator_prefix(cls, v: str) -> str:
        """An empty prefix would reserve every field name."""
        if not v:
            raise ValueError("reserved_operator_prefix cannot be empty")
        return v

    @field_validator("file_extension")
    @classmethod
    def validate_file_extension(cls, v: str) -> str:
        """Ensure the storage file extension starts with a dot."""
        if not v.startswith(".") or len(v) < 2:
            raise ValueError("file_extension must start with '.' (e.g. '.json')")
        return v

    @field_validator("query_analytics_collection", "default_adapter")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("value cannot be blank")
        return v

    @field_validator("sync_interval")
    @classmethod
    def validate_sync_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sync_interval must be greater than 0")
        return v

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


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function caches the settings instance to avoid reloading
    configuration on every call.

    Returns:
        Settings: Cached settings instance.
    """
    return Settings()
