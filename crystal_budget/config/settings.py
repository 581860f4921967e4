"""
Configuration Management for CrystalBudget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The budget core itself takes no configuration: status thresholds are
constants so that display banding is reproducible everywhere.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Data-access configuration (local snapshot store and fetch retries)."""

    model_config = SettingsConfigDict(
        env_prefix="CRYSTALBUDGET_STORAGE_",
        extra="ignore"
    )

    snapshot_path: Path = Field(
        default=Path("crystalbudget_snapshot.json"),
        description="Path of the local JSON snapshot"
    )

    # Retry policy for transient fetch failures
    fetch_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a fetch is attempted"
    )
    fetch_retry_wait_min: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum backoff between attempts (seconds)"
    )
    fetch_retry_wait_max: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum backoff between attempts (seconds)"
    )

    @model_validator(mode='after')
    def validate_backoff(self) -> 'StorageSettings':
        if self.fetch_retry_wait_max < self.fetch_retry_wait_min:
            raise ValueError("fetch_retry_wait_max cannot be below fetch_retry_wait_min")
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log everything at DEBUG level, overriding log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured log"
    )

    # Presentation
    default_currency: str = Field(
        default="RUB",
        min_length=3,
        max_length=3,
        description="ISO code used when formatting amounts"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_mode else self.log_level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries for the failing ones. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
