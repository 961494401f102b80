"""
Configuration Management for Zen Finance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """Key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ZEN_STORAGE_",
        extra="ignore"
    )

    backend: Literal["json_file", "memory"] = Field(
        default="json_file",
        description="Storage backend to use"
    )
    data_dir: str = Field(
        default=".zen-data",
        description="Directory holding one JSON document per key"
    )
    key_prefix: str = Field(
        default="zen-",
        description="Prefix applied to every storage key"
    )
    quota_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Optional size limit for the in-memory backend"
    )

    @field_validator('key_prefix')
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        """Keys end up in file names, so keep them path-safe."""
        if "/" in v or "\\" in v:
            raise ValueError("key_prefix must not contain path separators")
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Budget defaults
    default_budget_limit: Decimal = Field(
        default=Decimal("500"),
        gt=0,
        description="Limit given to the built-in categories on first run"
    )

    # Validation thresholds
    max_transaction_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged (warning only)"
    )
    max_description_length: int = Field(
        default=200,
        ge=1,
        le=200,
        description="Maximum length of a description (the models cap it at 200)"
    )

    # Dashboard windows
    upcoming_payments_limit: int = Field(
        default=3,
        ge=1,
        description="How many upcoming bills to show"
    )
    daily_spending_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Length of the daily spending series in days"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
