"""Configuration package."""

from zen_finance.config.settings import (
    AppSettings,
    GeminiSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
