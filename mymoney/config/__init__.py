"""Configuration package."""

from mymoney.config.settings import (
    ApiSettings,
    AppSettings,
    BackgroundSettings,
    Platform,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "BackgroundSettings",
    "Platform",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
