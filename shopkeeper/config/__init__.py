"""Configuration package."""

from shopkeeper.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    IntakeMatchPolicy,
    Settings,
    StorageBackend,
    StorageSettings,
    WeekStart,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "IntakeMatchPolicy",
    "Settings",
    "StorageBackend",
    "StorageSettings",
    "WeekStart",
    "get_settings",
    "validate_all_settings",
]
