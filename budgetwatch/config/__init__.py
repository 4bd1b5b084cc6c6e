"""Configuration package."""

from budgetwatch.config.settings import (
    AppSettings,
    Settings,
    StorageSettings,
    SyncSettings,
    TrackingSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "Settings",
    "StorageSettings",
    "SyncSettings",
    "TrackingSettings",
    "get_settings",
    "validate_all_settings",
]
