"""Configuration package."""

from household_ledger.config.settings import (
    BackupSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "BackupSettings",
    "LoggingSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
