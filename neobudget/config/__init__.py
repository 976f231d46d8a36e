"""Configuration package."""

from neobudget.config.settings import (
    AppSettings,
    ImportSettings,
    LedgerSettings,
    Settings,
    StorageSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ImportSettings",
    "LedgerSettings",
    "Settings",
    "StorageSettings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
