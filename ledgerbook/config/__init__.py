"""Configuration package."""

from ledgerbook.config.settings import (
    AppSettings,
    CloudinarySettings,
    GoogleSheetsSettings,
    ReceiptSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CloudinarySettings",
    "GoogleSheetsSettings",
    "ReceiptSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
