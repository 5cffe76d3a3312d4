"""
Configuration Management for Ledgerbook

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so every external dependency
is visible in one place and validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CloudinarySettings(BaseSettings):
    """Cloudinary object storage configuration (transfer receipts)."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per entity
    users_sheet_name: str = Field(default="Users")
    accounts_sheet_name: str = Field(default="BankAccounts")
    categories_sheet_name: str = Field(default="Categories")
    transactions_sheet_name: str = Field(default="Transactions")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class ReceiptSettings(BaseSettings):
    """Transfer receipt rendering and storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RECEIPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    folder: str = Field(
        default="transfer-uploads",
        description="Object storage prefix for transfer receipts"
    )
    link_ttl_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="How long a signed receipt link stays valid"
    )
    date_format: str = Field(
        default="%d/%m/%Y",
        description="strftime format used for the date printed on receipts"
    )
    header_title: str = Field(default="Ledgerbook")
    report_title: str = Field(default="Transfer receipt")
    page_width: int = Field(default=1240, ge=200)
    page_height: int = Field(default=1754, ge=200)
    resolution: float = Field(
        default=150.0,
        gt=0,
        description="DPI used when embedding the page into the PDF"
    )


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

    # Backends
    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Where accounts, categories and transactions live"
    )
    receipt_backend: Literal["memory", "cloudinary"] = Field(
        default="memory",
        description="Where transfer receipts are uploaded"
    )

    # Transfer rules
    allow_external_transfers: bool = Field(
        default=True,
        description="Allow transfers into accounts owned by other users"
    )
    incoming_transfer_prefix: str = Field(
        default="Incoming transfer - ",
        description="Prefix for the name of the INCOME leg of a transfer"
    )

    # Bank account keys
    bank_account_key_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many keys to try before giving up on a collision"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def receipts(self) -> ReceiptSettings:
        return ReceiptSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each section that failed.
    """
    results = {}

    settings = get_settings()

    sections = {
        "cloudinary": lambda: settings.cloudinary,
        "google_sheets": lambda: settings.google_sheets,
        "receipts": lambda: settings.receipts,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
