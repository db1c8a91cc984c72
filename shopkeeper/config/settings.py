"""
Shopkeeper Settings

Every tunable value, read from the environment or a .env file with
pydantic-settings.

DESIGN DECISION: One sub-settings class per collaborator (Gemini, Google
Sheets, storage) plus AppSettings for ledger behaviour. A shop that never
uses Google Sheets never has to configure it; sub-settings are only
built when first asked for.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shopkeeper.models.catalog import NAME_MAX_LENGTH


class WeekStart(int, Enum):
    """First day of the calendar week (Python weekday numbers)."""
    MONDAY = 0
    SUNDAY = 6


class IntakeMatchPolicy(str, Enum):
    """How intake line items are matched to catalog products."""
    EXACT = "exact"
    FUZZY = "fuzzy"


class StorageBackend(str, Enum):
    """Where the shop snapshot is mirrored."""
    MEMORY = "memory"
    JSON = "json"
    GOOGLE_SHEETS = "google_sheets"


class GeminiSettings(BaseSettings):
    """Model settings shared by the receipt reader and the product recognizer."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="API key for Google AI Studio"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Multimodal model that reads receipts and product photos"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Token cap for one JSON answer"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sampling temperature; keep low so readings are repeatable"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file with access to the spreadsheet"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet that mirrors the shop snapshot"
    )
    snapshot_sheet_name: str = Field(
        default="ShopSnapshot",
        description="Worksheet holding one row per snapshot blob"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file is only a warning; the store reports it on first use."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Service account key not found at {v}; "
                "the Google Sheets store will fail to connect."
            )
        return v


class StorageSettings(BaseSettings):
    """Snapshot storage selection."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    backend: StorageBackend = Field(
        default=StorageBackend.JSON,
        description="Snapshot backend: memory, json or google_sheets"
    )
    data_dir: str = Field(
        default="data",
        description="Directory for the json backend (one file per blob)"
    )


class AppSettings(BaseSettings):
    """
    Ledger, credit and review settings for this device.
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
    device_id: str = Field(
        default="",
        description="Stamped on records committed from this device"
    )

    # Ledger behaviour
    week_start: WeekStart = Field(
        default=WeekStart.SUNDAY,
        description="First day of the week for weekly totals"
    )
    intake_match_policy: IntakeMatchPolicy = Field(
        default=IntakeMatchPolicy.EXACT,
        description="How receipt items are matched to catalog products"
    )
    placeholder_item_name: str = Field(
        default="Receipt item",
        min_length=1,
        max_length=NAME_MAX_LENGTH,
        description="Name of the line seeded when a receipt reading has no items"
    )

    # AI credits
    initial_credits: int = Field(
        default=100,
        ge=0,
        description="Credits for a fresh install"
    )
    credits_per_scan: int = Field(
        default=1,
        ge=0,
        description="Credits consumed by one AI scan"
    )
    credit_top_up_amount: int = Field(
        default=50,
        ge=1,
        description="Credits added by one top-up"
    )

    # Review thresholds
    max_line_amount: float = Field(
        default=100000.0,
        description="Line totals above this are flagged for review"
    )


class Settings(BaseSettings):
    """Entry point for all settings groups."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Built on access; a missing GEMINI_API_KEY only fails AI setup

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings. Tests call get_settings.cache_clear() after
    changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to build every settings group.

    Returns {group: ok} plus {group}_error with the message for each group
    that failed, so a startup screen can say what is missing.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "google_sheets", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
