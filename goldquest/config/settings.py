"""
Configuration Management for GoldQuest Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Reserved category names, rounding and the exchange rate table live in one
place, so the ledger and the reconciliation engine always agree on them.
"""

import json
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Static rates, expressed as units of the base currency (BRL) per unit.
DEFAULT_EXCHANGE_RATES: dict[str, str] = {
    "BRL": "1",
    "USD": "5.00",
    "EUR": "5.40",
    "GBP": "6.20",
}


class LedgerSettings(BaseSettings):
    """Transaction ledger behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    default_category: str = Field(
        default="Uncategorized",
        description="Category used when a transaction is created without one"
    )
    transfer_category: str = Field(
        default="Transfer",
        description="Reserved category marking a transfer leg"
    )
    opening_balance_category: str = Field(
        default="Opening Balance",
        description="Reserved category whose records never move the balance"
    )
    transfer_description_prefix: str = Field(
        default="Transfer",
        description="Prefix that lets two transfer legs pair without identical descriptions"
    )
    strict_transfer_descriptions: bool = Field(
        default=False,
        description="Require identical descriptions when pairing transfer legs"
    )
    balance_decimal_places: int = Field(
        default=2,
        ge=0,
        le=8,
        description="Decimal places a stored balance is rounded to"
    )


class CurrencySettings(BaseSettings):
    """Exchange rate table configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CURRENCY_",
        extra="ignore"
    )

    base_currency: str = Field(
        default="BRL",
        description="Currency every rate is expressed in"
    )
    rates_json: str = Field(
        default=json.dumps(DEFAULT_EXCHANGE_RATES),
        description="JSON object mapping currency code to units of base currency"
    )

    @field_validator('base_currency')
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        """Currency codes are compared upper-case everywhere."""
        return v.strip().upper()

    @field_validator('rates_json')
    @classmethod
    def validate_rates_json(cls, v: str) -> str:
        """Reject rate tables that are not a JSON object of positive numbers."""
        try:
            data = json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"rates_json is not valid JSON: {e}")
        if not isinstance(data, dict) or not data:
            raise ValueError("rates_json must be a non-empty JSON object")
        for code, rate in data.items():
            if Decimal(str(rate)) <= 0:
                raise ValueError(f"Rate for {code} must be positive")
        return v

    @property
    def rates(self) -> dict[str, Decimal]:
        """Get the rate table with upper-cased codes and Decimal values."""
        data = json.loads(self.rates_json)
        return {code.upper(): Decimal(str(rate)) for code, rate in data.items()}


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
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

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for accounts"
    )

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
        description="Enable debug mode (human-readable console logs)"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for emitted log records"
    )
    log_format: str = Field(
        default="json",
        pattern="^(json|console)$",
        description="Log renderer used outside debug mode"
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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def currency(self) -> CurrencySettings:
        return CurrencySettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    sections = {
        "ledger": lambda: settings.ledger,
        "currency": lambda: settings.currency,
        "google_sheets": lambda: settings.google_sheets,
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
