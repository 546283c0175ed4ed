"""
Configuration Management for KwentaKo

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each external service has its own settings class with its own env prefix,
so a missing Telegram token does not stop the ledger or the AI client
from being configured (and vice versa).
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_output_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )

    # Retry policy for transient failures (overload, rate limit, unavailable)
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total model calls before falling back to heuristics"
    )
    backoff_multiplier: float = Field(
        default=1.0,
        ge=0.0,
        description="Exponential backoff scale in seconds"
    )
    backoff_max: float = Field(
        default=10.0,
        ge=0.0,
        description="Upper bound for a single backoff wait in seconds"
    )

    max_input_chars: int = Field(
        default=2000,
        ge=50,
        description="Longer inputs are truncated before submission"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Per-call timeout for the model request"
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
    worksheet_name: str = Field(
        default="Expenses",
        description="Worksheet holding the expense document"
    )

    # Timestamped copies of the worksheet after each write
    backup_enabled: bool = Field(
        default=False,
        description="Duplicate the worksheet after every successful write"
    )
    backup_prefix: str = Field(
        default="Backup",
        description="Title prefix for backup worksheets"
    )
    backup_keep: int = Field(
        default=5,
        ge=1,
        description="Newest backup worksheets to keep; older ones are deleted"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the bot."
            )
        return v


class TelegramSettings(BaseSettings):
    """Telegram bot configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    bot_token: str = Field(
        ...,
        description="Bot token from @BotFather"
    )
    webhook_url: Optional[str] = Field(
        default=None,
        description="Public webhook URL; long polling is used when unset"
    )
    listen_port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port for the webhook listener"
    )
    webhook_secret: Optional[str] = Field(
        default=None,
        description="Secret Telegram echoes in X-Telegram-Bot-Api-Secret-Token"
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
        description="Echo underlying error messages back to the user"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Locale
    currency_code: str = Field(
        default="PHP",
        min_length=3,
        max_length=3,
        description="Currency code used in the document header"
    )
    currency_symbol: str = Field(
        default="₱",
        description="Currency symbol used in replies"
    )
    timezone: str = Field(
        default="Asia/Manila",
        description="Timezone used to stamp the capture date"
    )

    # Recent-message de-duplication
    dedup_cache_size: int = Field(
        default=256,
        ge=1,
        description="How many recent message IDs to remember"
    )

    creator_name: str = Field(
        default="Eli Bautista",
        description="Shown in the statistics report"
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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def telegram(self) -> TelegramSettings:
        return TelegramSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "google_sheets", "telegram", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
