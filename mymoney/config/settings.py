"""
Configuration Management for MyMoney

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Platform-specific choices (API host, export capabilities, background
task registration) are made once at startup from these settings instead
of being branched on throughout the business logic.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Platform(str, Enum):
    """Platform the client runs on."""
    WEB = "web"
    ANDROID = "android"
    IOS = "ios"


class StorageSettings(BaseSettings):
    """Local key-value persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MYMONEY_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(file|memory)$",
        description="Blob store implementation: 'file' or 'memory'"
    )
    data_path: str = Field(
        default="data/mymoney.json",
        description="Path of the JSON file used by the file blob store"
    )
    transactions_key: str = Field(
        default="@transacoes",
        min_length=1,
        description="Key holding the serialized transaction list"
    )
    session_key: str = Field(
        default="@usuario",
        min_length=1,
        description="Key holding the serialized user session"
    )


class ApiSettings(BaseSettings):
    """REST backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MYMONEY_API_",
        extra="ignore"
    )

    base_url: Optional[str] = Field(
        default=None,
        description="Explicit backend URL. Overrides the platform default."
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Backend port used for the platform default URL"
    )
    android_host: str = Field(
        default="10.0.2.2",
        description="Host that reaches the development machine from the Android emulator"
    )
    default_host: str = Field(
        default="localhost",
        description="Host used on web and iOS"
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Request timeout. Unset means the transport default."
    )
    sync_enabled: bool = Field(
        default=False,
        description="Mirror local ledger mutations to the backend"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the base URL so paths can be appended directly."""
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

    def url_for(self, platform: Platform) -> str:
        """Resolve the backend base URL for a platform."""
        if self.base_url:
            return self.base_url
        host = self.android_host if platform == Platform.ANDROID else self.default_host
        return f"http://{host}:{self.port}"


class BackgroundSettings(BaseSettings):
    """Periodic background export task configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MYMONEY_BACKGROUND_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Register the periodic export task on native platforms"
    )
    interval_hours: int = Field(
        default=24,
        ge=24,
        description="Minimum interval between background runs"
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
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local logs"
    )
    platform: Platform = Field(
        default=Platform.WEB,
        description="Platform the client runs on"
    )

    # Presentation / export
    currency_symbol: str = Field(
        default="R$",
        description="Currency symbol used in exported documents"
    )
    export_dir: str = Field(
        default="exports",
        description="Directory where exported reports are written"
    )

    # Validation thresholds
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a transaction date can be without a warning"
    )

    @property
    def is_web(self) -> bool:
        return self.platform == Platform.WEB


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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def background(self) -> BackgroundSettings:
        return BackgroundSettings()

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

    for name in ("storage", "api", "background", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
