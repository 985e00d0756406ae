"""
Configuration Management for houseshare

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The only external dependency is the hosted Supabase project, so the
backend credentials and a handful of app defaults are all there is.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Hosted backend (Supabase) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL (https://<ref>.supabase.co)"
    )
    key: str = Field(
        ...,
        description="Supabase anon key"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """The client library needs an absolute http(s) URL."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Supabase URL must start with http:// or https://, got {v!r}")
        return v

    @field_validator('key')
    @classmethod
    def validate_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Supabase key must not be empty")
        return v.strip()


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
        description="Minimum level for local structured logs"
    )

    # House defaults
    default_timezone: str = Field(
        default="America/Los_Angeles",
        description="Timezone preselected when creating a house"
    )
    supported_timezones: str = Field(
        default="America/Los_Angeles,America/Denver,America/Chicago,America/New_York",
        description="Comma-separated list of timezones offered in forms"
    )

    # Form defaults
    invite_expiry_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How long a roommate invite stays valid"
    )
    default_due_in_days: int = Field(
        default=7,
        ge=0,
        le=365,
        description="Default due date offset for new charges"
    )
    min_password_length: int = Field(
        default=6,
        ge=6,
        description="Minimum password length accepted at sign-up"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return v.upper()

    @property
    def timezones_list(self) -> list[str]:
        """Get supported timezones as a list."""
        return [tz.strip() for tz in self.supported_timezones.split(",") if tz.strip()]


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

    # Sub-settings are loaded lazily so the app can start in offline
    # mode without Supabase credentials.

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

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


def validate_all_settings() -> dict[str, Optional[object]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    """
    results: dict[str, Optional[object]] = {}

    settings = get_settings()

    try:
        _ = settings.supabase
        results["supabase"] = True
    except Exception as e:
        results["supabase"] = False
        results["supabase_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
