"""
Configuration Management for budgetwatch

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what knobs exist and ensures all
configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class StorageSettings(BaseSettings):
    """Durable snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETWATCH_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(file|memory)$",
        description="Storage backend to use"
    )
    data_dir: Path = Field(
        default=Path(".budgetwatch"),
        description="Directory holding the snapshot files"
    )

    # Record keys, one per ledger
    expenses_key: str = Field(
        default="expenses.v1",
        min_length=1,
        description="Key of the expense ledger snapshot"
    )
    budgets_key: str = Field(
        default="budgets.v1",
        min_length=1,
        description="Key of the budget ledger snapshot (budgets + alerts)"
    )


class TrackingSettings(BaseSettings):
    """Budget period and violation detection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETWATCH_TRACKING_",
        extra="ignore"
    )

    week_starts_on: str = Field(
        default="sunday",
        description="First day of a weekly budget period"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used to resolve 'now' for period windows"
    )
    recheck_on_update: bool = Field(
        default=True,
        description="Re-run violation detection when an expense is edited"
    )

    @field_validator('week_starts_on')
    @classmethod
    def validate_week_start(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday: {v}. Allowed: {', '.join(WEEKDAY_NAMES)}")
        return v

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def week_start_index(self) -> int:
        """First day of week as a ``date.weekday()`` index (Monday = 0)."""
        return WEEKDAY_NAMES.index(self.week_starts_on)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class SyncSettings(BaseSettings):
    """Read cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETWATCH_SYNC_",
        extra="ignore"
    )

    strategy: str = Field(
        default="invalidate",
        pattern="^(invalidate|eager)$",
        description="How the cache reacts to ledger mutations"
    )
    refetch_latency_ms: int = Field(
        default=50,
        ge=0,
        le=5000,
        description="Simulated latency of a cache refetch"
    )
    stale_time_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="How long cached data stays fresh"
    )

    @property
    def refetch_latency(self) -> float:
        """Refetch latency in seconds."""
        return self.refetch_latency_ms / 1000


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
        description="Minimum level for structured logs"
    )

    # Form validation
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future an expense date can be without a warning"
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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def tracking(self) -> TrackingSettings:
        return TrackingSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

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

    Returns a dict of {setting_name: is_valid}, with a
    ``<name>_error`` entry for each failing group.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "tracking", "sync", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
