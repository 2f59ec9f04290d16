"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here so the storage location, backup
directory and logging behaviour can be inspected in one place and are
validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Key-value settings store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_path: Path = Field(
        default=Path("data/ledger.json"),
        description="File holding the six persisted collection blobs"
    )
    key_prefix: str = Field(
        default="FinanceTracker",
        min_length=1,
        description="Prefix of the stable blob keys (e.g. FinanceTracker.Accounts)"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a durable write is attempted before failing"
    )


class BackupSettings(BaseSettings):
    """Backup export/import configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_BACKUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    directory: Path = Field(
        default=Path("data/backups"),
        description="Default directory for backup files"
    )
    file_prefix: str = Field(
        default="FinanceTracker_backup_",
        min_length=1,
        description="Filename prefix shared by JSON and CSV backups"
    )
    timestamp_format: str = Field(
        default="%Y%m%d_%H%M%S",
        description="strftime format embedded in backup filenames"
    )

    @field_validator('timestamp_format')
    @classmethod
    def validate_timestamp_format(cls, v: str) -> str:
        """The timestamp must not introduce path separators."""
        if "/" in v or "\\" in v:
            raise ValueError("timestamp_format must not contain path separators")
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render log lines as JSON (False renders for a console)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.strip().upper()
        if level not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return level


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
    def backup(self) -> BackupSettings:
        return BackupSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
