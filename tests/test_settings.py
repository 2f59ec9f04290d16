"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from household_ledger.config import (
    BackupSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    get_settings,
)


class TestSettings:
    """Defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_STORAGE_KEY_PREFIX", raising=False)
        monkeypatch.delenv("LEDGER_BACKUP_FILE_PREFIX", raising=False)
        assert StorageSettings().key_prefix == "FinanceTracker"
        assert BackupSettings().file_prefix == "FinanceTracker_backup_"
        assert BackupSettings().timestamp_format == "%Y%m%d_%H%M%S"

    def test_environment_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LEDGER_STORAGE_DATA_PATH", str(tmp_path / "x.json"))
        monkeypatch.setenv("LEDGER_STORAGE_WRITE_ATTEMPTS", "5")

        settings = StorageSettings()

        assert settings.data_path == Path(tmp_path / "x.json")
        assert settings.write_attempts == 5

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")
        assert LoggingSettings().level == "DEBUG"

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            LoggingSettings()

    def test_timestamp_format_cannot_contain_separators(self):
        with pytest.raises(ValidationError):
            BackupSettings(timestamp_format="%Y/%m/%d")

    def test_write_attempts_bounds(self):
        with pytest.raises(ValidationError):
            StorageSettings(write_attempts=0)

    def test_root_settings_groups(self):
        settings = Settings()
        assert isinstance(settings.storage, StorageSettings)
        assert isinstance(settings.backup, BackupSettings)
        assert isinstance(settings.logging, LoggingSettings)

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
