"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from finance_tracker.config import (
    AppSettings,
    SchedulerSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "STORAGE_BACKEND",
        "DEFAULT_ALERT_THRESHOLD",
        "RECURRING_ENABLED",
        "RECURRING_INTERVAL_HOURS",
        "RECURRING_RUN_ON_STARTUP",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSchedulerSettings:
    """Tests for the RECURRING_ settings."""

    def test_defaults(self):
        settings = SchedulerSettings()
        assert settings.enabled is True
        assert settings.run_on_startup is True
        assert settings.interval_seconds == 24 * 60 * 60

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("RECURRING_INTERVAL_HOURS", "6")
        monkeypatch.setenv("RECURRING_ENABLED", "false")

        settings = SchedulerSettings()

        assert settings.interval_seconds == 6 * 60 * 60
        assert settings.enabled is False

    def test_rejects_zero_interval(self, monkeypatch):
        monkeypatch.setenv("RECURRING_INTERVAL_HOURS", "0")
        with pytest.raises(ValidationError):
            SchedulerSettings()


class TestAppSettings:
    """Tests for the application settings."""

    def test_memory_is_default_backend(self):
        settings = AppSettings()
        assert settings.storage_backend == "memory"
        assert settings.uses_google_sheets is False
        assert settings.default_alert_threshold == 80

    def test_google_sheets_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")
        assert AppSettings().uses_google_sheets is True

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_threshold_bounds(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_ALERT_THRESHOLD", "150")
        with pytest.raises(ValidationError):
            AppSettings()


class TestValidateAllSettings:
    """Tests for the startup settings check."""

    def test_memory_backend_skips_google_sheets(self):
        results = validate_all_settings()
        assert results["app"] is True
        assert results["scheduler"] is True
        assert "google_sheets" not in results

    def test_invalid_scheduler_reported(self, monkeypatch):
        monkeypatch.setenv("RECURRING_INTERVAL_HOURS", "-1")
        results = validate_all_settings()
        assert results["scheduler"] is False
        assert "scheduler_error" in results
