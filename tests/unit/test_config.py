"""Tests for configuration."""

import pytest

from src.core.config import Constants, Settings


@pytest.mark.unit
def test_defaults() -> None:
    """Test the documented defaults."""
    settings = Settings(_env_file=None)

    assert settings.sqlite_db_path == "./data/racitrack.db"
    assert settings.lock_terminal_statuses is False
    assert settings.enable_recurring_generation is True
    assert settings.recurring_generation_interval_minutes == 15
    assert settings.transaction_timeout_seconds == 10.0
    assert settings.due_soon_window_hours == 24
    assert settings.session_max_age_seconds == 86400


@pytest.mark.unit
def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test settings are read from environment variables."""
    monkeypatch.setenv("LOCK_TERMINAL_STATUSES", "true")
    monkeypatch.setenv("DUE_SOON_WINDOW_HOURS", "48")

    settings = Settings(_env_file=None)

    assert settings.lock_terminal_statuses is True
    assert settings.due_soon_window_hours == 48


@pytest.mark.unit
def test_is_production() -> None:
    """Test is_production reflects the environment name."""
    assert Settings(_env_file=None, environment="Production").is_production is True
    assert Settings(_env_file=None, environment="development").is_production is False


@pytest.mark.unit
def test_constants() -> None:
    """Test constants used by the task module."""
    assert Constants.MIN_TITLE_LENGTH == 3
    assert Constants.RECURRING_INSTANCES_JOB == "recurring_instances"
