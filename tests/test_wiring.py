from datetime import datetime
from types import SimpleNamespace

import pytest

from config import get_settings_module, load_settings
from src.teller_rotation.teller_rotation.container import build_container
from src.teller_rotation.teller_rotation.notifications.notifier import LoggingNotifier
from tests.fakes import RecordingNotifier

DB_CONFIG = {"host": "localhost", "port": 3306, "user": "root", "password": "", "database": "teller_rotation_test"}


@pytest.mark.parametrize(
    "env, expected",
    [
        ("production", "config.production"),
        ("PROD", "config.production"),
        ("testing", "config.testing"),
        ("staging", "config.development"),
    ],
)
def test_settings_module_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)

    assert get_settings_module() == expected


def test_settings_module_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)

    assert get_settings_module() == "config.development"


def test_load_settings_imports_the_selected_module(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")

    settings = load_settings()

    assert settings.__name__ == "config.testing"
    assert settings.TESTING is True
    assert "isolation_level" in settings.DB_CONFIG


def test_container_applies_settings_without_touching_the_database():
    settings = SimpleNamespace(TIMEZONE="UTC", DEFAULT_HEADCOUNT=2)
    notifier = RecordingNotifier()

    container = build_container(
        db_config=DB_CONFIG,
        settings=settings,
        notifier=notifier,
        now=lambda: datetime(2025, 6, 1, 23, 30),
    )

    assert container.calendar.today() == "2025-06-01"
    assert container.rotation_service.calendar is container.calendar
    assert container.notifier is notifier


def test_container_defaults_to_logging_notifier():
    container = build_container(db_config=DB_CONFIG)

    assert isinstance(container.notifier, LoggingNotifier)
    assert str(container.calendar.timezone) == "Asia/Manila"
