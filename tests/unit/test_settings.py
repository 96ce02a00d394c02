"""
Unit tests for environment-driven settings.
"""

from pathlib import Path

import pytest

from etlflow.config import Settings

SETTINGS_ENV = [
    "ETL_CONFIG_DIR",
    "ETL_HISTORY_LIMIT",
    "ETL_RUN_HISTORY_LIMIT",
    "ETL_NOTIFY_COMPLETION_URL",
    "ETL_NOTIFY_FAILURE_URL",
    "ETL_NOTIFY_TIMEOUT",
    "ETL_SCHEDULER_TIMEZONE",
    "ETL_HTTP_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "METRICS_PORT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove settings variables; values loaded from .env files are undone on teardown"""
    for name in SETTINGS_ENV:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture
def env_file(tmp_path):
    def _write(content: str) -> Path:
        path = tmp_path / ".env"
        path.write_text(content, encoding="utf-8")
        return path
    return _write


class TestSettings:
    def test_defaults(self, clean_env, env_file):
        settings = Settings.from_env(env_file(""))

        assert settings == Settings()
        assert settings.config_dir == Path("./etl-configs")
        assert settings.history_limit == 100
        assert settings.notify_completion_url is None
        assert settings.metrics_port is None

    def test_values_from_env_file(self, clean_env, env_file):
        path = env_file(
            "ETL_CONFIG_DIR=/srv/etl/configs\n"
            "ETL_HISTORY_LIMIT=25\n"
            "ETL_NOTIFY_FAILURE_URL=https://hooks.example.com/failed\n"
            "ETL_NOTIFY_TIMEOUT=2.5\n"
            "ETL_SCHEDULER_TIMEZONE=Europe/Berlin\n"
            "METRICS_PORT=9100\n"
        )

        settings = Settings.from_env(path)

        assert settings.config_dir == Path("/srv/etl/configs")
        assert settings.history_limit == 25
        assert settings.notify_failure_url == "https://hooks.example.com/failed"
        assert settings.notify_completion_url is None
        assert settings.notify_timeout == 2.5
        assert settings.scheduler_timezone == "Europe/Berlin"
        assert settings.metrics_port == 9100

    def test_environment_wins_over_env_file(self, clean_env, env_file):
        clean_env.setenv("ETL_HISTORY_LIMIT", "7")
        settings = Settings.from_env(env_file("ETL_HISTORY_LIMIT=25\n"))

        assert settings.history_limit == 7

    def test_invalid_number(self, clean_env, env_file):
        clean_env.setenv("ETL_HISTORY_LIMIT", "many")
        with pytest.raises(ValueError, match="ETL_HISTORY_LIMIT must be an integer"):
            Settings.from_env(env_file(""))

    def test_is_immutable(self):
        settings = Settings()
        with pytest.raises(AttributeError):
            settings.history_limit = 5
