"""
Unit tests for configuration validation
"""

import pytest
from core.config import Settings
from core.exceptions import ConfigurationError


def make_settings(**overrides):
    values = dict(
        _env_file=None,
        DATABASE_URL="postgresql+asyncpg://u:p@localhost/db",
        KARBON_ACCESS_KEY="ak",
        KARBON_BEARER_TOKEN="tok",
    )
    values.update(overrides)
    return Settings(**values)


class TestSettings:

    def test_defaults(self):
        settings = make_settings()
        assert settings.KARBON_BASE_URL == "https://api.karbonhq.com/v3"
        assert settings.SYNC_BATCH_SIZE == 100
        assert settings.SYNC_MAX_PAGES == 500
        assert settings.SYNC_STALE_AFTER_HOURS == 24
        assert settings.SYNC_INCREMENTAL is False

    def test_complete_configuration_passes(self):
        make_settings().require_sync_configuration()

    def test_missing_values_are_all_listed(self):
        settings = make_settings(KARBON_ACCESS_KEY=None, KARBON_BEARER_TOKEN="  ")

        with pytest.raises(ConfigurationError) as exc_info:
            settings.require_sync_configuration()
        assert exc_info.value.context["missing"] == ["KARBON_ACCESS_KEY", "KARBON_BEARER_TOKEN"]

    def test_missing_database_url(self):
        with pytest.raises(ConfigurationError, match="DATABASE_URL"):
            make_settings(DATABASE_URL="").require_sync_configuration()

    def test_non_positive_bounds_rejected(self):
        with pytest.raises(ConfigurationError):
            make_settings(SYNC_MAX_PAGES=0).require_sync_configuration()

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("SYNC_BATCH_SIZE", "25")
        monkeypatch.setenv("SYNC_INCREMENTAL", "true")
        settings = make_settings()
        assert settings.SYNC_BATCH_SIZE == 25
        assert settings.SYNC_INCREMENTAL is True
