"""Tests for environment settings and logging setup."""

import logging

import pytest

from trip_routes.config import DEFAULT_LANDMARK_CLASSES, configure_logging, load_settings


@pytest.fixture
def package_logger():
    logger = logging.getLogger("trip_routes")
    level = logger.level
    yield logger
    logger.setLevel(level)


class TestLoadSettings:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENROUTE_API_KEY", "abc")
        monkeypatch.setenv("GEOCODING_MAX_RETRIES", "3")
        monkeypatch.setenv("LANDMARK_CLASSES", "tourism, historic,")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = load_settings()
        assert settings.openroute_api_key == "abc"
        assert settings.geocoding_max_retries == 3
        assert settings.landmark_classes == ("tourism", "historic")
        assert settings.log_level == "debug"

    def test_defaults(self, monkeypatch):
        for name in ("GEOCODING_REQUEST_DELAY", "LANDMARK_CLASSES", "OPENROUTE_REQUEST_DELAY"):
            monkeypatch.delenv(name, raising=False)
        settings = load_settings()
        assert settings.geocoding_request_delay == 1.0
        assert settings.openroute_request_delay == 0.1
        assert settings.landmark_classes == DEFAULT_LANDMARK_CLASSES


class TestConfigureLogging:
    def test_sets_package_level(self, package_logger):
        configure_logging("debug")
        assert package_logger.level == logging.DEBUG
        assert logging.getLogger("trip_routes.geocoding").getEffectiveLevel() == logging.DEBUG

