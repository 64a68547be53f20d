# -*- coding: utf-8 -*-

"""
Unit tests for the configuration module.
Verifies loading settings from environment variables.
"""

import importlib
import os
from unittest.mock import patch

import pytest


def _reload_config():
    import routeguard.config as config_module
    return importlib.reload(config_module)


@pytest.fixture(autouse=True)
def restore_config():
    """Reload the real configuration after each test."""
    yield
    _reload_config()


class TestLogLevelConfig:
    """Tests for LOG_LEVEL configuration."""

    def test_default_log_level_is_info(self):
        """
        What it does: Verifies that LOG_LEVEL defaults to INFO.
        Purpose: Ensure that INFO is used when no environment variable is set.
        """
        print("Setup: Removing LOG_LEVEL from environment...")
        env = {k: v for k, v in os.environ.items() if k != "LOG_LEVEL"}

        with patch.dict(os.environ, env, clear=True):
            config_module = _reload_config()

            print(f"LOG_LEVEL: {config_module.LOG_LEVEL}")
            assert config_module.LOG_LEVEL == "INFO"

    def test_log_level_uppercase_conversion(self):
        """
        What it does: Verifies LOG_LEVEL conversion to uppercase.
        Purpose: Ensure that lowercase value is converted to uppercase.
        """
        print("Setup: Setting LOG_LEVEL=warning (lowercase)...")

        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}):
            config_module = _reload_config()

            print(f"Comparing: Expected 'WARNING', Got '{config_module.LOG_LEVEL}'")
            assert config_module.LOG_LEVEL == "WARNING"


class TestEnvironmentConfig:
    """Tests for APP_ENV and development detection."""

    def test_app_env_defaults_to_production(self):
        """
        What it does: Verifies APP_ENV falls back to production.
        Purpose: Ensure generic error messages are the default outside development.
        """
        env = {k: v for k, v in os.environ.items() if k not in ("APP_ENV", "ENVIRONMENT")}

        with patch.dict(os.environ, env, clear=True):
            config_module = _reload_config()

            print(f"APP_ENV: {config_module.APP_ENV}")
            assert config_module.APP_ENV == "production"
            assert config_module.is_development_environment() is False

    def test_environment_variable_used_as_fallback(self):
        """
        What it does: Verifies ENVIRONMENT is read when APP_ENV is absent.
        Purpose: Ensure platforms that export ENVIRONMENT are supported.
        """
        env = {k: v for k, v in os.environ.items() if k != "APP_ENV"}
        env["ENVIRONMENT"] = "Development"

        with patch.dict(os.environ, env, clear=True):
            config_module = _reload_config()

            print(f"APP_ENV: {config_module.APP_ENV}")
            assert config_module.APP_ENV == "development"
            assert config_module.is_development_environment() is True

    @pytest.mark.parametrize("name", ["development", "DEV", " local "])
    def test_development_like_names(self, name):
        """
        What it does: Verifies development-like names are recognized case-insensitively.
        Purpose: Ensure detailed errors are enabled for every local environment name.
        """
        from routeguard.config import is_development_environment

        print(f"Checking: {name!r}")
        assert is_development_environment(name) is True

    @pytest.mark.parametrize("name", ["production", "staging", "test"])
    def test_other_names_are_not_development(self, name):
        """
        What it does: Verifies non-development names are rejected.
        Purpose: Ensure staging and production hide validation details by default.
        """
        from routeguard.config import is_development_environment

        assert is_development_environment(name) is False


class TestValidationDefaultsConfig:
    """Tests for ROUTEGUARD_SKIP_VALIDATION / ROUTEGUARD_SHOW_ERROR_MESSAGE."""

    def test_unset_flags_are_none(self):
        """
        What it does: Verifies that unset flag variables resolve to None.
        Purpose: Ensure None means "fall through to the builtin default".
        """
        env = {
            k: v
            for k, v in os.environ.items()
            if k not in ("ROUTEGUARD_SKIP_VALIDATION", "ROUTEGUARD_SHOW_ERROR_MESSAGE")
        }

        with patch.dict(os.environ, env, clear=True):
            config_module = _reload_config()

            print(f"SKIP: {config_module.SKIP_VALIDATION_DEFAULT}")
            print(f"SHOW: {config_module.SHOW_ERROR_MESSAGE_DEFAULT}")
            assert config_module.SKIP_VALIDATION_DEFAULT is None
            assert config_module.SHOW_ERROR_MESSAGE_DEFAULT is None

    def test_truthy_and_falsy_values(self):
        """
        What it does: Verifies parsing of flag variables.
        Purpose: Ensure common spellings of true/false are accepted.
        """
        with patch.dict(
            os.environ,
            {"ROUTEGUARD_SKIP_VALIDATION": "Yes", "ROUTEGUARD_SHOW_ERROR_MESSAGE": "off"},
        ):
            config_module = _reload_config()

            assert config_module.SKIP_VALIDATION_DEFAULT is True
            assert config_module.SHOW_ERROR_MESSAGE_DEFAULT is False

    def test_unrecognized_value_is_ignored(self):
        """
        What it does: Verifies an unrecognized value is treated as unset.
        Purpose: Ensure a typo never silently disables validation.
        """
        with patch.dict(os.environ, {"ROUTEGUARD_SKIP_VALIDATION": "maybe"}):
            config_module = _reload_config()

            print(f"SKIP: {config_module.SKIP_VALIDATION_DEFAULT}")
            assert config_module.SKIP_VALIDATION_DEFAULT is None


class TestServerConfig:
    """Tests for server host/port and route table settings."""

    def test_server_port_from_environment(self):
        """
        What it does: Verifies SERVER_PORT is read as an integer.
        Purpose: Ensure the environment can change the listen port.
        """
        with patch.dict(os.environ, {"SERVER_PORT": "9100"}):
            config_module = _reload_config()

            print(f"SERVER_PORT: {config_module.SERVER_PORT}")
            assert config_module.SERVER_PORT == 9100
            assert config_module.DEFAULT_SERVER_PORT == 8000

    def test_routes_file_expands_home(self):
        """
        What it does: Verifies ~ in ROUTEGUARD_ROUTES_FILE is expanded.
        Purpose: Ensure home-relative route tables can be configured.
        """
        with patch.dict(os.environ, {"ROUTEGUARD_ROUTES_FILE": "~/routes.json"}):
            config_module = _reload_config()

            print(f"ROUTES_FILE: {config_module.ROUTES_FILE}")
            assert not config_module.ROUTES_FILE.startswith("~")
            assert config_module.ROUTES_FILE.endswith("routes.json")

    def test_wire_constants(self):
        """
        What it does: Verifies the fixed wire contract constants.
        Purpose: Ensure clients always see 400/500 and the documented generic messages.
        """
        from routeguard import config

        assert config.INPUT_VALIDATION_ERROR_STATUS == 400
        assert config.OUTPUT_VALIDATION_ERROR_STATUS == 500
        assert config.GENERIC_INPUT_ERROR_MESSAGE == "Invalid request data"
        assert config.GENERIC_OUTPUT_ERROR_MESSAGE == "Internal server error"
