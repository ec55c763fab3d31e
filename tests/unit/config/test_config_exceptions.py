"""Tests for configuration exceptions."""

import pytest

from storage_client_core.config.exceptions import ConfigError, ConfigNotFoundError
from storage_client_core.errors import StorageError


class TestConfigError:
    """Test ConfigError base exception."""

    def test_is_storage_error(self):
        """Configuration failures can be caught with the library's base error."""
        with pytest.raises(StorageError):
            raise ConfigError("Test error")

    def test_exception_message(self):
        assert str(ConfigError("Custom error message")) == "Custom error message"


class TestConfigNotFoundError:
    """Test ConfigNotFoundError exception."""

    def test_is_config_error(self):
        with pytest.raises(ConfigError):
            raise ConfigNotFoundError("Test error")

    def test_env_var_name_attribute(self):
        err = ConfigNotFoundError("Test error", env_var_name="STORAGE_EMULATOR_HOST")

        assert err.env_var_name == "STORAGE_EMULATOR_HOST"
        assert str(err) == "Test error"

    def test_env_var_name_optional(self):
        assert ConfigNotFoundError("Test error").env_var_name is None
