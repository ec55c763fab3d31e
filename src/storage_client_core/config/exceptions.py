"""Exceptions raised while resolving transport configuration.

Example:
    ```python
    from storage_client_core.config.exceptions import ConfigNotFoundError

    if not endpoint:
        raise ConfigNotFoundError("Endpoint not configured", env_var_name="STORAGE_EMULATOR_HOST")
    ```
"""

from storage_client_core.errors import StorageError


class ConfigError(StorageError):
    """Base exception for configuration errors.

    All configuration-specific exceptions inherit from this class,
    making it easy to catch any configuration-related error.
    """

    pass


class ConfigNotFoundError(ConfigError):
    """Raised when a required setting cannot be resolved from any source.

    Attributes:
        env_var_name: The environment variable name that was checked (if any).
    """

    def __init__(self, message: str, env_var_name: str | None = None):
        super().__init__(message)
        self.env_var_name = env_var_name
