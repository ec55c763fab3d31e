"""Configuration resolution for storage transports.

Example:
    ```python
    from storage_client_core.config import ConfigResolver

    resolver = ConfigResolver()
    endpoint = resolver.resolve(env_var_name="STORAGE_EMULATOR_HOST", default=DEFAULT_ENDPOINT)
    ```
"""

from storage_client_core.config.exceptions import ConfigError, ConfigNotFoundError
from storage_client_core.config.resolver import ConfigResolver

__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigResolver",
]
