"""Multi-source resolution of transport configuration values.

Resolution order (highest to lowest priority):
1. Explicitly provided value
2. Environment variable
3. .env file (python-dotenv)
4. Default value

Example:
    ```python
    from storage_client_core.config import ConfigResolver

    resolver = ConfigResolver()
    host = resolver.resolve(env_var_name="STORAGE_EMULATOR_HOST", mask_in_logs=False)
    ```

Values are masked in log messages unless ``mask_in_logs=False`` is passed;
only the source (env var name, default, ...) is logged.
"""

import logging
import os
from threading import Lock

from dotenv import load_dotenv

from storage_client_core.config.exceptions import ConfigNotFoundError

logger = logging.getLogger(__name__)


class ConfigResolver:
    """Resolve configuration values from multiple sources with priority ordering.

    The .env file is loaded at most once per resolver, under a lock, and never
    overrides variables already present in the environment.

    Args:
        dotenv_path: Path to .env file. If None, python-dotenv searches parent
            directories.
        load_dotenv: Whether to load a .env file at all.
    """

    def __init__(self, dotenv_path: str | None = None, load_dotenv: bool = True):
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            # Double-check pattern for thread safety
            if self._dotenv_loaded:
                return

            try:
                load_dotenv(dotenv_path=self._dotenv_path)
                logger.debug("Loaded .env file for configuration resolution")
            except OSError as e:
                logger.warning(f"Failed to load .env file: {e}")
            self._dotenv_loaded = True

    def _mask(self, value: str | None) -> str:
        if value is None:
            return "None"
        return "***"

    def resolve(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = None,
        default: str | None = None,
        required: bool = False,
        mask_in_logs: bool = True,
    ) -> str | None:
        """Resolve a configuration value.

        Args:
            value: Explicitly provided value (highest priority).
            env_var_name: Environment variable to check. Variables from a
                loaded .env file are visible here too.
            default: Default value if not found elsewhere.
            required: If True, raise ConfigNotFoundError when nothing resolves.
            mask_in_logs: If True (default), mask the value in log messages.

        Returns:
            Resolved value, or None if not found and not required.

        Raises:
            ConfigNotFoundError: If required=True and no source has a value.
        """
        result = None
        source = None

        if value is not None:
            result = value
            source = "explicit parameter"
        elif env_var_name and os.environ.get(env_var_name):
            result = os.environ[env_var_name]
            source = f"environment variable '{env_var_name}'"
        elif default is not None:
            result = default
            source = "default value"

        if result is not None:
            shown = self._mask(result) if mask_in_logs else result
            logger.debug(f"Resolved configuration from {source}: {shown}")

        if required and result is None:
            error_msg = "Required configuration value not found"
            if env_var_name:
                error_msg += f" (checked env var: {env_var_name})"
            raise ConfigNotFoundError(error_msg, env_var_name=env_var_name)

        return result
