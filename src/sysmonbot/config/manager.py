"""Configuration Manager - startup configuration for SysmonBot.

Loads every registered key once at process start:
1. Code defaults from the registry
2. Values from the TOML config file (nested tables flattened to dotted keys)
3. Environment overrides (``.env`` is loaded first via python-dotenv)

The loaded configuration is immutable for the process lifetime. Any missing
required key or invalid value raises ConfigurationError, which the entry point
treats as fatal before the bot connects.
"""

import os
import tomllib
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import structlog
from dotenv import load_dotenv

from .registry import (
    REGISTRY,
    get_config_key,
    get_default_values,
    get_secret_keys,
    validate_config_value,
)

logger = structlog.get_logger(__name__)

ENV_PREFIX = "SYSMONBOT_"


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, problems: dict[str, str]):
        self.problems = problems
        details = "; ".join(f"{key}: {reason}" for key, reason in problems.items())
        super().__init__(f"Invalid configuration ({details})")


def _redact_sensitive_value(key: str, value: Any) -> Any:
    """Redact secret configuration values for logging.

    Args:
        key: Configuration key
        value: Configuration value

    Returns:
        Original value if not sensitive, otherwise "[REDACTED]"
    """
    if key in get_secret_keys() and value is not None:
        return "[REDACTED]"
    return value


def env_var_name(key: str) -> str:
    """Return the prefixed environment variable for a dotted key.

    Example: ``telegram.channel_id`` -> ``SYSMONBOT_TELEGRAM_CHANNEL_ID``
    """
    return ENV_PREFIX + key.replace(".", "_").upper()


class ConfigManager:
    """Loads and holds the process configuration.

    Attributes:
        config_file: TOML file read at startup
        env_file: dotenv file loaded into the environment before overrides
        config: Read-only mapping of dotted key -> value (empty until loaded)
    """

    def __init__(self, config_file: Optional[Path] = None, env_file: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file (default: config/default.toml)
            env_file: Path to .env file (default: .env in working directory)
        """
        if config_file is None:
            config_file = Path("config/default.toml")
        if env_file is None:
            env_file = Path(".env")

        self.config_file = Path(config_file)
        self.env_file = Path(env_file)
        self.config: Mapping[str, Any] = MappingProxyType({})

        logger.debug("config_manager_initialized",
                     config_file=str(self.config_file),
                     env_file=str(self.env_file))

    def load(self) -> Mapping[str, Any]:
        """Load configuration from defaults, TOML and environment.

        Precedence: code defaults < TOML file < environment variables

        Returns:
            Read-only mapping of configuration key-value pairs

        Raises:
            ConfigurationError: If any key is missing, unparsable or invalid
        """
        logger.info("loading_config", config_file=str(self.config_file))

        if self.env_file.exists():
            load_dotenv(self.env_file)
            logger.info("env_file_loaded", env_file=str(self.env_file))

        problems: dict[str, str] = {}

        # Step 1: Code defaults
        config = get_default_values()

        # Step 2: TOML file
        if self.config_file.exists():
            try:
                with open(self.config_file, "rb") as f:
                    toml_data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigurationError({str(self.config_file): f"cannot read config file: {e}"}) from e

            flattened = self._flatten_toml(toml_data)
            for key in REGISTRY:
                if key in flattened:
                    config[key] = flattened[key]

            unknown = sorted(set(flattened) - set(REGISTRY))
            if unknown:
                logger.warning("unknown_config_keys_ignored", keys=unknown)

            logger.info("toml_config_loaded", keys_count=len(flattened))
        else:
            logger.warning("config_file_not_found",
                           config_file=str(self.config_file),
                           using_defaults=True)

        # Step 3: Environment overrides
        for key in REGISTRY:
            env_key, env_value = self._lookup_env(key)
            if env_value is None:
                continue
            config_key_def = get_config_key(key)
            try:
                config[key] = self._parse_env_value(env_value, config_key_def.value_type)
                logger.info("env_override_applied", key=key, env_key=env_key)
            except ValueError as e:
                logger.error("env_parse_error", key=key, env_key=env_key, error=str(e))
                problems[key] = f"cannot parse {env_key}: {e}"

        # Step 4: Validate
        for key, value in config.items():
            if key in problems:
                continue
            value = self._coerce(key, value)
            config[key] = value
            is_valid, error_msg = validate_config_value(key, value)
            if not is_valid:
                if key in get_secret_keys() and value is not None:
                    error_msg = "invalid value (redacted)"
                problems[key] = error_msg or "invalid value"

        if problems:
            logger.error("config_validation_failed", problems=problems)
            raise ConfigurationError(problems)

        self.config = MappingProxyType(config)
        logger.info("config_loaded",
                    keys_count=len(config),
                    values={k: _redact_sensitive_value(k, v) for k, v in config.items()})
        return self.config

    def get(self, key: str) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key path

        Returns:
            Configuration value

        Raises:
            KeyError: If key not found in the registry
        """
        config_key_def = get_config_key(key)
        return self.config.get(key, config_key_def.default)

    def _lookup_env(self, key: str) -> tuple[str, Optional[str]]:
        """Return the first environment variable set for ``key`` and its value."""
        candidates = (env_var_name(key),) + get_config_key(key).env_aliases
        for env_key in candidates:
            env_value = os.getenv(env_key)
            if env_value is not None:
                return env_key, env_value
        return candidates[0], None

    def _coerce(self, key: str, value: Any) -> Any:
        if get_config_key(key).value_type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value

    def _flatten_toml(self, data: dict) -> dict[str, Any]:
        """Flatten nested TOML structure to dotted keys.

        Example: {"history": {"path": "x.json"}} -> {"history.path": "x.json"}

        Args:
            data: Nested dictionary from TOML file

        Returns:
            Flattened dictionary with dotted keys
        """
        result = {}

        def _flatten(d: dict, prefix: str = ""):
            for key, value in d.items():
                full_key = f"{prefix}.{key}" if prefix else key
                if isinstance(value, dict):
                    _flatten(value, full_key)
                else:
                    result[full_key] = value

        _flatten(data)
        return result

    def _parse_env_value(self, value: str, target_type: type) -> Any:
        """Parse environment variable string to target type.

        Args:
            value: String value from environment variable
            target_type: Target Python type

        Returns:
            Parsed value in target type

        Raises:
            ValueError: If parsing fails
        """
        if target_type == int:
            return int(value.strip())
        elif target_type == float:
            return float(value.strip())
        elif target_type == str:
            return value
        else:
            raise ValueError(f"Unsupported type for env parsing: {target_type}")


def initialize_config(config_file: Optional[Path] = None,
                      env_file: Optional[Path] = None) -> ConfigManager:
    """Create and load the configuration manager.

    Args:
        config_file: Path to TOML config file
        env_file: Path to .env file

    Returns:
        Loaded ConfigManager instance

    Raises:
        ConfigurationError: If the configuration is incomplete or invalid
    """
    manager = ConfigManager(config_file, env_file)
    manager.load()
    return manager
