"""Configuration Registry - Defines all configuration keys SysmonBot reads.

This module provides the ConfigKey dataclass and REGISTRY dictionary that defines
every configuration option available in SysmonBot.

All keys are loaded once at startup and stay fixed for the process lifetime.
Keys marked ``required`` have no usable default: startup aborts when they are
missing from both the TOML file and the environment.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class ConfigKey:
    """Defines a single configuration key with validation rules.

    Attributes:
        value_type: Expected Python type (str, int, float, bool, list)
        default: Default value if not specified in config files (None if required)
        required: Startup fails when the key has no value
        secret: Value is redacted from every log event
        env_aliases: Extra environment variable names checked after the
            SYSMONBOT_ prefixed name
        min_value: Minimum value for numeric types (optional)
        max_value: Maximum value for numeric types (optional)
        validator: Custom validation function (optional)
    """
    value_type: type
    default: Any = None
    required: bool = False
    secret: bool = False
    env_aliases: tuple[str, ...] = field(default_factory=tuple)
    min_value: Optional[Any] = None
    max_value: Optional[Any] = None
    validator: Optional[Callable[[Any], bool]] = None


# Configuration Registry
# =======================
# All configuration keys must be registered here.

REGISTRY: dict[str, ConfigKey] = {
    # ===== TELEGRAM (gateway credentials and target channel) =====
    "telegram.bot_token": ConfigKey(
        value_type=str,
        required=True,
        secret=True,
        env_aliases=("RASPI_MONITOR_BOT_TOKEN",),
        validator=lambda v: bool(v.strip()),
    ),
    "telegram.channel_id": ConfigKey(
        value_type=int,
        required=True,
        env_aliases=("MONITOR_CHANNEL_ID",),
    ),

    # ===== HISTORY LOG (durable snapshot store) =====
    "history.path": ConfigKey(
        value_type=str,
        required=True,
        validator=lambda v: bool(v.strip()),
    ),

    # ===== LOGGING =====
    "logging.directory": ConfigKey(
        value_type=str,
        required=True,
        validator=lambda v: bool(v.strip()),
    ),
    "logging.file_prefix": ConfigKey(
        value_type=str,
        required=True,
        validator=lambda v: bool(v.strip()) and "/" not in v,
    ),
    "logging.level": ConfigKey(
        value_type=str,
        default="INFO",
        validator=lambda v: v in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
    ),

    # ===== SCHEDULER (loop periods) =====
    "scheduler.metrics_interval_seconds": ConfigKey(
        value_type=int,
        default=120,
        min_value=1,
        max_value=86400,
    ),
    "scheduler.liveness_interval_seconds": ConfigKey(
        value_type=int,
        default=60,
        min_value=1,
        max_value=86400,
    ),

    # ===== METRICS =====
    "metrics.cpu_sample_seconds": ConfigKey(
        value_type=float,
        default=1.0,
        min_value=0.1,
        max_value=10.0,
    ),
}


def get_config_key(key: str) -> ConfigKey:
    """Get configuration key definition from registry.

    Args:
        key: Configuration key path (e.g., "telegram.channel_id")

    Returns:
        ConfigKey definition

    Raises:
        KeyError: If key not found in registry
    """
    if key not in REGISTRY:
        raise KeyError(f"Configuration key '{key}' not found in registry")
    return REGISTRY[key]


def validate_config_value(key: str, value: Any) -> tuple[bool, Optional[str]]:
    """Validate a configuration value against its registered definition.

    Args:
        key: Configuration key path
        value: Value to validate

    Returns:
        Tuple of (is_valid, error_message)
        error_message is None if valid
    """
    try:
        config_key = get_config_key(key)
    except KeyError as e:
        return False, str(e)

    if value is None:
        if config_key.required:
            return False, "Required value is missing"
        return True, None

    # ints are accepted where floats are expected (TOML "1" vs "1.0")
    expected = config_key.value_type
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)

    # Type validation (bool is an int subclass, reject it for numeric keys)
    if not isinstance(value, expected) or (isinstance(value, bool) and expected is not bool):
        return False, f"Expected type {expected.__name__}, got {type(value).__name__}"

    # Range validation for numeric types
    if isinstance(value, (int, float)):
        if config_key.min_value is not None and value < config_key.min_value:
            return False, f"Value {value} below minimum {config_key.min_value}"
        if config_key.max_value is not None and value > config_key.max_value:
            return False, f"Value {value} above maximum {config_key.max_value}"

    # Custom validator
    if config_key.validator is not None:
        try:
            if not config_key.validator(value):
                return False, f"Custom validation failed for value: {value}"
        except Exception as e:
            return False, f"Validator error: {str(e)}"

    return True, None


def get_default_values() -> dict[str, Any]:
    """Get default values for all configuration keys.

    Returns:
        Dictionary of key -> default_value
    """
    return {key: config_key.default for key, config_key in REGISTRY.items()}


def get_secret_keys() -> set[str]:
    """Get the set of configuration keys whose values must never be logged."""
    return {key for key, config_key in REGISTRY.items() if config_key.secret}
