"""Startup configuration (TOML + environment) for SysmonBot."""

from .manager import (
    ConfigManager,
    ConfigurationError,
    initialize_config,
)
from .registry import REGISTRY, ConfigKey

__all__ = [
    "REGISTRY",
    "ConfigKey",
    "ConfigManager",
    "ConfigurationError",
    "initialize_config",
]
