"""
Configuration management for ergosim runs.

Main components:
- RunConfig: Resolved, validated run options
- ConfigManager: Loading options from INI/JSON/YAML files and CLI overlays
- Error classes: Specific configuration exceptions
"""

from .config import ConfigManager, RunConfig, create_run_config, validate_run_config
from .errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigTypeConversionError,
    ConfigValidationError,
    MissingRequiredOptionError,
)

__all__ = [
    # Core classes
    "ConfigManager",
    "RunConfig",
    "create_run_config",
    "validate_run_config",
    # Error classes
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigTypeConversionError",
    "ConfigValidationError",
    "MissingRequiredOptionError",
]
