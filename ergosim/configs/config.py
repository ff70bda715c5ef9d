"""Centralized configuration management for ergosim runs."""

from __future__ import annotations

import configparser
import json
import os
from dataclasses import asdict, dataclass, fields
from typing import Any

import numpy as np
import yaml

from ergosim.configs.constants import (
    DEFAULT_DEBUG_FLUSH_INTERVAL_SECS,
    DEFAULT_FLUSH_INTERVAL_RANDOMIZATION,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_EXPORT_ATTEMPTS,
    DEFAULT_MAX_RETRY_BACKOFF_SECS,
    DEFAULT_PRODUCTION_FLUSH_INTERVAL_SECS,
    DEFAULT_RETRY_BACKOFF_SECS,
    INI_SECTION,
    SUPPORTED_CONFIG_EXTENSIONS,
)
from ergosim.configs.errors import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigTypeConversionError,
    ConfigValidationError,
    MissingRequiredOptionError,
)
from ergosim.core.driver import RetryPolicy
from ergosim.utils.logging_config import LOG_LEVELS, get_logger
from ergosim.utils.random import randomize_interval

logger = get_logger(__name__)

_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


@dataclass
class RunConfig:
    """Resolved options of one simulation run."""

    production: bool = False
    sink_address: str | None = None
    sink_namespace: str | None = None
    flush_interval_secs: float | None = None
    flush_interval_randomization: float = DEFAULT_FLUSH_INTERVAL_RANDOMIZATION
    max_export_attempts: int = DEFAULT_MAX_EXPORT_ATTEMPTS
    retry_backoff_secs: float = DEFAULT_RETRY_BACKOFF_SECS
    max_retry_backoff_secs: float = DEFAULT_MAX_RETRY_BACKOFF_SECS
    node_id: str | None = None
    num_workers: int = 1
    seed: int | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str | None = None
    log_dir: str | None = None

    @property
    def nominal_flush_interval(self) -> float:
        """Configured interval, or the mode's default."""
        if self.flush_interval_secs is not None:
            return self.flush_interval_secs
        if self.production:
            return DEFAULT_PRODUCTION_FLUSH_INTERVAL_SECS
        return DEFAULT_DEBUG_FLUSH_INTERVAL_SECS

    def resolve_flush_interval(self, rng: np.random.Generator | None = None) -> float:
        """
        Pick the flush interval used by one driver.

        Production intervals are randomized so that nodes started together do
        not hit the sink in lock-step. Debug intervals are used as given.

        :param rng: Generator for the randomization, a fresh one if None
        :type rng: np.random.Generator | None
        :return: Interval in seconds
        :rtype: float
        """
        interval = self.nominal_flush_interval
        if not self.production or self.flush_interval_randomization == 0.0:
            return interval
        return randomize_interval(
            interval,
            self.flush_interval_randomization,
            rng if rng is not None else np.random.default_rng(self.seed),
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_export_attempts,
            backoff_secs=self.retry_backoff_secs,
            max_backoff_secs=self.max_retry_backoff_secs,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Expected type of every option; str options accept any scalar
OPTION_TYPES: dict[str, type] = {
    "production": bool,
    "sink_address": str,
    "sink_namespace": str,
    "flush_interval_secs": float,
    "flush_interval_randomization": float,
    "max_export_attempts": int,
    "retry_backoff_secs": float,
    "max_retry_backoff_secs": float,
    "node_id": str,
    "num_workers": int,
    "seed": int,
    "log_level": str,
    "log_file": str,
    "log_dir": str,
}


def _convert_value(key: str, value: Any) -> Any:
    """Convert a raw option value to the type expected for ``key``."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none", "null"):
        return None

    expected = OPTION_TYPES[key]
    try:
        if expected is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        if expected is int:
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(f"not an integer: {value!r}")
            return int(value)
        if expected is float:
            if isinstance(value, bool):
                raise ValueError(f"not a number: {value!r}")
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigTypeConversionError(
            f"Option '{key}' expects {expected.__name__}, got {value!r}"
        ) from e


def validate_run_config(config: RunConfig) -> None:
    """
    Check cross-option constraints of a run configuration.

    :param config: Configuration to validate
    :type config: RunConfig
    :raises MissingRequiredOptionError: If production mode lacks sink options
    :raises ConfigValidationError: If a value is out of range
    """
    if config.production:
        if not config.sink_address:
            raise MissingRequiredOptionError("Option 'sink_address' is required in production mode")
        if not config.sink_namespace:
            raise MissingRequiredOptionError(
                "Option 'sink_namespace' is required together with 'sink_address'"
            )

    if config.flush_interval_secs is not None and config.flush_interval_secs <= 0:
        raise ConfigValidationError("Option 'flush_interval_secs' must be positive")
    if not 0.0 <= config.flush_interval_randomization < 1.0:
        raise ConfigValidationError(
            "Option 'flush_interval_randomization' should lie within [0, 1)"
        )
    if config.max_export_attempts < 1:
        raise ConfigValidationError("Option 'max_export_attempts' must be at least 1")
    if config.retry_backoff_secs < 0 or config.max_retry_backoff_secs < 0:
        raise ConfigValidationError("Retry backoff options must be non-negative")
    if config.num_workers < 1:
        raise ConfigValidationError("Option 'num_workers' must be at least 1")
    if config.seed is not None and config.seed < 0:
        raise ConfigValidationError("Option 'seed' must be non-negative")
    if config.log_level.upper() not in LOG_LEVELS:
        raise ConfigValidationError(
            f"Option 'log_level' must be one of {sorted(LOG_LEVELS)}, got {config.log_level!r}"
        )


def create_run_config(raw_config: dict[str, Any]) -> RunConfig:
    """
    Build a validated :class:`RunConfig` from raw option values.

    Unknown keys are ignored with a warning.

    :param raw_config: Flat ``option -> value`` dictionary
    :type raw_config: dict[str, Any]
    :return: Validated configuration
    :rtype: RunConfig
    """
    known = {field.name for field in fields(RunConfig)}
    values: dict[str, Any] = {}
    for key, value in raw_config.items():
        if key not in known:
            logger.warning("Ignoring unknown configuration option '%s'", key)
            continue
        converted = _convert_value(key, value)
        if converted is not None:
            values[key] = converted

    config = RunConfig(**values)
    validate_run_config(config)
    return config


class ConfigManager:
    """Load run options from a file and overlay command line arguments.

    Supported formats are INI (options in the ``[simulation]`` section),
    JSON and YAML (options at the top level or under a ``simulation`` key).
    """

    def __init__(self, config_path: str | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional path to a configuration file
        """
        self.config_path = config_path
        self._raw_config: dict[str, Any] = {}

        if config_path:
            self.load_config(config_path)

    def load_config(self, path: str) -> dict[str, Any]:
        """Load options from a configuration file.

        Args:
            path: Path to configuration file

        Returns:
            The raw options read from the file

        Raises:
            ConfigFileNotFoundError: If the file doesn't exist
            ConfigParseError: If the file cannot be parsed
        """
        if not os.path.exists(path):
            raise ConfigFileNotFoundError(f"Configuration file not found: {path}")
        if not path.endswith(SUPPORTED_CONFIG_EXTENSIONS):
            raise ConfigParseError(f"Unsupported configuration file format: {path}")

        try:
            if path.endswith(".ini"):
                raw = self._load_ini(path)
            elif path.endswith(".json"):
                raw = self._load_json(path)
            else:
                raw = self._load_yaml(path)
        except (configparser.Error, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigParseError(f"Could not parse configuration file {path}: {e}") from e

        self._raw_config.update(raw)
        self.config_path = path
        return raw

    def _load_ini(self, path: str) -> dict[str, Any]:
        """Load INI configuration file."""
        parser = configparser.ConfigParser()
        parser.read(path, encoding="utf-8")
        if not parser.has_section(INI_SECTION):
            raise ConfigParseError(f"Missing [{INI_SECTION}] section in {path}")
        return dict(parser[INI_SECTION].items())

    def _load_json(self, path: str) -> dict[str, Any]:
        """Load JSON configuration file."""
        with open(path, encoding="utf-8") as f:
            return self._unwrap(json.load(f), path)

    def _load_yaml(self, path: str) -> dict[str, Any]:
        """Load YAML configuration file."""
        with open(path, encoding="utf-8") as f:
            return self._unwrap(yaml.safe_load(f) or {}, path)

    @staticmethod
    def _unwrap(data: Any, path: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise ConfigParseError(f"Configuration file {path} must contain a mapping")
        section = data.get(INI_SECTION, data)
        if not isinstance(section, dict):
            raise ConfigParseError(f"'{INI_SECTION}' in {path} must be a mapping")
        return dict(section)

    def merge_cli_args(self, args: dict[str, Any]) -> None:
        """Overlay command line arguments.

        Arguments left at None (not given on the command line) do not
        override file values.

        Args:
            args: Dictionary of CLI arguments
        """
        for key, value in args.items():
            if key in OPTION_TYPES and value is not None:
                self._raw_config[key] = value

    def update_config(self, key: str, value: Any) -> None:
        """Set a single option."""
        self._raw_config[key] = value

    def get_raw_config(self) -> dict[str, Any]:
        return dict(self._raw_config)

    def build(self) -> RunConfig:
        """Convert and validate the collected options."""
        return create_run_config(self._raw_config)
