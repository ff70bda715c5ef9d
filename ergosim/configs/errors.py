"""Configuration-related exception classes for ergosim."""


class ConfigError(Exception):
    """Base exception for configuration errors.

    All configuration-related exceptions inherit from this class,
    allowing for broad exception handling when needed.
    """


class ConfigFileNotFoundError(ConfigError):
    """Raised when config file cannot be found.

    This exception is raised when attempting to load a configuration
    file that doesn't exist at the specified path.
    """


class ConfigParseError(ConfigError):
    """Raised when config file cannot be parsed.

    This exception is raised when a configuration file exists but
    contains invalid syntax or cannot be parsed in the expected format
    (INI, JSON, YAML).
    """


class MissingRequiredOptionError(ConfigError):
    """Raised when a required option is missing from config.

    For example, production mode without a sink address.
    """


class ConfigTypeConversionError(ConfigError):
    """Raised when a config value cannot be converted to expected type.

    This exception is raised when a configuration value cannot be
    converted to its expected type (e.g., string to int conversion fails).
    """


class ConfigValidationError(ConfigError):
    """Raised when a config value has the right type but an invalid value.

    For example, a flush interval randomization outside ``[0, 1)``.
    """
