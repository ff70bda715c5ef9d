"""Configuration constants for ergosim runs."""

# Section holding run options in INI files
INI_SECTION: str = "simulation"

# Default cadence in seconds
DEFAULT_PRODUCTION_FLUSH_INTERVAL_SECS: float = 300.0
DEFAULT_DEBUG_FLUSH_INTERVAL_SECS: float = 2.0
DEFAULT_FLUSH_INTERVAL_RANDOMIZATION: float = 0.5

# Export retry budget
DEFAULT_MAX_EXPORT_ATTEMPTS: int = 5
DEFAULT_RETRY_BACKOFF_SECS: float = 1.0
DEFAULT_MAX_RETRY_BACKOFF_SECS: float = 60.0

DEFAULT_LOG_LEVEL: str = "INFO"
SUPPORTED_CONFIG_EXTENSIONS: tuple[str, ...] = (".ini", ".json", ".yaml", ".yml")
