"""
Centralized logging configuration for ergosim.

This module provides standardized logging setup for all ergosim components.
"""

import logging
import logging.handlers
import re
from datetime import datetime
from pathlib import Path
from typing import Any

# Default log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - [%(filename)s:%(lineno)d] - %(levelname)s - %(message)s"
)

# Log levels mapping
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

PACKAGE_LOGGER = "ergosim"

# Global logger cache
_loggers: dict[str, logging.Logger] = {}


def _create_console_handler(
    log_level: int, formatter: logging.Formatter
) -> logging.StreamHandler:
    """
    Create and configure console handler.


    :param log_level: Logging level for the handler
    :type log_level: int
    :param formatter: Formatter for log messages
    :type formatter: logging.Formatter
    :return: Configured console handler
    :rtype: logging.StreamHandler
    """
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    return console_handler


def _create_file_handler(
    log_file: str,
    log_dir: str | None,
    log_level: int,
    formatter: logging.Formatter,
    file_mode: str,
    max_bytes: int,
    backup_count: int,
) -> logging.handlers.RotatingFileHandler:
    """
    Create and configure rotating file handler.


    :param log_file: Name of the log file
    :type log_file: str
    :param log_dir: Directory for log files, defaults to logs/ in the working directory
    :type log_dir: str | None
    :param log_level: Logging level for the handler
    :type log_level: int
    :param formatter: Formatter for log messages
    :type formatter: logging.Formatter
    :param file_mode: File open mode ('a' for append, 'w' for overwrite)
    :type file_mode: str
    :param max_bytes: Maximum size of log file before rotation
    :type max_bytes: int
    :param backup_count: Number of backup files to keep
    :type backup_count: int
    :return: Configured rotating file handler
    :rtype: logging.handlers.RotatingFileHandler
    """
    if log_dir is None:
        log_dir_path = Path.cwd() / "logs"
    else:
        log_dir_path = Path(log_dir)

    log_dir_path.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_dir_path / log_file,
        mode=file_mode,
        maxBytes=max_bytes,
        backupCount=backup_count,
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    return file_handler


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: str | None = None,
    log_dir: str | None = None,
    console: bool = True,
    file_mode: str = "a",
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Set up a standardized logger for ergosim modules.

    Creates a logger with optional file and console handlers. File handlers
    use rotation to prevent unbounded growth.

    :param name: Logger name (typically __name__ of the calling module)
    :param level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    :param log_file: Optional log file name (created in log_dir)
    :param log_dir: Directory for log files (defaults to logs/ in the working directory)
    :param console: Whether to output to console
    :param file_mode: File open mode ('a' for append, 'w' for overwrite)
    :param max_bytes: Maximum size of log file before rotation
    :param backup_count: Number of backup files to keep
    :param format_string: Custom format string (uses DEFAULT_FORMAT if None)
    :return: Configured logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)
    logger.setLevel(log_level)

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    if console:
        logger.addHandler(_create_console_handler(log_level, formatter))

    if log_file:
        logger.addHandler(
            _create_file_handler(
                log_file, log_dir, log_level, formatter, file_mode, max_bytes, backup_count
            )
        )

    _loggers[name] = logger

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get an existing logger or create a basic one.

    This is a convenience function for modules that need a logger but don't
    require special configuration.

    :param name: Logger name (typically __name__)
    :return: Logger instance
    """
    if name in _loggers:
        return _loggers[name]

    return setup_logger(name)


def set_log_level(level: str) -> None:
    """
    Change the level of every logger created through this module.

    :param level: Logging level as string
    :raises ValueError: If the level name is unknown
    """
    if level.upper() not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    log_level = LOG_LEVELS[level.upper()]
    for logger in _loggers.values():
        logger.setLevel(log_level)
        for handler in logger.handlers:
            handler.setLevel(log_level)


def configure_simulation_logging(
    sim_name: str,
    node_id: str,
    worker_index: int | None = None,
    log_level: str = "INFO",
    log_file: str | None = None,
    log_dir: str | None = None,
) -> "LoggerAdapter":
    """
    Configure logging specifically for simulation runs.

    Applies the level to all ergosim loggers and, when a log file is
    requested, attaches a rotating file handler to the package logger so
    every module's records end up in it. The returned adapter prefixes
    messages with the node identity.

    :param sim_name: Name of the simulation
    :param node_id: Identifier of the node running the simulation
    :param worker_index: Optional worker number for multi-worker nodes
    :param log_level: Logging level
    :param log_file: Optional log file name; ``{node_id}`` and ``{timestamp}`` are expanded
    :param log_dir: Directory for the log file, logs/ in the working directory if None
    :return: Adapter for the simulation logger
    """
    set_log_level(log_level)

    safe_name = re.sub(r"[^A-Za-z0-9_.-]+", "_", sim_name).strip("_") or "simulation"
    if log_file:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        setup_logger(
            name=PACKAGE_LOGGER,
            level=log_level,
            log_file=log_file.format(node_id=node_id, timestamp=timestamp),
            log_dir=log_dir,
            console=False,
            format_string=DETAILED_FORMAT,
        )

    if worker_index is not None:
        logger_name = f"{PACKAGE_LOGGER}.simulation.{safe_name}.worker{worker_index}"
    else:
        logger_name = f"{PACKAGE_LOGGER}.simulation.{safe_name}"

    logger = setup_logger(name=logger_name, level=log_level)
    return LoggerAdapter(logger, {"node_id": node_id})


class LoggerAdapter(logging.LoggerAdapter):
    """
    Custom logger adapter for adding contextual information.

    Used to tag every message of a driver with the node (and worker) it
    runs on.
    """

    def __init__(self, logger: logging.Logger, extra: dict[str, Any]):
        """
        Initialize adapter with extra context.

        :param logger: Base logger
        :param extra: Dictionary of extra context to add to all messages
        """
        super().__init__(logger, extra)

    def process(self, msg: Any, kwargs: Any) -> tuple[str, Any]:
        """
        Add extra context to log messages.


        :param msg: The log message
        :type msg: Any
        :param kwargs: Additional keyword arguments
        :type kwargs: Any
        :return: Processed message and kwargs
        :rtype: tuple[str, Any]
        """
        if self.extra:
            extra_str = " - ".join([f"{k}={v}" for k, v in self.extra.items()])
            return f"[{extra_str}] {msg}", kwargs
        else:
            return str(msg), kwargs
