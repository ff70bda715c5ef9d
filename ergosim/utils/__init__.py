"""
Utility modules for ergosim.

This package provides common utilities used across the ergosim codebase.
Import directly from specific modules to avoid circular dependencies.

Example:
    from ergosim.utils.logging_config import get_logger
    from ergosim.utils.random import create_rng
"""

from ergosim.utils.logging_config import get_logger, setup_logger

__all__ = [
    "setup_logger",
    "get_logger",
]
