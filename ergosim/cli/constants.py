"""CLI-specific constants for ergosim command-line interfaces.

Provides shared constants used by simulation entry points including exit
codes and argument help texts.
"""

# Standard CLI exit codes following Unix conventions
SUCCESS_EXIT_CODE: int = 0
"""Exit code indicating successful program completion."""

ERROR_EXIT_CODE: int = 1
"""Exit code indicating program failure or error condition."""

INTERRUPT_EXIT_CODE: int = 130
"""Exit code indicating program interruption by user (Ctrl+C)."""

PARSER_DESCRIPTION: str = (
    "A distributed statistical simulation. Runs until stopped; in production "
    "mode it periodically exports accumulated statistics to a data sink."
)

DEFAULT_MAX_TRACEBACK_LINES: int = 3
"""Traceback lines shown for failures in user sample code."""
