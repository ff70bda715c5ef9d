"""Command line interface helpers for ergosim simulation binaries."""

from .main_parser import build_argument_parser, parse_run_config

__all__ = ["build_argument_parser", "parse_run_config"]
