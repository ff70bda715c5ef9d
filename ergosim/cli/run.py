"""CLI entry point for ergosim simulation binaries.

A simulation binary registers its measures, then hands control to
:func:`main`, which parses the command line, runs until stopped and maps
failures to exit codes with actionable feedback.
"""

import sys
import traceback
from collections.abc import Callable, Sequence

from ergosim.cli.constants import (
    DEFAULT_MAX_TRACEBACK_LINES,
    ERROR_EXIT_CODE,
    INTERRUPT_EXIT_CODE,
    SUCCESS_EXIT_CODE,
)
from ergosim.configs.errors import ConfigError
from ergosim.core.errors import InvalidMeasurementError, RegistryError, SampleError
from ergosim.core.registry import MeasureRegistry
from ergosim.core.sample import MeasurementFn, Sample
from ergosim.sim.run_simulation import run_simulation


def main(
    name: str,
    registry: MeasureRegistry,
    measurement: MeasurementFn,
    sample_source: type[Sample] | Callable[[], Sample],
    argv: Sequence[str] | None = None,
) -> int:
    """
    Run a simulation from the command line and return the exit code.

    :param name: Simulation name, also used as the program name in --help
    :type name: str
    :param registry: Registry with every measure registered
    :type registry: MeasureRegistry
    :param measurement: Closure ``(sample, accumulators) -> None``
    :type measurement: MeasurementFn
    :param sample_source: Sample subclass or zero-argument factory
    :type sample_source: type[Sample] | Callable[[], Sample]
    :param argv: Arguments to parse, sys.argv[1:] if None
    :type argv: Sequence[str] | None
    :return: Exit code (0 after a clean stop, 1 on error, 130 on interrupt)
    :rtype: int
    :raises SystemExit: On argument parsing errors (handled by argparse)
    """
    try:
        run_simulation(name, registry, measurement, sample_source, argv=argv)
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user")
        return INTERRUPT_EXIT_CODE
    except ConfigError as e:
        print(f"Configuration error: {e}")
        print("Check your configuration file and command line arguments")
        return ERROR_EXIT_CODE
    except RegistryError as e:
        print(f"Measure registry error: {e}")
        return ERROR_EXIT_CODE
    except (SampleError, InvalidMeasurementError) as e:
        print(f"Simulation failed: {e}")
        _display_detailed_error_info(e)
        return ERROR_EXIT_CODE
    except OSError as e:
        print(f"File system error: {e}")
        print("Check the sink address, file permissions and available disk space")
        return ERROR_EXIT_CODE

    return SUCCESS_EXIT_CODE


def _display_detailed_error_info(exception: Exception) -> None:
    """
    Display the exception chain and the last calls of the failing user code.

    :param exception: The exception to analyze and display
    :type exception: Exception
    """
    if exception.__cause__ is not None:
        print(f"  Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}")
        failing = exception.__cause__
    else:
        failing = exception

    print(f"  Exception type: {type(exception).__name__}")
    print("  Last few calls:")
    for line in traceback.format_tb(failing.__traceback__)[-DEFAULT_MAX_TRACEBACK_LINES:]:
        print(f"    {line.strip()}")


def run_main(
    name: str,
    registry: MeasureRegistry,
    measurement: MeasurementFn,
    sample_source: type[Sample] | Callable[[], Sample],
) -> None:
    """
    Run :func:`main` and exit the process with its code.

    :raises SystemExit: Always exits with code from main() function
    """
    sys.exit(main(name, registry, measurement, sample_source))
