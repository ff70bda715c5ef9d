"""Command line parsing for ergosim simulation binaries."""

from argparse import ArgumentParser
from collections.abc import Sequence

from ergosim.cli.constants import PARSER_DESCRIPTION
from ergosim.configs.config import ConfigManager, RunConfig
from ergosim.utils.logging_config import LOG_LEVELS


def build_argument_parser(prog: str | None = None) -> ArgumentParser:
    """
    Build the argument parser shared by all simulation binaries.

    Every option defaults to None so that only arguments actually given on
    the command line override values from a ``--config`` file.

    :param prog: Program name shown in the usage line
    :type prog: str | None
    :return: Configured argument parser
    :rtype: ArgumentParser
    """
    parser = ArgumentParser(prog=prog, description=PARSER_DESCRIPTION)
    parser.add_argument(
        "--config",
        dest="config_path",
        help="Path to an INI, JSON or YAML file with run options",
    )

    mode = parser.add_argument_group("mode")
    mode.add_argument(
        "--production",
        action="store_true",
        default=None,
        help="Export to the data sink and reset instead of printing reports",
    )
    mode.add_argument(
        "--num_workers",
        type=int,
        help="Independent worker processes on this node (default 1)",
    )
    mode.add_argument("--node_id", help="Node identifier written into snapshots")
    mode.add_argument("--seed", type=int, help="Seed for the random number generators")

    sink = parser.add_argument_group("data sink")
    sink.add_argument(
        "--sink_address",
        help="Sink location, e.g. a results directory or memory://",
    )
    sink.add_argument(
        "--sink_namespace",
        help="Collection inside the sink, e.g. the simulation name",
    )

    cadence = parser.add_argument_group("cadence")
    cadence.add_argument(
        "--flush_interval_secs",
        type=float,
        help="Seconds between exports (default 300) or debug reports (default 2)",
    )
    cadence.add_argument(
        "--flush_interval_randomization",
        type=float,
        help="Relative randomization of the export interval in [0, 1), production only",
    )
    cadence.add_argument(
        "--max_export_attempts",
        type=int,
        help="Failed writes of one segment before it is dropped",
    )

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log_level",
        choices=sorted(LOG_LEVELS, key=LOG_LEVELS.get),
        help="Logging level",
    )
    logging_group.add_argument(
        "--log_file",
        help="Rotating log file name; {node_id} and {timestamp} are expanded",
    )
    logging_group.add_argument(
        "--log_dir",
        help="Directory of the log file, logs/ in the working directory by default",
    )
    return parser


def parse_run_config(argv: Sequence[str] | None = None, prog: str | None = None) -> RunConfig:
    """
    Parse command line arguments into a validated run configuration.

    :param argv: Arguments without the program name, sys.argv[1:] if None
    :type argv: Sequence[str] | None
    :param prog: Program name shown in the usage line
    :type prog: str | None
    :return: Validated configuration
    :rtype: RunConfig
    :raises SystemExit: On malformed arguments (handled by argparse)
    :raises ConfigError: On invalid or missing options
    """
    args = build_argument_parser(prog).parse_args(argv)
    manager = ConfigManager(args.config_path)
    manager.merge_cli_args(vars(args))
    return manager.build()
