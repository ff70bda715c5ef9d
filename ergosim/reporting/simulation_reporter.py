"""
Console reporting for debug-mode simulation runs.

This module handles the human-readable output of a running simulation,
separating presentation from the driver's control flow.
"""

import logging
import sys
from typing import Any, TextIO

from ergosim.core.accumulator import AccumulatorSet
from ergosim.reporting.report_renderer import ReportRenderer
from ergosim.utils.logging_config import get_logger


class SimulationReporter:
    """Print periodic progress tables for a simulation.

    Reporting reads the live accumulators without resetting them, so every
    table covers all samples since the run started.
    """

    def __init__(
        self,
        renderer: ReportRenderer | None = None,
        output: TextIO | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the simulation reporter.

        :param renderer: Table renderer (a default one is created if not provided)
        :type renderer: ReportRenderer | None
        :param output: Stream receiving the tables, defaults to stdout
        :type output: TextIO | None
        :param logger: Logger instance to use (creates one if not provided)
        :type logger: logging.Logger | None
        """
        self.renderer = renderer or ReportRenderer()
        self.output = output
        self.logger = logger or get_logger(__name__)
        self.reports_written = 0

    def _write(self, text: str) -> None:
        stream = self.output if self.output is not None else sys.stdout
        stream.write(text)
        stream.flush()

    def report_simulation_start(self, simulation_info_dict: dict[str, Any]) -> None:
        """Log the parameters of a simulation that is about to start.

        :param simulation_info_dict: Dictionary containing simulation parameters
        :type simulation_info_dict: dict[str, Any]
        """
        self.logger.info("=" * 60)
        self.logger.info("SIMULATION STARTING")
        self.logger.info("=" * 60)

        for key, value in simulation_info_dict.items():
            self.logger.info("%s: %s", key, value)

        self.logger.info("=" * 60)

    def report_progress(self, accumulators: AccumulatorSet, uptime_secs: float) -> str:
        """Print uptime, number of samples and the accumulator table.

        :param accumulators: Live accumulators, read only
        :type accumulators: AccumulatorSet
        :param uptime_secs: Seconds since the run started
        :type uptime_secs: float
        :return: The text that was written
        :rtype: str
        """
        text = (
            f"\nSimulation uptime: {int(uptime_secs)} secs\n"
            f"Samples processed: {accumulators.samples_processed}\n"
            f"Aggregate values:\n"
            f"{self.renderer.render(accumulators)}\n"
        )
        self._write(text)
        self.reports_written += 1
        return text

    def report_simulation_stopped(self, name: str, summary: dict[str, Any]) -> None:
        """Log the counters of a simulation that has terminated."""
        self.logger.info(
            "Simulation %r stopped after %d iterations", name, summary.get("iterations", 0)
        )
        for key, value in summary.items():
            if key != "iterations":
                self.logger.info("%s: %s", key, value)
