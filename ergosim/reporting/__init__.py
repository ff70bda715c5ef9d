"""
Reporting module for ergosim.

This module provides reporting and aggregation utilities for simulation results:
- ReportRenderer: Plain-text table of accumulators
- SimulationReporter: Debug-mode console output
- Aggregation: Merging exported snapshots into cluster-wide estimates
"""

from ergosim.reporting.aggregation import (
    aggregate_snapshot_files,
    estimates_to_frame,
    load_snapshots,
    summarize_nodes,
)
from ergosim.reporting.report_renderer import ReportRenderer
from ergosim.reporting.simulation_reporter import SimulationReporter

__all__ = [
    "ReportRenderer",
    "SimulationReporter",
    "aggregate_snapshot_files",
    "estimates_to_frame",
    "load_snapshots",
    "summarize_nodes",
]
