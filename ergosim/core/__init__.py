"""
Core of the ergosim harness.

Statistics accumulation, order-independent merging, the sample capability
and the simulation driver. Modules are imported leaves first.
"""

from ergosim.core.errors import (
    DuplicateNameError,
    ExportError,
    IncompatibleMergeError,
    InvalidMeasurementError,
    RegistryClosedError,
    RegistryError,
    SampleError,
    SimulationError,
    SnapshotFormatError,
    UnknownMeasureError,
)
from ergosim.core.registry import Measure, MeasureRegistry
from ergosim.core.snapshot import MeasureSnapshot, Snapshot
from ergosim.core.accumulator import AccumulatorSet, StatAccumulator
from ergosim.core.merge import (
    AggregateEstimate,
    aggregate_estimates,
    merge,
    merge_all,
    merge_entries,
    merge_measure,
    merge_snapshots,
)
from ergosim.core.sample import MeasurementFn, Sample
from ergosim.core.driver import DriverState, DriverStats, RetryPolicy, SimulationDriver

__all__ = [
    "AccumulatorSet",
    "AggregateEstimate",
    "DriverState",
    "DriverStats",
    "DuplicateNameError",
    "ExportError",
    "IncompatibleMergeError",
    "InvalidMeasurementError",
    "Measure",
    "MeasureRegistry",
    "MeasureSnapshot",
    "MeasurementFn",
    "RegistryClosedError",
    "RegistryError",
    "RetryPolicy",
    "Sample",
    "SampleError",
    "SimulationDriver",
    "SimulationError",
    "Snapshot",
    "SnapshotFormatError",
    "StatAccumulator",
    "UnknownMeasureError",
    "aggregate_estimates",
    "merge",
    "merge_all",
    "merge_entries",
    "merge_measure",
    "merge_snapshots",
]
