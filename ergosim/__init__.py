"""
ergosim: a harness for embarrassingly parallel Monte-Carlo simulations.

Each node draws samples, accumulates running mean and variance of the
registered measures and, in production mode, periodically exports disjoint
segments of statistics to a data sink. Segments from any number of nodes
merge into cluster-wide estimates.

Example:
    >>> simulation = Simulation("Mean of X")
    >>> mean_x = simulation.add_measure("Mean X")
    >>> def measure(sample, accumulators):
    ...     accumulators.accumulate(mean_x, sample.x)
    >>> simulation.run(UniformSample, measure)  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

# core is imported first so the subpackages below find it initialized
from ergosim.core import (
    AccumulatorSet,
    AggregateEstimate,
    DriverState,
    DriverStats,
    MeasureRegistry,
    RetryPolicy,
    Sample,
    SimulationDriver,
    SimulationError,
    Snapshot,
    StatAccumulator,
    aggregate_estimates,
    merge,
    merge_snapshots,
)
from ergosim.configs import RunConfig
from ergosim.core.sample import MeasurementFn
from ergosim.core.driver import StopSignal
from ergosim.io import DataSink, InMemorySink, JSONLinesSink, SinkRegistry
from ergosim.sim import BatchRunner, run_simulation
from ergosim.cli.run import main as cli_main

__version__ = "0.1.0"


class Simulation:
    """
    Convenience wrapper owning one measure registry.

    :param name: Simulation name, used in logs and as the program name
    :type name: str
    """

    def __init__(self, name: str):
        self.name = name
        self.registry = MeasureRegistry()

    def add_measure(self, name: str) -> int:
        """
        Register a measure and return its handle.

        :raises DuplicateNameError: If the name is already registered
        :raises RegistryClosedError: If the simulation has already run
        """
        return self.registry.register(name)

    def run(
        self,
        sample_type: type[Sample] | Callable[[], Sample],
        measurement: MeasurementFn,
        argv: Sequence[str] | None = None,
        stop_event: StopSignal | None = None,
        config: RunConfig | None = None,
        sink: DataSink | None = None,
        max_iterations: int | None = None,
    ) -> DriverStats | dict[int, DriverStats | None]:
        """Run until stopped; see :func:`ergosim.sim.run_simulation.run_simulation`."""
        return run_simulation(
            self.name,
            self.registry,
            measurement,
            sample_type,
            config=config,
            argv=argv,
            stop_event=stop_event,
            sink=sink,
            max_iterations=max_iterations,
        )

    def main(
        self,
        sample_type: type[Sample] | Callable[[], Sample],
        measurement: MeasurementFn,
        argv: Sequence[str] | None = None,
    ) -> int:
        """Run from the command line and return the process exit code."""
        return cli_main(self.name, self.registry, measurement, sample_type, argv=argv)

    def __repr__(self) -> str:
        return f"Simulation({self.name!r}, measures={self.registry.names()})"


__all__ = [
    "AccumulatorSet",
    "AggregateEstimate",
    "BatchRunner",
    "DataSink",
    "DriverState",
    "DriverStats",
    "InMemorySink",
    "JSONLinesSink",
    "MeasureRegistry",
    "RetryPolicy",
    "RunConfig",
    "Sample",
    "Simulation",
    "SimulationDriver",
    "SimulationError",
    "SinkRegistry",
    "Snapshot",
    "StatAccumulator",
    "__version__",
    "aggregate_estimates",
    "merge",
    "merge_snapshots",
    "run_simulation",
]
