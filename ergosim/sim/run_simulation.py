"""
Simulation execution entry points for ergosim.

``run_simulation`` takes ownership of a measure registry and runs the driver
until an external stop signal arrives, either in this process or across a
pool of worker processes.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import numpy as np

from ergosim.cli.main_parser import parse_run_config
from ergosim.configs.config import RunConfig
from ergosim.core.driver import DriverStats, SimulationDriver, StopSignal
from ergosim.core.registry import MeasureRegistry
from ergosim.core.sample import MeasurementFn, Sample
from ergosim.io.sinks import DataSink, SinkRegistry
from ergosim.reporting.simulation_reporter import SimulationReporter
from ergosim.utils.logging_config import configure_simulation_logging, get_logger
from ergosim.utils.os import default_node_id
from ergosim.utils.random import create_rng, set_random_seed

logger = get_logger(__name__)

SampleSource = type[Sample] | Callable[[], Sample]


@contextmanager
def stop_on_signals(stop_event: Any) -> Iterator[None]:
    """
    Set ``stop_event`` on SIGINT or SIGTERM while the block runs.

    Handlers can only be installed from the main thread; elsewhere this is a
    no-op and the caller is responsible for setting the event.

    :param stop_event: Event with a ``set()`` method
    :type stop_event: threading.Event | multiprocessing.Event
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: Any) -> None:
        logger.info("Received %s, stopping after the current iteration", signal.Signals(signum).name)
        stop_event.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def build_driver(
    name: str,
    registry: MeasureRegistry,
    measurement: MeasurementFn,
    sample_source: SampleSource,
    config: RunConfig,
    stop_event: StopSignal | None = None,
    sink: DataSink | None = None,
    reporter: SimulationReporter | None = None,
    node_id: str | None = None,
    worker_index: int | None = None,
    rng: np.random.Generator | None = None,
) -> SimulationDriver:
    """
    Assemble a driver from a resolved configuration.

    :param name: Simulation name
    :param registry: Measure registry, closed by the driver
    :param measurement: Measurement closure
    :param sample_source: Sample subclass or factory
    :param config: Validated run configuration
    :param stop_event: External stop signal
    :param sink: Data sink; built from ``config`` in production mode if None
    :param reporter: Debug reporter
    :param node_id: Overrides ``config.node_id``
    :param worker_index: Worker number on a multi-worker node
    :param rng: Generator for the flush interval randomization
    :return: A driver ready to ``run()``
    :rtype: SimulationDriver
    """
    node_id = node_id or config.node_id or default_node_id()
    if config.production and sink is None:
        sink = SinkRegistry().create_sink(config.sink_address, config.sink_namespace)

    driver_logger = configure_simulation_logging(
        name,
        node_id,
        worker_index=worker_index,
        log_level=config.log_level,
        log_file=config.log_file if config.production else None,
        log_dir=config.log_dir,
    )
    return SimulationDriver(
        name=name,
        registry=registry,
        measurement=measurement,
        sample_source=sample_source,
        flush_interval=config.resolve_flush_interval(rng),
        production=config.production,
        sink=sink,
        reporter=reporter,
        retry_policy=config.retry_policy(),
        node_id=node_id,
        stop_event=stop_event,
        logger=driver_logger,
    )


def run_simulation(
    name: str,
    registry: MeasureRegistry,
    measurement: MeasurementFn,
    sample_source: SampleSource,
    config: RunConfig | None = None,
    argv: Sequence[str] | None = None,
    stop_event: StopSignal | None = None,
    sink: DataSink | None = None,
    max_iterations: int | None = None,
) -> DriverStats | dict[int, DriverStats | None]:
    """
    Run a simulation until it is stopped.

    Takes ownership of ``registry``, which is closed for registration from
    here on. Without a stop signal the run only ends on SIGINT/SIGTERM,
    after which one final export is attempted in production mode.

    :param name: Simulation name
    :type name: str
    :param registry: Registry with every measure already registered
    :type registry: MeasureRegistry
    :param measurement: Closure ``(sample, accumulators) -> None``
    :type measurement: MeasurementFn
    :param sample_source: Sample subclass or zero-argument factory
    :type sample_source: type[Sample] | Callable[[], Sample]
    :param config: Resolved options; parsed from ``argv`` if None
    :type config: RunConfig | None
    :param argv: Command line arguments, sys.argv[1:] if None
    :type argv: Sequence[str] | None
    :param stop_event: External stop signal, forwarded to every worker; a fresh
        event set by signals if None
    :type stop_event: StopSignal | None
    :param sink: Data sink overriding the configured address, single-worker only
    :type sink: DataSink | None
    :param max_iterations: Optional bound on iterations, single-worker only
    :type max_iterations: int | None
    :return: Driver counters, or counters per worker on a multi-worker node
    :rtype: DriverStats | dict[int, DriverStats | None]
    :raises ValueError: If sink or max_iterations is given with num_workers > 1
    """
    if config is None:
        config = parse_run_config(argv, prog=name)
    if config.seed is not None:
        set_random_seed(config.seed)

    if config.num_workers > 1:
        if sink is not None or max_iterations is not None:
            raise ValueError(
                "sink and max_iterations apply to a single driver, not to num_workers > 1"
            )
        # imported here, batch_runner depends on this module
        from ergosim.sim.batch_runner import BatchRunner  # pylint: disable=import-outside-toplevel

        runner = BatchRunner(
            name, registry, measurement, sample_source, config, stop_event=stop_event
        )
        return runner.run()

    if stop_event is None:
        stop_event = threading.Event()
    reporter = SimulationReporter()
    driver = build_driver(
        name,
        registry,
        measurement,
        sample_source,
        config,
        stop_event=stop_event,
        sink=sink,
        reporter=reporter,
        rng=create_rng(config.seed),
    )
    reporter.report_simulation_start(
        {
            "name": name,
            "node_id": driver.node_id,
            "mode": "production" if driver.production else "debug",
            "flush_interval_secs": driver.flush_interval,
            "measures": ", ".join(registry.names()),
            "sink": driver.sink.describe() if driver.sink is not None else "none",
        }
    )
    try:
        with stop_on_signals(stop_event):
            stats = driver.run(max_iterations=max_iterations)
    finally:
        if driver.sink is not None:
            driver.sink.close()

    reporter.report_simulation_stopped(name, stats.to_dict())
    return stats

