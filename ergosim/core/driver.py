"""
Simulation driver: sample lifecycle, reporting cadence and export-and-reset.

The driver owns one sample, one closed measure registry and one accumulator
set. It runs the state machine::

    INITIALIZING -> THERMALIZING -> RUNNING <-> (REPORTING | EXPORTING) -> TERMINATING

In debug mode the cadence timer prints a table and leaves the accumulators
untouched. In production mode it cuts a snapshot, hands it to the data sink
and resets the accumulators only once the sink acknowledged the write, so
every exported snapshot covers a disjoint segment of samples.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from ergosim.core.accumulator import AccumulatorSet
from ergosim.core.errors import ExportError, InvalidMeasurementError, SampleError
from ergosim.core.registry import MeasureRegistry
from ergosim.core.sample import MeasurementFn, Sample
from ergosim.core.snapshot import Snapshot
from ergosim.io.sinks import DataSink
from ergosim.reporting.simulation_reporter import SimulationReporter
from ergosim.utils.logging_config import LoggerAdapter, get_logger
from ergosim.utils.os import default_node_id


class StopSignal(Protocol):
    """Anything with ``is_set()``, e.g. threading.Event or multiprocessing.Event."""

    def is_set(self) -> bool: ...


class DriverState(Enum):
    """Lifecycle states of a :class:`SimulationDriver`."""

    INITIALIZING = "initializing"
    THERMALIZING = "thermalizing"
    RUNNING = "running"
    REPORTING = "reporting"
    EXPORTING = "exporting"
    TERMINATING = "terminating"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry budget for failed exports.

    Retries do not block the simulation: after a failure the driver keeps
    sampling into the same segment and tries again once the backoff delay has
    elapsed. When ``max_attempts`` writes of one segment failed, the segment
    is dropped.

    :ivar max_attempts: Writes attempted per segment before dropping it
    :vartype max_attempts: int
    :ivar backoff_secs: Delay before the first retry
    :vartype backoff_secs: float
    :ivar max_backoff_secs: Upper bound of the doubling delay
    :vartype max_backoff_secs: float
    """

    max_attempts: int = 5
    backoff_secs: float = 1.0
    max_backoff_secs: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_secs < 0 or self.max_backoff_secs < 0:
            raise ValueError("Backoff delays must be non-negative")

    def delay(self, failures: int) -> float:
        """Delay before the next attempt after ``failures`` consecutive failures."""
        return min(self.backoff_secs * 2 ** max(failures - 1, 0), self.max_backoff_secs)


@dataclass
class DriverStats:
    """Counters describing what a driver has done so far."""

    iterations: int = 0
    reports: int = 0
    exports: int = 0
    failed_exports: int = 0
    dropped_segments: int = 0
    dropped_samples: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SimulationDriver:
    """
    Run one simulation segment loop on one execution context.

    :param name: Simulation name, used in logs
    :type name: str
    :param registry: Measure registry; it is closed when the driver is created
    :type registry: MeasureRegistry
    :param measurement: Closure ``(sample, accumulators) -> None``
    :type measurement: MeasurementFn
    :param sample_source: A :class:`Sample` subclass or a zero-argument factory
    :type sample_source: type[Sample] | Callable[[], Sample]
    :param flush_interval: Seconds between reports (debug) or exports (production)
    :type flush_interval: float
    :param production: Export-and-reset instead of printing reports
    :type production: bool
    :param sink: Destination of snapshots, required in production mode
    :type sink: DataSink | None
    :param reporter: Debug-mode reporter, created on demand
    :type reporter: SimulationReporter | None
    :param retry_policy: Retry budget for failed exports
    :type retry_policy: RetryPolicy | None
    :param node_id: Node identifier written into snapshots
    :type node_id: str | None
    :param stop_event: External stop signal checked between iterations
    :type stop_event: StopSignal | None
    :param clock: Monotonic clock in seconds, injectable for tests
    :type clock: Callable[[], float]
    :param now: Wall clock used for segment timestamps
    :type now: Callable[[], datetime]
    :param logger: Logger or adapter, defaults to the module logger tagged with the node id
    :type logger: logging.Logger | logging.LoggerAdapter | None
    :raises ValueError: If production mode has no sink or the interval is negative
    """

    def __init__(
        self,
        name: str,
        registry: MeasureRegistry,
        measurement: MeasurementFn,
        sample_source: type[Sample] | Callable[[], Sample],
        flush_interval: float,
        production: bool = False,
        sink: DataSink | None = None,
        reporter: SimulationReporter | None = None,
        retry_policy: RetryPolicy | None = None,
        node_id: str | None = None,
        stop_event: StopSignal | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utc_now,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        if flush_interval < 0:
            raise ValueError("flush_interval must be non-negative")
        if production and sink is None:
            raise ValueError("A data sink is required in production mode")

        self.name = name
        self.registry = registry
        self.accumulators = AccumulatorSet(registry)
        self.measurement = measurement
        self.flush_interval = flush_interval
        self.production = production
        self.sink = sink
        self.reporter = reporter
        self.retry_policy = retry_policy or RetryPolicy()
        self.node_id = node_id or default_node_id()
        self.stop_event = stop_event
        self.clock = clock
        self.now = now
        self.logger = logger or LoggerAdapter(get_logger(__name__), {"node_id": self.node_id})

        if isinstance(sample_source, type) and issubclass(sample_source, Sample):
            self._prepare_sample: Callable[[], Sample] = sample_source.prepare_randomized
        else:
            self._prepare_sample = sample_source

        self.state = DriverState.INITIALIZING
        self.sample: Sample | None = None
        self.stats = DriverStats()
        self.segment_start: datetime | None = None
        self._started_at = 0.0
        self._next_flush = 0.0
        self._consecutive_failures = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================
    def run(self, max_iterations: int | None = None) -> DriverStats:
        """
        Run the simulation until stopped.

        Without a stop signal and without ``max_iterations`` this never
        returns. The stop signal is only checked between iterations so a
        sample is never observed mid-mutation.

        :param max_iterations: Optional bound on mutate+measure iterations
        :type max_iterations: int | None
        :return: Counters of the finished run
        :rtype: DriverStats
        :raises SampleError: If user sample or measurement code raised
        :raises InvalidMeasurementError: If a non-finite observable was recorded
        """
        self._initialize()
        self._thermalize()
        self._transition(DriverState.RUNNING)

        while not self._should_stop(max_iterations):
            self.step()
            if self.clock() >= self._next_flush:
                self._on_timer()

        self._terminate()
        return self.stats

    def _initialize(self) -> None:
        self.logger.info(
            "Running simulation %r in %s mode, flush interval %.1f s",
            self.name,
            "production" if self.production else "debug",
            self.flush_interval,
        )
        self.sample = self._call_user("prepare_randomized", self._prepare_sample)

    def _thermalize(self) -> None:
        self._transition(DriverState.THERMALIZING)
        self._call_user("thermalize", self.sample.thermalize)

        self._started_at = self.clock()
        self._next_flush = self._started_at + self.flush_interval
        self.segment_start = self.now()

    def _should_stop(self, max_iterations: int | None) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            self.logger.info("Stop signal received after %d iterations", self.stats.iterations)
            return True
        return max_iterations is not None and self.stats.iterations >= max_iterations

    def step(self) -> None:
        """Draw one new sample and record its observables."""
        self._call_user("mutate", self.sample.mutate)
        self._call_user("measurement", self.measurement, self.sample, self.accumulators)
        self.stats.iterations += 1

    def _call_user(self, what: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except InvalidMeasurementError:
            self._transition(DriverState.TERMINATING)
            self.logger.critical("Invalid measurement, terminating node", exc_info=True)
            raise
        except Exception as e:
            self._transition(DriverState.TERMINATING)
            self.logger.exception("User %s failed, terminating node", what)
            raise SampleError(f"User {what} failed: {e}") from e

    def _transition(self, state: DriverState) -> None:
        if state is not self.state:
            self.logger.debug("State %s -> %s", self.state.value, state.value)
            self.state = state

    # =========================================================================
    # Reporting and exporting
    # =========================================================================
    def _on_timer(self) -> None:
        if self.production:
            self._transition(DriverState.EXPORTING)
            self.export()
        else:
            self._transition(DriverState.REPORTING)
            self.report()
            self._next_flush = self.clock() + self.flush_interval
        self._transition(DriverState.RUNNING)

    def report(self) -> str:
        """Print the current accumulators without resetting them."""
        if self.reporter is None:
            self.reporter = SimulationReporter()
        self.stats.reports += 1
        return self.reporter.report_progress(self.accumulators, self.clock() - self._started_at)

    def _cut_snapshot(self) -> Snapshot:
        return self.accumulators.snapshot(self.node_id, self.segment_start, self.now())

    def _start_segment(self, segment_start: datetime) -> None:
        self.accumulators.reset()
        self.segment_start = segment_start
        self._consecutive_failures = 0
        self._next_flush = self.clock() + self.flush_interval

    def export(self) -> bool:
        """
        Snapshot, write to the sink and reset on acknowledgement.

        On failure the accumulators are kept and a retry is scheduled after
        the backoff delay. Once the retry budget is spent the segment is
        dropped and a fresh one starts.

        :return: Whether the sink acknowledged the snapshot
        :rtype: bool
        """
        snapshot = self._cut_snapshot()
        try:
            self.sink.write(snapshot)
        except ExportError as e:
            self.stats.failed_exports += 1
            self._consecutive_failures += 1
            attempts = self.retry_policy.max_attempts
            if self._consecutive_failures >= attempts:
                self.stats.dropped_segments += 1
                self.stats.dropped_samples += snapshot.sample_count
                self.logger.error(
                    "Export failed %d times, dropping segment of %d samples started at %s: %s",
                    attempts,
                    snapshot.sample_count,
                    snapshot.segment_start.isoformat(),
                    e,
                )
                self._start_segment(self.now())
            else:
                delay = self.retry_policy.delay(self._consecutive_failures)
                self._next_flush = self.clock() + delay
                self.logger.error(
                    "Export attempt %d of %d failed, retrying in %.1f s: %s",
                    self._consecutive_failures,
                    attempts,
                    delay,
                    e,
                )
            return False

        self.stats.exports += 1
        self.logger.info(
            "Exported %d samples to %s", snapshot.sample_count, self.sink.describe()
        )
        self._start_segment(snapshot.segment_end)
        return True

    def _terminate(self) -> None:
        self._transition(DriverState.TERMINATING)
        if self.production:
            if self.accumulators.is_empty():
                return
            # single best-effort attempt, no retries on the way out
            snapshot = self._cut_snapshot()
            try:
                self.sink.write(snapshot)
            except ExportError as e:
                self.stats.failed_exports += 1
                self.stats.dropped_segments += 1
                self.stats.dropped_samples += snapshot.sample_count
                self.logger.warning(
                    "Final export failed, %d samples lost: %s", snapshot.sample_count, e
                )
                return
            self.stats.exports += 1
            self.accumulators.reset()
            self.logger.info(
                "Final export of %d samples to %s", snapshot.sample_count, self.sink.describe()
            )
        elif self.stats.iterations > 0:
            self.report()
