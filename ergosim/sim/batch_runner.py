"""
Multi-worker simulation runner.

Runs one independent driver per worker process on the same node. Workers
share nothing but a stop event; each exports its own disjoint segments under
its own node id and sink namespace, so the usual offline merge combines them.
"""

import multiprocessing
import signal
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ergosim.configs.config import RunConfig
from ergosim.core.driver import DriverStats, StopSignal
from ergosim.core.registry import MeasureRegistry
from ergosim.core.sample import MeasurementFn, Sample
from ergosim.sim.run_simulation import build_driver, stop_on_signals
from ergosim.utils.logging_config import get_logger
from ergosim.utils.os import default_node_id
from ergosim.utils.random import create_rng, reset_rng, set_random_seed

logger = get_logger(__name__)

# How often a caller-supplied stop signal is checked
STOP_POLL_INTERVAL_SECS: float = 0.1


def _get_context() -> Any:
    # measurement closures are generally not picklable, so prefer fork
    if "fork" in multiprocessing.get_all_start_methods():
        return multiprocessing.get_context("fork")
    return multiprocessing.get_context()


def worker_config(config: RunConfig, node_id: str, worker_index: int) -> RunConfig:
    """
    Derive the configuration of one worker from the node configuration.

    :param config: Node configuration
    :type config: RunConfig
    :param node_id: Identifier of the node
    :type node_id: str
    :param worker_index: Zero-based worker number
    :type worker_index: int
    :return: Single-worker configuration with its own node id, seed and namespace
    :rtype: RunConfig
    """
    return replace(
        config,
        num_workers=1,
        node_id=f"{node_id}-w{worker_index}",
        seed=None if config.seed is None else config.seed + worker_index,
        sink_namespace=(
            None if config.sink_namespace is None else f"{config.sink_namespace}-w{worker_index}"
        ),
    )


def _run_worker(
    name: str,
    measure_names: list[str],
    measurement: MeasurementFn,
    sample_source: type[Sample] | Callable[[], Sample],
    config: RunConfig,
    worker_index: int,
    stop_event: Any,
    results: Any,
) -> None:
    # the parent owns SIGINT handling and forwards it through stop_event
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, lambda _signum, _frame: stop_event.set())

    if config.seed is not None:
        set_random_seed(config.seed)
    else:
        reset_rng()

    registry = MeasureRegistry()
    for measure_name in measure_names:
        registry.register(measure_name)

    driver = build_driver(
        name,
        registry,
        measurement,
        sample_source,
        config,
        stop_event=stop_event,
        worker_index=worker_index,
        rng=create_rng(config.seed),
    )
    try:
        stats = driver.run()
    finally:
        if driver.sink is not None:
            driver.sink.close()
    results[worker_index] = stats.to_dict()


class BatchRunner:
    """
    Orchestrates ``num_workers`` simulation drivers on one node.

    Measure handles are positional, so every worker rebuilds the registry from
    the same ordered names and the handles captured by the measurement
    closure stay valid in every process.
    """

    def __init__(
        self,
        name: str,
        registry: MeasureRegistry,
        measurement: MeasurementFn,
        sample_source: type[Sample] | Callable[[], Sample],
        config: RunConfig,
        stop_event: StopSignal | None = None,
    ):
        """
        Initialize batch runner.

        :param name: Simulation name
        :param registry: Registry with every measure registered; closed here
        :param measurement: Measurement closure shared by all workers
        :param sample_source: Sample subclass or factory
        :param config: Node configuration, ``num_workers`` sets the process count
        :param stop_event: Caller's stop signal, forwarded to every worker
        """
        registry.close()
        self.name = name
        self.measure_names = registry.names()
        self.measurement = measurement
        self.sample_source = sample_source
        self.config = config
        self.node_id = config.node_id or default_node_id()
        self.external_stop = stop_event

        self._context = _get_context()
        self.stop_event = self._context.Event()

    def run(self) -> dict[int, DriverStats | None]:
        """
        Start every worker and wait for all of them to finish.

        Workers stop on SIGINT/SIGTERM, on :meth:`stop` or once the caller's
        stop signal is set.

        :return: Stats per worker index, None for workers that died
        :rtype: dict[int, DriverStats | None]
        """
        num_workers = self.config.num_workers
        logger.info("Starting %d workers for %r on node %s", num_workers, self.name, self.node_id)
        start_time = time.time()

        with self._context.Manager() as manager:
            results = manager.dict()
            processes = []
            for worker_index in range(num_workers):
                process = self._context.Process(
                    target=_run_worker,
                    args=(
                        self.name,
                        self.measure_names,
                        self.measurement,
                        self.sample_source,
                        worker_config(self.config, self.node_id, worker_index),
                        worker_index,
                        self.stop_event,
                        results,
                    ),
                    name=f"{self.name}-w{worker_index}",
                )
                process.start()
                processes.append(process)

            forwarder = None
            if self.external_stop is not None:
                forwarder = threading.Thread(
                    target=self._forward_stop, name=f"{self.name}-stop", daemon=True
                )
                forwarder.start()

            try:
                with stop_on_signals(self.stop_event):
                    for process in processes:
                        process.join()
            finally:
                self.stop_event.set()
                for process in processes:
                    process.join()
                if forwarder is not None:
                    forwarder.join()

            outcome = self._collect(processes, dict(results))

        self._log_summary(outcome, time.time() - start_time)
        return outcome

    def stop(self) -> None:
        """Ask every worker to stop after its current iteration."""
        self.stop_event.set()

    def _forward_stop(self) -> None:
        while not self.stop_event.wait(STOP_POLL_INTERVAL_SECS):
            if self.external_stop.is_set():
                logger.info("Stop signal received, stopping %d workers", self.config.num_workers)
                self.stop_event.set()

    def _collect(
        self, processes: list[Any], results: dict[int, Any]
    ) -> dict[int, DriverStats | None]:
        outcome: dict[int, DriverStats | None] = {}
        for worker_index, process in enumerate(processes):
            stats = results.get(worker_index)
            if process.exitcode != 0 or stats is None:
                logger.error(
                    "Worker %d exited with code %s", worker_index, process.exitcode
                )
                outcome[worker_index] = None
            else:
                outcome[worker_index] = DriverStats(**stats)
        return outcome

    def _log_summary(self, outcome: dict[int, DriverStats | None], elapsed: float) -> None:
        finished = [stats for stats in outcome.values() if stats is not None]
        logger.info("=" * 60)
        logger.info("BATCH SUMMARY")
        logger.info("=" * 60)
        logger.info("Workers finished: %d/%d", len(finished), len(outcome))
        logger.info("Iterations: %d", sum(stats.iterations for stats in finished))
        logger.info("Exports: %d", sum(stats.exports for stats in finished))
        logger.info("Dropped samples: %d", sum(stats.dropped_samples for stats in finished))
        logger.info("Elapsed: %.2f s", elapsed)
