"""
Simulation execution for ergosim.

- run_simulation: Run one driver until stopped
- BatchRunner: Run independent drivers in worker processes
"""

from ergosim.sim.run_simulation import build_driver, run_simulation, stop_on_signals
from ergosim.sim.batch_runner import BatchRunner, worker_config

__all__ = [
    "BatchRunner",
    "build_driver",
    "run_simulation",
    "stop_on_signals",
    "worker_config",
]
