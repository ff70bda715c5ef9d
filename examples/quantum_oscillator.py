"""
Euclidean path integral of a quantum harmonic oscillator on a periodic lattice.

Samples are trajectories ``x(t)`` on ``LATTICE_SIZE`` time slices updated by
Metropolis sweeps. The measures ``G(k)`` estimate the two-point correlator
``<x_i x_(i+k)>`` averaged over ``i``.

Run with the usual options, e.g.::

    python examples/quantum_oscillator.py --num_workers=4
"""

import numpy as np

from ergosim import AccumulatorSet, Sample, Simulation
from ergosim.utils.random import get_rng

LATTICE_SIZE = 30
LATTICE_SPACING = 0.5
MASS = 1.0
SPRING_CONSTANT = 1.0

PROPOSAL_WIDTH = 15.0
THERMALIZATION_SWEEPS = 500
SWEEPS_PER_MUTATION = 20


def potential(x: float) -> float:
    return SPRING_CONSTANT * x**2 / 2.0


class Trajectory(Sample):
    """Oscillator trajectory on a periodic time lattice."""

    def __init__(self, rng: np.random.Generator):
        self.rng = rng
        self.x = np.zeros(LATTICE_SIZE)

    @classmethod
    def prepare_randomized(cls) -> "Trajectory":
        return cls(get_rng())

    def lagrangian(self, i: int) -> float:
        """Euclidean Lagrangian of the link between slices ``i`` and ``i + 1``."""
        j = (i + 1) % LATTICE_SIZE
        kinetic = MASS * (self.x[j] - self.x[i]) ** 2 / (2.0 * LATTICE_SPACING)
        return kinetic + LATTICE_SPACING * potential((self.x[i] + self.x[j]) / 2.0)

    def contact_action(self, i: int) -> float:
        """Part of the action that depends on slice ``i``."""
        return self.lagrangian(i) + self.lagrangian((i - 1) % LATTICE_SIZE)

    def sweep(self, num_sweeps: int) -> None:
        for _ in range(num_sweeps):
            for i in range(LATTICE_SIZE):
                old_x = self.x[i]
                old_action = self.contact_action(i)
                self.x[i] = self.rng.uniform(-PROPOSAL_WIDTH, PROPOSAL_WIDTH)
                delta = self.contact_action(i) - old_action
                if delta > 0.0 and np.exp(-delta) <= self.rng.uniform(0.0, 1.0):
                    self.x[i] = old_x

    def thermalize(self) -> None:
        self.sweep(THERMALIZATION_SWEEPS)

    def mutate(self) -> None:
        self.sweep(SWEEPS_PER_MUTATION)


def correlators(x: np.ndarray) -> np.ndarray:
    """``G(k) = mean_i x_i x_(i+k)`` for every lattice distance ``k``."""
    return np.array([np.mean(x * np.roll(x, -k)) for k in range(len(x))])


def main() -> int:
    simulation = Simulation("Oscillator")
    handles = [simulation.add_measure(f"G({k})") for k in range(LATTICE_SIZE)]

    def measure(sample: Trajectory, accumulators: AccumulatorSet) -> None:
        for handle, value in zip(handles, correlators(sample.x)):
            accumulators.accumulate(handle, float(value))

    return simulation.main(Trajectory, measure)


if __name__ == "__main__":
    raise SystemExit(main())
