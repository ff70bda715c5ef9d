"""
Mean values of the first ten powers of a variable uniform on [0, 1].

The exact answer for ``Mean X^i`` is ``1 / (i + 1)``.

Debug run, printing a table every two seconds until Ctrl+C::

    python examples/mean_powers_of_x.py

Production run, appending a snapshot to ./results/powers.jsonl every ten
seconds::

    python examples/mean_powers_of_x.py --production --sink_address=results \
        --sink_namespace=powers --flush_interval_secs=10 \
        --flush_interval_randomization=0
"""

import numpy as np

from ergosim import AccumulatorSet, Sample, Simulation
from ergosim.utils.random import get_rng

NUM_POWERS = 10


class UniformSample(Sample):
    """A single value ``x`` redrawn uniformly on every mutation."""

    def __init__(self, rng: np.random.Generator):
        self.rng = rng
        self.x = 0.0

    @classmethod
    def prepare_randomized(cls) -> "UniformSample":
        return cls(get_rng())

    def thermalize(self) -> None:
        # independent draws carry no initialization bias
        self.mutate()

    def mutate(self) -> None:
        self.x = self.rng.uniform(0.0, 1.0)


def build_simulation() -> tuple[Simulation, list[int]]:
    simulation = Simulation("mean values of powers of [0..1]")
    powers = [simulation.add_measure(f"Mean X^{i}") for i in range(NUM_POWERS)]
    return simulation, powers


def main() -> int:
    simulation, powers = build_simulation()

    def measure(sample: UniformSample, accumulators: AccumulatorSet) -> None:
        for i, handle in enumerate(powers):
            accumulators.accumulate(handle, sample.x**i)

    return simulation.main(UniformSample, measure)


if __name__ == "__main__":
    raise SystemExit(main())
