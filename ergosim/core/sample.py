"""
Sample capability implemented by user simulations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from ergosim.core.accumulator import AccumulatorSet

# Number of mutations applied by the default thermalization
DEFAULT_THERMALIZATION_STEPS: int = 20

SampleT = TypeVar("SampleT", bound="Sample")


class Sample(ABC):
    """
    A point in configuration space drawn by an ergodic random walk.

    The harness never inspects a sample. It only prepares one, thermalizes it
    once and then mutates it before every measurement. Implementations must
    provide :meth:`prepare_randomized` and :meth:`mutate`; :meth:`thermalize`
    may be overridden. Drawing from :func:`ergosim.utils.random.get_rng`
    makes runs reproducible with ``--seed``.

    Example::

        class UniformSample(Sample):
            def __init__(self, rng):
                self.rng = rng
                self.x = 0.0

            @classmethod
            def prepare_randomized(cls):
                return cls(get_rng())

            def mutate(self):
                self.x = self.rng.uniform(0.0, 1.0)
    """

    @classmethod
    @abstractmethod
    def prepare_randomized(cls: type[SampleT]) -> SampleT:
        """
        Create a sample with randomized degrees of freedom.

        :return: A fresh, not yet thermalized sample
        """

    def thermalize(self) -> None:
        """
        Remove the initialization bias before measuring.

        Randomized samples are highly atypical, so the walk runs for a while
        without recording observables. The default applies :meth:`mutate`
        ``DEFAULT_THERMALIZATION_STEPS`` times.
        """
        for _ in range(DEFAULT_THERMALIZATION_STEPS):
            self.mutate()

    @abstractmethod
    def mutate(self) -> None:
        """
        Take one unbiased step of the random walk in place.

        The most common implementation is a Metropolis update.
        """


MeasurementFn = Callable[[Sample, "AccumulatorSet"], None]
"""Measurement closure: reads the sample, records observables into the set."""
