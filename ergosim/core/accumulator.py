"""
Streaming mean/variance accumulators.

Each registered measure owns one :class:`StatAccumulator` holding the Welford
triple ``(count, mean, m2)``. Updating it is numerically stable for a large
number of samples, and two accumulators collected independently can be
combined exactly with :func:`ergosim.core.merge.merge`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from ergosim.core.errors import InvalidMeasurementError, UnknownMeasureError
from ergosim.core.registry import MeasureRegistry
from ergosim.core.snapshot import MeasureSnapshot, Snapshot


@dataclass
class StatAccumulator:
    """
    Welford accumulator for one observable.

    :ivar count: Number of consumed values
    :vartype count: int
    :ivar mean: Running mean of consumed values
    :vartype mean: float
    :ivar m2: Sum of squared deviations from the running mean
    :vartype m2: float

    Example::

        >>> acc = StatAccumulator()
        >>> for value in (0.1, 0.3, 0.5):
        ...     acc.accumulate(value)
        >>> round(acc.mean, 10)
        0.3
    """

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    @classmethod
    def from_snapshot(cls, measure: MeasureSnapshot) -> StatAccumulator:
        """Rebuild an accumulator from an exported measure entry."""
        return cls(count=measure.count, mean=measure.mean, m2=measure.m2)

    def accumulate(self, value: float) -> None:
        """
        Consume one value of the observable.

        :param value: Observable measured on the current sample
        :type value: float
        :raises InvalidMeasurementError: If the value is NaN or infinite
        """
        value = float(value)
        if not math.isfinite(value):
            raise InvalidMeasurementError(None, value)

        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        delta2 = value - self.mean
        self.m2 += delta * delta2

    @property
    def variance(self) -> float:
        """
        Unbiased sample variance ``m2 / (count - 1)``.

        :return: The variance, NaN for fewer than two values
        :rtype: float
        """
        if self.count < 2:
            return math.nan
        return self.m2 / (self.count - 1)

    @property
    def standard_error(self) -> float:
        """
        Estimated standard deviation of the mean, ``sqrt(variance / count)``.

        :return: The standard error, NaN for fewer than two values
        :rtype: float
        """
        if self.count < 2:
            return math.nan
        return math.sqrt(self.variance / self.count)

    @property
    def relative_error(self) -> float:
        """Standard error divided by the absolute value of the mean."""
        if self.count < 2:
            return math.nan
        if self.mean == 0.0:
            return math.inf
        return self.standard_error / abs(self.mean)

    def is_empty(self) -> bool:
        return self.count == 0

    def copy(self) -> StatAccumulator:
        return StatAccumulator(count=self.count, mean=self.mean, m2=self.m2)

    def reset(self) -> None:
        """Forget every consumed value."""
        self.count = 0
        self.mean = 0.0
        self.m2 = 0.0


class AccumulatorSet:
    """
    The accumulators of one run segment, indexed by measure handle.

    This is the object handed to the measurement closure. It is sized from a
    closed :class:`MeasureRegistry` and never grows afterwards.

    :param registry: Registry the handles belong to; it is closed here
    :type registry: MeasureRegistry
    """

    def __init__(self, registry: MeasureRegistry):
        registry.close()
        self.registry = registry
        self._accumulators = [StatAccumulator() for _ in range(len(registry))]

    def accumulate(self, handle: int, value: float) -> None:
        """
        Record ``value`` for the measure behind ``handle``.

        :raises UnknownMeasureError: If the handle is not registered
        :raises InvalidMeasurementError: If the value is not finite
        """
        accumulator = self.get(handle)
        try:
            accumulator.accumulate(value)
        except InvalidMeasurementError as e:
            raise InvalidMeasurementError(handle, e.value) from None

    def get(self, handle: int) -> StatAccumulator:
        """Live accumulator for ``handle``."""
        if not 0 <= handle < len(self._accumulators):
            raise UnknownMeasureError(f"No measure with handle {handle}")
        return self._accumulators[handle]

    def __getitem__(self, handle: int) -> StatAccumulator:
        return self.get(handle)

    def __len__(self) -> int:
        return len(self._accumulators)

    def items(self) -> list[tuple[str, StatAccumulator]]:
        """``(name, accumulator copy)`` pairs in handle order."""
        return [
            (measure.name, self._accumulators[measure.handle].copy())
            for measure in self.registry
        ]

    @property
    def samples_processed(self) -> int:
        """Largest count over all measures in the current segment."""
        return max((acc.count for acc in self._accumulators), default=0)

    def is_empty(self) -> bool:
        return all(acc.is_empty() for acc in self._accumulators)

    def snapshot(
        self, node_id: str, segment_start: datetime, segment_end: datetime
    ) -> Snapshot:
        """
        Produce an immutable copy of the current segment.

        :param node_id: Identifier of the producing node
        :type node_id: str
        :param segment_start: When the segment started (run start or last reset)
        :type segment_start: datetime
        :param segment_end: When the segment was cut
        :type segment_end: datetime
        :return: Export unit covering exactly the samples seen since the last reset
        :rtype: Snapshot
        """
        measures = tuple(
            MeasureSnapshot(
                name=measure.name,
                count=acc.count,
                mean=acc.mean,
                m2=acc.m2,
            )
            for measure, acc in zip(self.registry, self._accumulators)
        )
        return Snapshot(
            node_id=node_id,
            segment_start=segment_start,
            segment_end=segment_end,
            measures=measures,
        )

    def reset(self) -> None:
        """Zero every accumulator. Called only at export boundaries."""
        for acc in self._accumulators:
            acc.reset()

    def __repr__(self) -> str:
        return (
            f"AccumulatorSet(measures={len(self)}, "
            f"samples_processed={self.samples_processed})"
        )
