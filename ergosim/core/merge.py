"""
Order-independent merging of accumulators collected on different nodes.

Nodes never talk to each other. Every exported segment is disjoint, so the
cluster-wide estimate of a measure is obtained by merging all of its segment
accumulators with the parallel-variance combination of Chan et al. The merge
is commutative and associative (up to floating-point rounding), and the empty
accumulator is its identity element.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from functools import reduce

from scipy import stats

from ergosim.core.accumulator import StatAccumulator
from ergosim.core.errors import IncompatibleMergeError, UnknownMeasureError
from ergosim.core.snapshot import MeasureSnapshot, Snapshot


def merge(first: StatAccumulator, second: StatAccumulator) -> StatAccumulator:
    """
    Combine two accumulators of the same measure.

    Neither operand is modified. Merging with an empty accumulator returns a
    copy of the other operand.

    :param first: Accumulator of one disjoint segment
    :type first: StatAccumulator
    :param second: Accumulator of another disjoint segment
    :type second: StatAccumulator
    :return: Accumulator equivalent to having consumed both segments
    :rtype: StatAccumulator

    Example::

        >>> a, b = StatAccumulator(), StatAccumulator()
        >>> a.accumulate(1.0); b.accumulate(3.0)
        >>> merge(a, b).mean
        2.0
    """
    if first.count == 0:
        return second.copy()
    if second.count == 0:
        return first.copy()

    count = first.count + second.count
    delta = second.mean - first.mean
    mean = first.mean + delta * second.count / count
    m2 = first.m2 + second.m2 + delta * delta * first.count * second.count / count
    return StatAccumulator(count=count, mean=mean, m2=m2)


def merge_all(accumulators: Iterable[StatAccumulator]) -> StatAccumulator:
    """Fold any number of accumulators, starting from the empty one."""
    return reduce(merge, accumulators, StatAccumulator())


def merge_entries(first: MeasureSnapshot, second: MeasureSnapshot) -> MeasureSnapshot:
    """
    Combine two exported entries of the same measure.

    :raises IncompatibleMergeError: If the entries belong to different measures
    """
    if first.name != second.name:
        raise IncompatibleMergeError(
            f"Cannot merge measure {first.name!r} with measure {second.name!r}"
        )
    merged = merge(StatAccumulator.from_snapshot(first), StatAccumulator.from_snapshot(second))
    return MeasureSnapshot(first.name, merged.count, merged.mean, merged.m2)


def merge_snapshots(snapshots: Iterable[Snapshot]) -> dict[str, StatAccumulator]:
    """
    Merge every exported segment into one accumulator per measure name.

    Measures are matched by name, not handle, because independently started
    runs may have registered them in a different order. A measure missing
    from some snapshots simply contributes nothing for those segments.

    :param snapshots: Snapshots from any number of nodes, in any order
    :type snapshots: Iterable[Snapshot]
    :return: Merged accumulator per measure, in first-seen order
    :rtype: dict[str, StatAccumulator]
    """
    merged: dict[str, StatAccumulator] = {}
    for snapshot in snapshots:
        for measure in snapshot.measures:
            segment = StatAccumulator.from_snapshot(measure)
            merged[measure.name] = merge(merged.get(measure.name, StatAccumulator()), segment)
    return merged


def merge_measure(snapshots: Iterable[Snapshot], name: str) -> StatAccumulator:
    """
    Merge the segments of a single measure.

    :raises UnknownMeasureError: If no snapshot contains the measure
    """
    entries = [
        StatAccumulator.from_snapshot(measure)
        for snapshot in snapshots
        if (measure := snapshot.measure(name)) is not None
    ]
    if not entries:
        raise UnknownMeasureError(f"No snapshot contains measure {name!r}")
    return merge_all(entries)


@dataclass(frozen=True)
class AggregateEstimate:
    """
    Cluster-wide estimate of one measure.

    :ivar name: Measure name
    :vartype name: str
    :ivar count: Total number of samples
    :vartype count: int
    :ivar mean: Estimated expectation value
    :vartype mean: float
    :ivar variance: Sample variance (NaN below two samples)
    :vartype variance: float
    :ivar standard_error: Uncertainty of the mean (NaN below two samples)
    :vartype standard_error: float
    """

    name: str
    count: int
    mean: float
    variance: float
    standard_error: float

    @classmethod
    def from_accumulator(cls, name: str, accumulator: StatAccumulator) -> AggregateEstimate:
        return cls(
            name=name,
            count=accumulator.count,
            mean=accumulator.mean,
            variance=accumulator.variance,
            standard_error=accumulator.standard_error,
        )

    @property
    def relative_error(self) -> float:
        if self.count < 2:
            return math.nan
        if self.mean == 0.0:
            return math.inf
        return self.standard_error / abs(self.mean)

    def confidence_interval(self, level: float = 0.95) -> tuple[float, float]:
        """
        Two-sided normal confidence interval of the mean.

        :param level: Confidence level in ``(0, 1)``
        :type level: float
        :return: ``(lower, upper)``; NaN bounds below two samples
        :rtype: tuple[float, float]
        :raises ValueError: If level is outside ``(0, 1)``
        """
        if not 0.0 < level < 1.0:
            raise ValueError(f"Confidence level must lie in (0, 1), got {level}")
        z_score = float(stats.norm.ppf(0.5 + level / 2.0))
        half_width = z_score * self.standard_error
        return self.mean - half_width, self.mean + half_width


def aggregate_estimates(snapshots: Iterable[Snapshot]) -> dict[str, AggregateEstimate]:
    """Merge snapshots and derive one :class:`AggregateEstimate` per measure."""
    return {
        name: AggregateEstimate.from_accumulator(name, accumulator)
        for name, accumulator in merge_snapshots(snapshots).items()
    }
