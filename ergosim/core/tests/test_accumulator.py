"""Unit tests for ergosim.core.accumulator module."""

import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from ergosim.core.accumulator import AccumulatorSet, StatAccumulator
from ergosim.core.errors import InvalidMeasurementError, UnknownMeasureError
from ergosim.core.registry import MeasureRegistry
from ergosim.core.snapshot import MeasureSnapshot

SEQUENCE = [0.1, 0.3, 0.5, 0.7, 0.9]


class TestStatAccumulator:
    """Tests for the Welford accumulator."""

    def test_empty_accumulator_has_no_statistics(self) -> None:
        """Test the initial state."""
        acc = StatAccumulator()

        assert acc.is_empty()
        assert acc.count == 0
        assert acc.mean == 0.0
        assert math.isnan(acc.variance)
        assert math.isnan(acc.standard_error)

    def test_single_value_has_mean_but_no_variance(self) -> None:
        """Test that one value defines the mean only."""
        acc = StatAccumulator()

        acc.accumulate(4.2)

        assert acc.count == 1
        assert acc.mean == 4.2
        assert acc.m2 == 0.0
        assert math.isnan(acc.variance)
        assert math.isnan(acc.relative_error)

    def test_accumulate_known_sequence(self) -> None:
        """Test count, mean, variance and standard error of a fixed sequence."""
        acc = StatAccumulator()

        for value in SEQUENCE:
            acc.accumulate(value)

        assert acc.count == 5
        assert acc.mean == pytest.approx(0.5)
        assert acc.variance == pytest.approx(0.1)
        assert acc.standard_error == pytest.approx(math.sqrt(0.02))
        assert acc.relative_error == pytest.approx(math.sqrt(0.02) / 0.5)

    def test_accumulate_matches_numpy(self) -> None:
        """Test the streaming update against a two-pass computation."""
        values = np.random.default_rng(11).normal(100.0, 3.0, size=10_000)
        acc = StatAccumulator()

        for value in values:
            acc.accumulate(value)

        assert acc.mean == pytest.approx(np.mean(values), rel=1e-12)
        assert acc.variance == pytest.approx(np.var(values, ddof=1), rel=1e-9)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_accumulate_non_finite_raises_error(self, value: float) -> None:
        """Test that non-finite values are rejected and leave the state intact."""
        acc = StatAccumulator()
        acc.accumulate(1.0)

        with pytest.raises(InvalidMeasurementError):
            acc.accumulate(value)

        assert acc.count == 1
        assert acc.mean == 1.0

    def test_relative_error_with_zero_mean_is_infinite(self) -> None:
        """Test the relative error of a zero-mean measure."""
        acc = StatAccumulator()
        acc.accumulate(-1.0)
        acc.accumulate(1.0)

        assert acc.relative_error == math.inf

    def test_reset_restores_empty_state(self) -> None:
        """Test reset."""
        acc = StatAccumulator()
        acc.accumulate(2.0)
        acc.accumulate(3.0)

        acc.reset()

        assert acc == StatAccumulator()

    def test_copy_is_independent(self) -> None:
        """Test that a copy does not follow later updates."""
        acc = StatAccumulator()
        acc.accumulate(2.0)

        copied = acc.copy()
        acc.accumulate(10.0)

        assert copied.count == 1
        assert copied.mean == 2.0

    def test_from_snapshot_restores_state(self) -> None:
        """Test rebuilding an accumulator from an exported entry."""
        acc = StatAccumulator.from_snapshot(MeasureSnapshot("Mean X", 5, 0.5, 0.4))

        assert acc == StatAccumulator(count=5, mean=0.5, m2=0.4)
        assert acc.variance == pytest.approx(0.1)


class TestAccumulatorSet:
    """Tests for AccumulatorSet."""

    @pytest.fixture
    def registry(self) -> MeasureRegistry:
        registry = MeasureRegistry()
        registry.register("Mean X")
        registry.register("Mean X^2")
        return registry

    def test_creation_closes_registry(self, registry: MeasureRegistry) -> None:
        """Test that sizing the set freezes the registry."""
        accumulators = AccumulatorSet(registry)

        assert registry.closed
        assert len(accumulators) == 2
        assert accumulators.is_empty()

    def test_accumulate_routes_values_by_handle(self, registry: MeasureRegistry) -> None:
        """Test that each handle updates its own accumulator."""
        accumulators = AccumulatorSet(registry)

        for x in SEQUENCE:
            accumulators.accumulate(0, x)
            accumulators.accumulate(1, x**2)

        assert accumulators[0].count == 5
        assert accumulators[0].mean == pytest.approx(0.5)
        assert accumulators[1].mean == pytest.approx(0.33)
        assert accumulators.samples_processed == 5

    def test_accumulate_with_unknown_handle_raises_error(self, registry: MeasureRegistry) -> None:
        """Test that out-of-range handles are rejected."""
        accumulators = AccumulatorSet(registry)

        with pytest.raises(UnknownMeasureError):
            accumulators.accumulate(2, 1.0)

    def test_accumulate_non_finite_reports_handle(self, registry: MeasureRegistry) -> None:
        """Test that the error raised by the set names the measure handle."""
        accumulators = AccumulatorSet(registry)

        with pytest.raises(InvalidMeasurementError) as exc_info:
            accumulators.accumulate(1, float("nan"))

        assert exc_info.value.handle == 1
        assert math.isnan(exc_info.value.value)

    def test_items_returns_named_copies(self, registry: MeasureRegistry) -> None:
        """Test that items() is a read-only view in handle order."""
        accumulators = AccumulatorSet(registry)
        accumulators.accumulate(0, 1.0)

        items = accumulators.items()
        items[0][1].accumulate(100.0)

        assert [name for name, _ in items] == ["Mean X", "Mean X^2"]
        assert accumulators[0].count == 1

    def test_samples_processed_is_largest_count(self, registry: MeasureRegistry) -> None:
        """Test that measures recorded conditionally do not lower the count."""
        accumulators = AccumulatorSet(registry)
        accumulators.accumulate(0, 1.0)
        accumulators.accumulate(0, 2.0)
        accumulators.accumulate(1, 5.0)

        assert accumulators.samples_processed == 2

    def test_snapshot_freezes_current_segment(self, registry: MeasureRegistry) -> None:
        """Test that a snapshot is unaffected by later updates."""
        accumulators = AccumulatorSet(registry)
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for x in SEQUENCE:
            accumulators.accumulate(0, x)

        snapshot = accumulators.snapshot("node-1", start, start + timedelta(minutes=5))
        accumulators.accumulate(0, 42.0)

        assert snapshot.node_id == "node-1"
        assert snapshot.measure("Mean X").count == 5
        assert snapshot.measure("Mean X").mean == pytest.approx(0.5)
        assert snapshot.measure("Mean X^2").count == 0
        assert snapshot.registry_mapping == {"Mean X": 0, "Mean X^2": 1}

    def test_reset_zeroes_every_measure(self, registry: MeasureRegistry) -> None:
        """Test that after reset no earlier sample is reflected."""
        accumulators = AccumulatorSet(registry)
        accumulators.accumulate(0, 1.0)
        accumulators.accumulate(1, 1.0)

        accumulators.reset()

        assert accumulators.is_empty()
        assert all(acc.count == 0 for _, acc in accumulators.items())
        assert accumulators.samples_processed == 0
