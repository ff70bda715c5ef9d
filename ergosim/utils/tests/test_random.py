"""Unit tests for ergosim.utils.random module."""

import numpy as np
import pytest

from ergosim.utils.random import (
    create_rng,
    get_rng,
    randomize_interval,
    reset_rng,
    set_random_seed,
)


class TestSetRandomSeed:
    """Tests for set_random_seed."""

    def test_seed_makes_legacy_generator_deterministic(self) -> None:
        """Test that reseeding reproduces the same draws."""
        set_random_seed(42)
        first = np.random.uniform(size=3)
        set_random_seed(42)
        second = np.random.uniform(size=3)

        assert np.array_equal(first, second)

    def test_negative_seed_raises_error(self) -> None:
        """Test seed validation."""
        with pytest.raises(ValueError):
            set_random_seed(-1)


class TestSharedRng:
    """Tests for get_rng and reset_rng."""

    def test_seed_makes_shared_generator_deterministic(self) -> None:
        """Test that sample draws follow set_random_seed."""
        set_random_seed(7)
        first = get_rng().uniform(size=3)
        set_random_seed(7)
        second = get_rng().uniform(size=3)

        assert np.array_equal(first, second)

    def test_get_rng_returns_same_generator(self) -> None:
        """Test that draws continue one stream until it is reset."""
        reset_rng(1)

        assert get_rng() is get_rng()

    def test_reset_replaces_generator(self) -> None:
        """Test that a reset starts a new stream."""
        before = get_rng()

        after = reset_rng()

        assert after is not before
        assert get_rng() is after


class TestCreateRng:
    """Tests for create_rng."""

    def test_same_seed_gives_same_stream(self) -> None:
        """Test reproducibility of seeded generators."""
        assert create_rng(5).integers(0, 1000) == create_rng(5).integers(0, 1000)

    def test_unseeded_generator(self) -> None:
        """Test that None draws fresh entropy."""
        assert isinstance(create_rng(), np.random.Generator)

    def test_negative_seed_raises_error(self) -> None:
        """Test seed validation."""
        with pytest.raises(ValueError):
            create_rng(-5)


class TestRandomizeInterval:
    """Tests for randomize_interval."""

    def test_interval_within_bounds(self) -> None:
        """Test the range of the randomized interval."""
        rng = create_rng(1)

        values = {randomize_interval(10.0, 0.5, rng) for _ in range(500)}

        assert values == {float(v) for v in range(5, 16)}

    def test_lower_bound_is_at_least_one_second(self) -> None:
        """Test that short intervals never randomize to zero."""
        rng = create_rng(2)

        values = {randomize_interval(1.0, 0.9, rng) for _ in range(200)}

        assert min(values) >= 1.0
        assert max(values) <= 2.0

    def test_zero_randomization_returns_rounded_interval(self) -> None:
        """Test r=0."""
        assert randomize_interval(300.0, 0.0, create_rng(3)) == 300.0

    @pytest.mark.parametrize("interval, randomization", [(0.0, 0.5), (-1.0, 0.5), (10.0, 1.0), (10.0, -0.1)])
    def test_invalid_arguments_raise_error(self, interval: float, randomization: float) -> None:
        """Test argument validation."""
        with pytest.raises(ValueError):
            randomize_interval(interval, randomization, create_rng(0))
