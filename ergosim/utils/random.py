"""Random number generation utilities for ergosim simulations."""

import numpy as np

# Generator handed to sample code through get_rng()
_shared_rng: np.random.Generator | None = None


def set_random_seed(seed_value: int) -> None:
    """Seed the legacy numpy generator and the shared sample generator.

    :param seed_value: The seed value for random number generation
    :type seed_value: int
    :raises ValueError: If seed_value is negative

    Example:
        >>> set_random_seed(42)
        # np.random calls and get_rng() draws are now deterministic
    """
    if seed_value < 0:
        raise ValueError("Seed value must be non-negative")
    np.random.seed(seed_value)
    reset_rng(seed_value)


def reset_rng(seed_value: int | None = None) -> np.random.Generator:
    """Replace the shared sample generator.

    Forked worker processes call this so they never continue the random
    stream inherited from their parent.

    :param seed_value: Optional seed, None draws fresh OS entropy
    :type seed_value: int | None
    :return: The new shared generator
    :rtype: np.random.Generator
    """
    global _shared_rng  # pylint: disable=global-statement
    _shared_rng = create_rng(seed_value)
    return _shared_rng


def get_rng() -> np.random.Generator:
    """Return the generator samples should draw from.

    It follows ``--seed``: runs with the same seed draw the same samples.

    :return: Shared generator of this process
    :rtype: np.random.Generator
    """
    if _shared_rng is None:
        return reset_rng()
    return _shared_rng


def create_rng(seed_value: int | None = None) -> np.random.Generator:
    """Create an independent numpy generator.

    Workers of one node derive their generators from the node seed so that
    they never share a random stream.

    :param seed_value: Optional seed, None draws fresh OS entropy
    :type seed_value: int | None
    :return: A new generator
    :rtype: np.random.Generator
    :raises ValueError: If seed_value is negative
    """
    if seed_value is not None and seed_value < 0:
        raise ValueError("Seed value must be non-negative")
    return np.random.default_rng(seed_value)


def randomize_interval(
    interval_secs: float, randomization: float, rng: np.random.Generator
) -> float:
    """Draw a whole number of seconds around a nominal interval.

    The result is uniform on ``[max(1, round(s * (1 - r))), round(s * (1 + r))]``
    so that nodes started at the same moment spread their exports out.

    :param interval_secs: Nominal interval ``s`` in seconds
    :type interval_secs: float
    :param randomization: Relative magnitude ``r`` in ``[0, 1)``
    :type randomization: float
    :param rng: Generator to draw from
    :type rng: np.random.Generator
    :return: Randomized interval in seconds
    :rtype: float
    :raises ValueError: If the interval is not positive or r is outside [0, 1)

    Example:
        >>> interval = randomize_interval(300, 0.5, create_rng(7))
        # 150 <= interval <= 450
    """
    if interval_secs <= 0:
        raise ValueError("Interval must be positive")
    if not 0.0 <= randomization < 1.0:
        raise ValueError("Randomization must lie within [0, 1)")

    low = max(1, round(interval_secs * (1.0 - randomization)))
    high = max(low, round(interval_secs * (1.0 + randomization)))
    return float(rng.integers(low, high, endpoint=True))
