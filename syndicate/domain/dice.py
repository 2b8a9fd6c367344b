from typing import Protocol


class RandomSource(Protocol):
    """The subset of ``numpy.random.Generator`` the game rules rely on."""

    def random(self) -> float: ...

    def integers(self, low: int, high: int) -> int: ...

    def uniform(self, low: float, high: float) -> float: ...


def d(rng: RandomSource, n: int) -> int:
    """Uniform integer in [0, n-1]. Zero when n is not positive."""
    if n <= 0:
        return 0
    return int(rng.integers(0, n))


def chance(rng: RandomSource, percent: float) -> bool:
    """True with probability ``percent`` / 100."""
    return float(rng.random()) < percent / 100


def between(rng: RandomSource, low: int, high: int) -> int:
    """Uniform integer in the inclusive range [low, high]."""
    if high <= low:
        return low
    return low + d(rng, high - low + 1)
