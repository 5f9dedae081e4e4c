"""
Seeded pseudo-random generator for reproducible initial layouts.
"""

GLOBAL_SEED = 1893


class SeededRandom:
    """
    Linear congruential generator.

    Same seed, same sequence, on every platform: the state is a small
    integer and the arithmetic is exact.
    """

    MULTIPLIER = 9301
    INCREMENT = 49297
    MODULUS = 233280

    def __init__(self, seed: int = GLOBAL_SEED):
        self._seed = seed

    def next(self) -> float:
        """Next value in [0, 1)."""
        self._seed = (self._seed * self.MULTIPLIER + self.INCREMENT) % self.MODULUS
        return self._seed / self.MODULUS

    def range(self, low: float, high: float) -> float:
        """Value in [low, high)."""
        return low + self.next() * (high - low)
