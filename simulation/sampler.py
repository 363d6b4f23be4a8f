"""simulation/sampler.py — The engine's single random source.

Every probabilistic decision (inter-arrival times, cache hits, spam
interception, node choice) draws from one ``Sampler`` owned by the
engine, so a seed makes a whole run reproducible.  Tests can also
subclass it to force outcomes.
"""

from __future__ import annotations
import random

from core.constants import TIME_UNITS_PER_SECOND


class Sampler:
    def __init__(self, seed: int | None = None) -> None:
        self.rng = random.Random(seed)

    def next_request(self, rate: float) -> int:
        """Time units until the next request, for ``rate`` requests/s.

        Never returns less than 1 so a stream always moves forward.
        """
        seconds = self.rng.expovariate(rate)
        return max(1, int(seconds * TIME_UNITS_PER_SECOND))

    def gen_range(self, low: int, high: int) -> int:
        """Pick an int in ``[low, high)``."""
        return self.rng.randrange(low, high)

    def gen_bool(self, chance: float) -> bool:
        """``True`` with probability *chance*."""
        if chance <= 0.0:
            return False
        if chance >= 1.0:
            return True
        return self.rng.random() < chance

    def choice(self, items: list):
        return self.rng.choice(items)
