"""Randomized timing helpers for staggering agents, portions and units."""
import random
from typing import Optional

# Fraction of an interval used as random smear on portion and unit offsets.
TIME_SHIFT = 0.1


class Jitter:
    """
    Draws random delays.

    ``jitter(interval, shift)`` returns a value in ``[0, interval * shift)``,
    and exactly ``0`` when the bound is not positive. Pass a seeded
    ``random.Random`` (or any object with ``random()``) for reproducible
    delays.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def __call__(self, interval: float, shift: float = 1.0) -> float:
        bound = interval * shift
        if bound <= 0:
            return 0.0
        return self._rng.random() * bound

    def portion_offset(self, index: int, portions_interval: float) -> float:
        """Start offset of the portion with the given 0-based index."""
        return index * portions_interval + self(portions_interval, TIME_SHIFT)

    def unit_delay(self, upload_interval: float, is_first: bool) -> float:
        """Delay before a unit in sequential delivery."""
        if is_first:
            return self(upload_interval, TIME_SHIFT)
        return upload_interval + self(upload_interval, TIME_SHIFT)


def format_elapsed(seconds: float) -> str:
    """Format seconds as hh:mm:ss."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
