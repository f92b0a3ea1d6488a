"""Token allocation from final interview scores."""
from __future__ import annotations

import math
import random
from typing import Optional

TARGET_SCORE = 8.0
JITTER_LOW = 0.85
JITTER_HIGH = 1.15
TAIL_BOOST = 0.3


def closeness(knowledge: float, vibe: float, *, sigma: float = 2.0) -> float:
    """Gaussian closeness of (knowledge, vibe) to the (8, 8) target, in (0, 1]."""

    if sigma <= 0:
        raise ValueError("sigma must be positive")
    distance_sq = (knowledge - TARGET_SCORE) ** 2 + (vibe - TARGET_SCORE) ** 2
    return math.exp(-distance_sq / sigma**2)


def allocate(
    knowledge: float,
    vibe: float,
    *,
    base: int = 800,
    sigma: float = 2.0,
    rng: Optional[random.Random] = None,
) -> int:
    """Return a non-negative integer token allocation.

    Scores near (8, 8) earn close to ``base``; scores further away shrink the
    closeness term faster than the tail multiplier can compensate. A uniform
    jitter in [0.85, 1.15] is applied last.
    """

    if base < 0:
        raise ValueError("base allocation must be non-negative")
    g = closeness(knowledge, vibe, sigma=sigma)
    multiplier = 1 + TAIL_BOOST * (1 - g)
    jitter = (rng or random).uniform(JITTER_LOW, JITTER_HIGH)
    return max(0, int(round(base * multiplier * g * jitter)))


__all__ = ["allocate", "closeness"]
