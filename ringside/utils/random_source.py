"""
Injectable randomness for the scoring formulas.

Every random draw in the engine goes through a RandomSource so tests can pin
values with a stub that implements the same single method.
"""

import random
from typing import Optional, Protocol

class RandomSource(Protocol):
    """Anything that can draw a uniform float in [a, b]."""

    def uniform(self, a: float, b: float) -> float:
        ...

class SystemRandomSource:
    """Production random source backed by random.Random"""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)
