"""
Seedable uniform random source for the simulation engine.

Two modes:
- deterministic: xoshiro128** over four 32-bit words, seeded by a
  SplitMix32 expansion of a single 32-bit seed, so identical seeds
  reproduce identical draws
- non-deterministic: an instance-owned ``random.Random`` seeded from
  OS entropy

No module-level generator state; every run owns its source.
"""

import random
from typing import List, Optional

MASK32 = 0xFFFFFFFF
TWO_POW_32 = 4294967296.0

SPLITMIX_INCREMENT = 0x9E3779B9
SPLITMIX_MUL_1 = 0x21F0AAAD
SPLITMIX_MUL_2 = 0x735A2D97


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (32 - k))) & MASK32


def splitmix32(seed: int, count: int = 4) -> List[int]:
    """Expand a 32-bit seed into ``count`` well-mixed 32-bit words."""
    s = seed & MASK32
    words = []
    for _ in range(count):
        s = (s + SPLITMIX_INCREMENT) & MASK32
        t = s ^ (s >> 16)
        t = (t * SPLITMIX_MUL_1) & MASK32
        t ^= t >> 15
        t = (t * SPLITMIX_MUL_2) & MASK32
        t ^= t >> 15
        words.append(t)
    return words


class RandomSource:
    """Uniform [0, 1) draws, seeded or ambient."""

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize random source.

        Args:
            seed: If given and > 0, seed the generator and switch to
                  deterministic mode. Otherwise draws are non-deterministic.
        """
        self._state = [0, 0, 0, 0]
        self._deterministic = False
        self._system = random.Random()

        if seed:
            self.seed(seed)
            self.set_mode(True)

    @property
    def deterministic(self) -> bool:
        """Whether draws come from the seeded generator."""
        return self._deterministic

    def seed(self, value: int) -> None:
        """Re-initialize the generator state from a 32-bit seed."""
        self._state = splitmix32(value, 4)
        if not any(self._state):
            # xoshiro is stuck at the all-zero state
            self._state[0] = 1

    def set_mode(self, deterministic: bool) -> None:
        """Select the seeded generator (True) or ambient randomness (False)."""
        self._deterministic = bool(deterministic)

    def next(self) -> float:
        """Draw a uniform float in [0, 1)."""
        if not self._deterministic:
            return self._system.random()
        return self._xoshiro128ss() / TWO_POW_32

    def _xoshiro128ss(self) -> int:
        s = self._state
        result = (_rotl((s[1] * 5) & MASK32, 7) * 9) & MASK32
        t = (s[1] << 9) & MASK32

        s[2] ^= s[0]
        s[3] ^= s[1]
        s[1] ^= s[2]
        s[0] ^= s[3]
        s[2] ^= t
        s[3] = _rotl(s[3], 11)

        return result
