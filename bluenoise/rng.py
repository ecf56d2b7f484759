"""
Seeded random source for pattern initialisation and swap proposals.
"""

from __future__ import annotations

import numpy as np

# Swapping 1 to 3 pairs at once lets the optimizer hop over local minima
MAX_SWAPS = 3


class RandomSource:
    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._gen = np.random.default_rng(seed)

    def uniform(self, shape) -> np.ndarray:
        """Uniform float32 reals in [0, 1)."""
        return self._gen.random(shape, dtype=np.float32)

    def swap_count(self) -> int:
        """Uniform integer in [1, MAX_SWAPS]."""
        return int(self._gen.integers(1, MAX_SWAPS + 1))

    def element_index(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        return int(self._gen.integers(0, n))

    def propose_swaps(self, n: int) -> list[tuple[int, int]]:
        """Draw 1-3 (from, to) pairs with from != to, redrawing `to` on collision."""
        if n < 2:
            raise ValueError("need at least two elements to swap")
        swaps = []
        for _ in range(self.swap_count()):
            src = self.element_index(n)
            dst = self.element_index(n)
            while src == dst:
                dst = self.element_index(n)
            swaps.append((src, dst))
        return swaps
