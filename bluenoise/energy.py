"""
Solid-angle energy of a pattern.

Every element pairs with each neighbour j in the kernel window (itself
excluded) and contributes

    exp(-|v_s - v_j|^C - d^2 / 2.1^2)

where |.|^C is the squared value distance raised to channels/2 and d^2 the
squared spatial distance of the offset. Lower total energy means bluer noise.

Per-element terms are float32. Sums over elements are accumulated in
float64 so large grids do not lose the small deltas the optimizer compares.
"""

from __future__ import annotations

import numpy as np

from .kernel import KernelWindow
from .toroidal import Torus

DISTANCE_VARIANCE = np.float32(2.1)
INV_DISTANCE_VARIANCE_SQ = np.float32(1.0) / (DISTANCE_VARIANCE * DISTANCE_VARIANCE)

# Elements scored per batch in a full rescore, bounds the (M, K, C) scratch
SCORE_CHUNK = 1 << 14


class ScoreError(ArithmeticError):
    """A score came out NaN, infinite or negative."""


def check_score(score, what: str = "score"):
    if not np.isfinite(score) or score < 0:
        raise ScoreError(f"{what} is {score}; energy terms must be finite and non-negative")


def pair_energy(value_a, value_b, distance_sq: float) -> float:
    """Single pair term, scalar reference implementation."""
    value_a = np.atleast_1d(np.asarray(value_a, dtype=np.float32))
    value_b = np.atleast_1d(np.asarray(value_b, dtype=np.float32))
    diff = value_a - value_b
    value_term = np.float32(np.sum(diff * diff, dtype=np.float32)) ** np.float32(value_a.size / 2)
    return float(np.exp(-value_term - np.float32(distance_sq) * INV_DISTANCE_VARIANCE_SQ))


class EnergyScorer:
    def __init__(self, torus: Torus, window: KernelWindow, channels: int):
        self.torus = torus
        self.window = window
        self.channels = channels
        self._exponent = np.float32(channels / 2)
        self._spatial = window.weights * INV_DISTANCE_VARIANCE_SQ

    def element_scores(self, pattern: np.ndarray, indices) -> np.ndarray:
        """Neighbourhood energy of each element in indices.

        Args:
            pattern: float32 array of shape (n, channels).
            indices: Element indices, shape (M,).

        Returns:
            float32 array of shape (M,).
        """
        indices = np.asarray(indices, dtype=np.int64)
        nbr = self.torus.neighbors(indices, self.window.offsets)
        diff = pattern[indices][:, None, :] - pattern[nbr]
        value_term = np.sum(diff * diff, axis=-1, dtype=np.float32)
        if self.channels != 2:
            value_term = value_term ** self._exponent
        terms = np.exp(-value_term - self._spatial)
        terms[nbr == indices[:, None]] = 0.0
        return terms.sum(axis=1, dtype=np.float32)

    def score(self, pattern: np.ndarray, indices) -> float:
        """Summed neighbourhood energy of a set of elements."""
        if len(indices) == 0:
            return 0.0
        return float(self.element_scores(pattern, indices).sum(dtype=np.float64))

    def total_score(self, pattern: np.ndarray) -> float:
        """Energy of the whole pattern (each pair counted from both sides)."""
        n = self.torus.element_count
        total = 0.0
        for start in range(0, n, SCORE_CHUNK):
            total += self.score(pattern, np.arange(start, min(start + SCORE_CHUNK, n)))
        return total
