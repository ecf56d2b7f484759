"""
Precomputed neighbourhood kernels.

KernelWindow holds every offset of a (2R+1)^D hypercube around the origin,
ordered by the same mixed-radix encoding as grid indices (dimension 0
fastest), together with its squared Euclidean distance. The high-pass
convolution weights below use the same 3^D ordering.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class KernelWindow:
    radius: int
    dimension_count: int
    offsets: np.ndarray     # (K, D) int64
    weights: np.ndarray     # (K,) float32, squared distance of each offset

    @property
    def size(self) -> int:
        return len(self.offsets)

    @property
    def center(self) -> int:
        """Position of the zero offset in the table."""
        return (self.size - 1) // 2


def window_offsets(radius: int, dimension_count: int) -> np.ndarray:
    """All offset vectors of a radius-R hypercube, dimension 0 fastest."""
    width = 2 * radius + 1
    k = np.arange(width ** dimension_count, dtype=np.int64)
    place = width ** np.arange(dimension_count, dtype=np.int64)
    return (k[:, None] // place) % width - radius


def build_kernel_window(radius: int, dimension_count: int) -> KernelWindow:
    offsets = window_offsets(radius, dimension_count)
    weights = np.sum(offsets * offsets, axis=1).astype(np.float32)
    offsets.setflags(write=False)
    weights.setflags(write=False)
    return KernelWindow(radius, dimension_count, offsets, weights)


# Discrete high-pass (negated blur + centre tap) kernels, sum to zero
HIGHPASS_WEIGHTS = {
    1: np.array([-1, 2, -1], dtype=np.float32),
    2: np.array([-1, -2, -1,
                 -2, 12, -2,
                 -1, -2, -1], dtype=np.float32),
    3: np.array([-1, -2, -1,
                 -2, -4, -2,
                 -1, -2, -1,

                 -2, -4, -2,
                 -4, 56, -4,
                 -2, -4, -2,

                 -1, -2, -1,
                 -2, -4, -2,
                 -1, -2, -1], dtype=np.float32),
}


def highpass_kernel(dimension_count: int) -> tuple[np.ndarray, np.ndarray]:
    """Offsets and weights of the 3^D high-pass kernel."""
    if dimension_count not in HIGHPASS_WEIGHTS:
        raise ValueError(f"no high-pass kernel for {dimension_count} dimensions")
    return window_offsets(1, dimension_count), HIGHPASS_WEIGHTS[dimension_count]
