"""
Toroidal (periodic) addressing for N-dimensional grids.

A flat index encodes grid coordinates in mixed radix with dimension 0
varying fastest: index = sum(coord[d] * stride[d]), where stride[d] is the
product of the extents of all dimensions before d.
"""

from __future__ import annotations

import numpy as np


def wrap_dimension(base: int, offset: int, extent: int) -> int:
    """Wrap base + offset into [0, extent).

    Only a single period is corrected, so |offset| must be smaller than the
    extent. Larger offsets are rejected rather than silently mis-wrapped.
    """
    if abs(offset) >= extent:
        raise ValueError(
            f"offset {offset} wraps more than once in a dimension of extent {extent}")
    pos = base + offset
    if pos < 0:
        pos += extent
    if pos > extent - 1:
        pos -= extent
    return pos


def compute_strides(dimensions) -> np.ndarray:
    strides = np.ones(len(dimensions), dtype=np.int64)
    for d in range(1, len(dimensions)):
        strides[d] = strides[d - 1] * dimensions[d - 1]
    return strides


class Torus:
    """Periodic D-dimensional grid with vectorised neighbour lookup."""

    def __init__(self, dimensions):
        self.dimensions = np.asarray(dimensions, dtype=np.int64)
        self.strides = compute_strides(self.dimensions)
        self.element_count = int(np.prod(self.dimensions))

    @property
    def dimension_count(self) -> int:
        return len(self.dimensions)

    def coords(self, indices) -> np.ndarray:
        """Flat indices -> integer coordinates, shape (..., D)."""
        indices = np.asarray(indices, dtype=np.int64)
        return (indices[..., None] // self.strides) % self.dimensions

    def index(self, coords) -> np.ndarray:
        """Coordinates of shape (..., D) -> flat indices."""
        return np.asarray(coords, dtype=np.int64) @ self.strides

    def wrap(self, coords) -> np.ndarray:
        """Vectorised wrap_dimension over the last axis.

        Inputs must already be within one period of [0, extent).
        """
        coords = np.where(coords < 0, coords + self.dimensions, coords)
        return np.where(coords > self.dimensions - 1, coords - self.dimensions, coords)

    def neighbors(self, indices, offsets) -> np.ndarray:
        """Flat indices of every offset around every source element.

        Args:
            indices: Source element indices, shape (M,).
            offsets: Integer offset vectors, shape (K, D), each |offset| < extent.

        Returns:
            int64 array of shape (M, K).
        """
        offsets = np.asarray(offsets, dtype=np.int64)
        if offsets.size and np.any(np.abs(offsets) >= self.dimensions):
            raise ValueError("offsets must be smaller than every dimension extent")
        base = self.coords(indices)
        wrapped = self.wrap(base[:, None, :] + offsets[None, :, :])
        return self.index(wrapped)
