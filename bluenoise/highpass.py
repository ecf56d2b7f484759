"""
High-pass alternative to the optimizer.

Each pass convolves the pattern with a small fixed high-pass kernel on the
torus, then re-equalises so every channel is uniform again. No
accept/reject step: every pass is applied.
"""

import numpy as np

from .histogram import unify_histogram
from .kernel import highpass_kernel
from .toroidal import Torus

DEFAULT_PASSES = 4

# Elements convolved per batch, bounds the (M, K, C) gather scratch
CONVOLVE_CHUNK = 1 << 14


def convolve_toroidal(pattern: np.ndarray, torus: Torus, offsets: np.ndarray,
                      weights: np.ndarray, chunk: int = CONVOLVE_CHUNK) -> np.ndarray:
    """Periodic convolution of every channel with one kernel."""
    n = torus.element_count
    out = np.empty((n, pattern.shape[1]), dtype=np.float32)
    for start in range(0, n, chunk):
        stop = min(start + chunk, n)
        nbr = torus.neighbors(np.arange(start, stop), offsets)
        # (M, K, C) * (K,) summed over K
        out[start:stop] = np.einsum('mkc,k->mc', pattern[nbr], weights)
    return out


def highpass_filter(pattern: np.ndarray, dimensions, passes: int = DEFAULT_PASSES) -> np.ndarray:
    """Run `passes` rounds of convolve + equalise.

    Args:
        pattern: float32 array of shape (n, channels), left untouched.
        dimensions: Grid extents, 1 to 3 of them.
        passes: Number of convolution rounds.

    Returns:
        New float32 array of shape (n, channels).
    """
    torus = Torus(dimensions)
    offsets, weights = highpass_kernel(torus.dimension_count)
    current = np.array(pattern, dtype=np.float32)
    for _ in range(passes):
        current = convolve_toroidal(current, torus, offsets, weights)
        unify_histogram(current)
    return current
