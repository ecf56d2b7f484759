"""
Rank-based histogram equalization.

See http://gpuopen.com/vdr-follow-up-fine-art-of-film-grain/
"""

import numpy as np


def unify_histogram(pattern: np.ndarray) -> np.ndarray:
    """Force an exactly uniform marginal on every channel, in place.

    Each channel is ranked on its own with a stable sort (ties keep index
    order) and value i/(n-1) is written back to the element of rank i.

    Args:
        pattern: float array of shape (n, channels).

    Returns:
        The same array, for chaining.
    """
    n = pattern.shape[0]
    if n == 1:
        pattern[:] = 0.0
        return pattern
    levels = np.arange(n, dtype=np.float32) / np.float32(n - 1)
    for channel in range(pattern.shape[1]):
        order = np.argsort(pattern[:, channel], kind='stable')
        pattern[order, channel] = levels
    return pattern
