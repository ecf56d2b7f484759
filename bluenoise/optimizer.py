"""
Blue noise by energy minimisation (solid-angle method).

Starting from equalised white noise, repeatedly swap 1-3 random element
pairs and keep the swap only if the total energy drops. Two equivalent
drivers exist:

- IncrementalOptimizer rescores just the neighbourhoods touched by the
  swaps, using a working buffer and a committed shadow buffer.
- GlobalRecomputeOptimizer rescores the whole grid each iteration; cheaper
  for small grids and the reference the incremental path must agree with.

Only swaps are ever applied, so the value multiset never changes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import numpy as np

from .config import BlueNoiseConfig, ConfigError, Method
from .energy import EnergyScorer, check_score
from .highpass import highpass_filter
from .histogram import unify_histogram
from .kernel import build_kernel_window
from .rng import RandomSource
from .toroidal import Torus


class TouchedSet:
    """Indices whose energy must be rescored, deduplicated by a bitmap."""

    def __init__(self, element_count: int):
        self._bits = np.zeros(element_count, dtype=bool)
        self._chunks: list[np.ndarray] = []

    def mark(self, indices):
        indices = np.unique(np.asarray(indices, dtype=np.int64))
        fresh = indices[~self._bits[indices]]
        if fresh.size:
            self._bits[fresh] = True
            self._chunks.append(fresh)

    def indices(self) -> np.ndarray:
        if not self._chunks:
            return np.empty(0, dtype=np.int64)
        return np.concatenate(self._chunks)

    def clear(self):
        for chunk in self._chunks:
            self._bits[chunk] = False
        self._chunks.clear()

    def __contains__(self, index) -> bool:
        return bool(self._bits[index])

    def __len__(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)


class ProgressReporter:
    """Prints the running score and an ETA every total/reports iterations."""

    def __init__(self, total: int, reports: int = 100):
        self.total = total
        self.every = max(1, total // reports)
        self._start = time.monotonic()

    def __call__(self, iteration: int, score: float):
        if iteration == 0 or iteration % self.every:
            return
        elapsed = time.monotonic() - self._start
        pct = iteration / self.total
        remaining = elapsed / pct * (1 - pct)
        print(f"{iteration}/{self.total} best score: {score:.6f} eta: {int(remaining)}s")


def swap_elements(pattern: np.ndarray, swaps):
    """Exchange full channel vectors for each (from, to) pair, in order."""
    for src, dst in swaps:
        pattern[[src, dst]] = pattern[[dst, src]]


class _Optimizer:
    score: float
    accepted: int

    def step(self) -> bool:
        raise NotImplementedError

    @property
    def pattern(self) -> np.ndarray:
        raise NotImplementedError

    def run(self, iterations: int, progress=None) -> np.ndarray:
        for iteration in range(iterations):
            self.step()
            if progress is not None:
                progress(iteration, self.score)
        return self.pattern


class IncrementalOptimizer(_Optimizer):
    def __init__(self, pattern: np.ndarray, scorer: EnergyScorer, rng: RandomSource):
        self.scorer = scorer
        self.rng = rng
        self.working = pattern
        self.shadow = pattern.copy()
        self.touched = TouchedSet(scorer.torus.element_count)
        self.score = scorer.total_score(pattern)
        if __debug__:
            check_score(self.score, "initial score")
        self.accepted = 0
        self.last_delta = 0.0

    @property
    def pattern(self) -> np.ndarray:
        return self.working

    def step(self) -> bool:
        """Propose one batch of swaps; commit it if the energy drops.

        Returns:
            True if the swaps were kept.
        """
        torus = self.scorer.torus
        swaps = self.rng.propose_swaps(torus.element_count)
        swapped = np.array(swaps, dtype=np.int64).ravel()

        self.touched.mark(torus.neighbors(np.unique(swapped), self.scorer.window.offsets).ravel())
        touched = self.touched.indices()

        score_remove = self.scorer.score(self.shadow, touched)
        swap_elements(self.working, swaps)
        score_add = self.scorer.score(self.working, touched)
        self.touched.clear()

        delta = score_add - score_remove
        self.last_delta = delta
        if delta < 0:
            self.score += delta
            self.shadow[swapped] = self.working[swapped]
            self.accepted += 1
            if __debug__:
                check_score(self.score, "running score")
            return True

        self.working[swapped] = self.shadow[swapped]
        return False


class GlobalRecomputeOptimizer(_Optimizer):
    def __init__(self, pattern: np.ndarray, scorer: EnergyScorer, rng: RandomSource):
        self.scorer = scorer
        self.rng = rng
        self.buffers = [pattern, pattern.copy()]
        self.current = 0
        self.score = scorer.total_score(pattern)
        if __debug__:
            check_score(self.score, "initial score")
        self.accepted = 0

    @property
    def pattern(self) -> np.ndarray:
        return self.buffers[self.current]

    def step(self) -> bool:
        current = self.buffers[self.current]
        self.buffers[self.current ^ 1][:] = current

        swap_elements(current, self.rng.propose_swaps(self.scorer.torus.element_count))
        score = self.scorer.total_score(current)
        if __debug__:
            check_score(score)

        if score < self.score:
            self.score = score
            self.accepted += 1
            return True
        # previous buffer becomes current again
        self.current ^= 1
        return False


def make_scorer(config: BlueNoiseConfig) -> EnergyScorer:
    window = build_kernel_window(config.radius, config.dimension_count)
    return EnergyScorer(Torus(config.dimensions), window, config.channels)


def make_optimizer(pattern: np.ndarray, config: BlueNoiseConfig, rng: RandomSource):
    """Pick the incremental or global driver by grid size."""
    scorer = make_scorer(config)
    if config.use_incremental:
        return IncrementalOptimizer(pattern, scorer, rng)
    return GlobalRecomputeOptimizer(pattern, scorer, rng)


def as_pattern(values, config: BlueNoiseConfig) -> np.ndarray:
    """Copy a flat or (n, C) value array into a float32 (n, C) pattern."""
    values = np.asarray(values)
    n, channels = config.element_count, config.channels
    if values.shape not in ((n, channels), (n * channels,)):
        raise ConfigError(
            f"pattern of shape {values.shape} does not match {n} elements "
            f"x {channels} channels")
    return np.array(values, dtype=np.float32).reshape(n, channels)


def _progress(config: BlueNoiseConfig, verbose: bool):
    if not verbose or config.progress_reports <= 0 or config.iterations == 0:
        return None
    return ProgressReporter(config.iterations, config.progress_reports)


def _solid_angle(pattern, config, rng, verbose):
    optimizer = make_optimizer(pattern, config, rng)
    optimizer.run(config.iterations, _progress(config, verbose))
    return optimizer


def _high_pass(pattern, config, rng, verbose):
    return highpass_filter(pattern, config.dimensions, config.highpass_passes)


METHODS = {
    Method.SOLID_ANGLE: _solid_angle,
    Method.HIGH_PASS: _high_pass,
}


def optimize(initial_pattern, config: BlueNoiseConfig, rng: RandomSource | None = None,
             verbose: bool = False) -> np.ndarray:
    """Turn an equalised pattern into blue noise.

    Args:
        initial_pattern: Flat array of element_count * channels values, or
            the same values shaped (element_count, channels). Not modified.
        config: Run configuration, validated before anything else happens.
        rng: Random source for swap proposals (default: seeded from config).
        verbose: Print progress while optimising.

    Returns:
        float32 array of shape (element_count, channels).
    """
    config.validate()
    pattern = as_pattern(initial_pattern, config)
    if rng is None:
        rng = RandomSource(config.seed)
    result = METHODS[config.method](pattern, config, rng, verbose)
    return result.pattern if isinstance(result, _Optimizer) else result


@dataclass
class GenerationResult:
    config: BlueNoiseConfig
    initial: np.ndarray             # equalised white noise
    pattern: np.ndarray             # final blue noise, (element_count, channels)
    initial_score: float | None = None
    final_score: float | None = None
    accepted: int | None = None

    @property
    def values(self) -> np.ndarray:
        """Flat value array, element_count * channels long."""
        return self.pattern.ravel()


def generate(config: BlueNoiseConfig, rng: RandomSource | None = None,
             verbose: bool = False) -> GenerationResult:
    """Full pipeline: white noise -> histogram equalisation -> chosen method."""
    config.validate()
    if rng is None:
        rng = RandomSource(config.seed)

    pattern = rng.uniform((config.element_count, config.channels))
    unify_histogram(pattern)
    initial = pattern.copy()

    if config.method is Method.HIGH_PASS:
        final = highpass_filter(pattern, config.dimensions, config.highpass_passes)
        return GenerationResult(config, initial, final)

    optimizer = make_optimizer(pattern, config, rng)
    initial_score = optimizer.score
    optimizer.run(config.iterations, _progress(config, verbose))
    return GenerationResult(config, initial, optimizer.pattern, initial_score,
                            optimizer.score, optimizer.accepted)
