"""Tileable N-dimensional blue noise generation."""

from .config import BlueNoiseConfig, ConfigError, Method
from .energy import EnergyScorer, ScoreError
from .histogram import unify_histogram
from .kernel import KernelWindow, build_kernel_window
from .optimizer import (GenerationResult, GlobalRecomputeOptimizer, IncrementalOptimizer,
                        generate, optimize)
from .rng import RandomSource
from .toroidal import Torus, wrap_dimension

__all__ = [
    'BlueNoiseConfig', 'ConfigError', 'Method',
    'EnergyScorer', 'ScoreError',
    'unify_histogram',
    'KernelWindow', 'build_kernel_window',
    'GenerationResult', 'GlobalRecomputeOptimizer', 'IncrementalOptimizer', 'generate', 'optimize',
    'RandomSource',
    'Torus', 'wrap_dimension',
]
