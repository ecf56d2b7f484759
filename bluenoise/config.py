"""
Configuration for blue noise generation.

All knobs of a run live in one immutable BlueNoiseConfig value, validated
once before any pattern is touched.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class ConfigError(ValueError):
    """Raised when a configuration cannot produce a correct pattern."""


class Method(Enum):
    SOLID_ANGLE = 'solid-angle'
    HIGH_PASS = 'high-pass'


# Incremental scoring pays off from about 18x18 elements upwards
DEFAULT_INCREMENTAL_THRESHOLD = 18 * 18

# High-pass kernels exist for these dimension counts only
HIGHPASS_DIMENSIONS = (1, 2, 3)


@dataclass(frozen=True)
class BlueNoiseConfig:
    dimensions: tuple[int, ...] = (128, 128)
    channels: int = 1
    radius: int = 3
    iterations: int = 256 * 1024
    incremental_threshold: int = DEFAULT_INCREMENTAL_THRESHOLD
    method: Method = Method.SOLID_ANGLE
    highpass_passes: int = 4
    seed: int | None = None
    progress_reports: int = 100

    def __post_init__(self):
        object.__setattr__(self, 'dimensions', tuple(int(d) for d in self.dimensions))
        if not isinstance(self.method, Method):
            object.__setattr__(self, 'method', Method(self.method))

    @property
    def dimension_count(self) -> int:
        return len(self.dimensions)

    @property
    def element_count(self) -> int:
        return math.prod(self.dimensions)

    @property
    def window_size(self) -> int:
        return (2 * self.radius + 1) ** self.dimension_count

    @property
    def use_incremental(self) -> bool:
        return self.element_count >= self.incremental_threshold

    def validate(self) -> BlueNoiseConfig:
        """Check every constraint the core relies on.

        Returns:
            self, so calls can be chained.

        Raises:
            ConfigError: describing the first violated constraint.
        """
        if not self.dimensions:
            raise ConfigError("at least one dimension is required")
        for d, extent in enumerate(self.dimensions):
            if extent < 1:
                raise ConfigError(f"dimension {d} has extent {extent}, must be >= 1")
        if self.channels < 1:
            raise ConfigError(f"channel count must be >= 1, got {self.channels}")
        if self.iterations < 0:
            raise ConfigError(f"iteration count must be >= 0, got {self.iterations}")
        if self.incremental_threshold < 0:
            raise ConfigError(
                f"incremental threshold must be >= 0, got {self.incremental_threshold}")

        if self.method is Method.SOLID_ANGLE:
            if self.radius < 1:
                raise ConfigError(f"neighborhood radius must be >= 1, got {self.radius}")
            smallest = min(self.dimensions)
            if self.radius >= smallest:
                raise ConfigError(
                    f"neighborhood radius {self.radius} must be smaller than every "
                    f"dimension extent (smallest is {smallest}); offsets would wrap "
                    f"more than once")
        else:
            if self.dimension_count not in HIGHPASS_DIMENSIONS:
                raise ConfigError(
                    f"high-pass method supports 1, 2 or 3 dimensions, "
                    f"got {self.dimension_count}")
            if min(self.dimensions) < 2:
                raise ConfigError(
                    "high-pass method needs every dimension extent >= 2 "
                    "for its 3-wide kernel")
            if self.highpass_passes < 1:
                raise ConfigError(
                    f"high-pass pass count must be >= 1, got {self.highpass_passes}")
        return self

    @classmethod
    def from_args(cls, args) -> BlueNoiseConfig:
        """Build a config from the generate_blue_noise argparse namespace."""
        return cls(
            dimensions=tuple(args.size),
            channels=args.channels,
            radius=args.radius,
            iterations=args.iterations,
            incremental_threshold=args.threshold,
            method=Method(args.method),
            highpass_passes=args.passes,
            seed=args.seed,
            progress_reports=0 if args.quiet else 100,
        )
