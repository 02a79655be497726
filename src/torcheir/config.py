from __future__ import annotations

"""Simulation configuration for torcheir."""

from dataclasses import dataclass, replace
from enum import Enum
import math
from typing import Optional

DEFAULT_SPEED_OF_SOUND = 343.2
DEFAULT_SAMPLE_RATE = 44100
DEFAULT_ENERGY_THRESHOLD = 5e-5


class IRMethod(str, Enum):
    """How moving geometry is sampled while building responses."""

    SNAPSHOT = "snapshot"
    INTERPOLATED = "interpolated"


class IRCardinality(str, Enum):
    """Whether one response covers the whole signal or one per window."""

    SINGLE = "single"
    TIME_VARYING = "time-varying"


@dataclass(frozen=True)
class SimulationConfig:
    """Configuration values for ray tracing and response building.

    ``energy_threshold`` is relative to a ray's initial energy.
    ``tmax`` bounds the response length in seconds after each emission.

    Example:
        >>> cfg = SimulationConfig(fs=16000, tmax=0.5, seed=3)
        >>> cfg.validate()
    """

    speed_of_sound: float = DEFAULT_SPEED_OF_SOUND
    fs: float = DEFAULT_SAMPLE_RATE
    tmax: float = 1.0
    seed: int = 0
    energy_threshold: float = DEFAULT_ENERGY_THRESHOLD
    max_bounces: int = 1000
    ray_chunk_size: int = 4096
    num_workers: int = 1
    max_iter: int = 50
    tol: float = 1e-10
    min_distance: float = 1e-7
    bounds_padding: float = 1.0

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.speed_of_sound > 0:
            raise ValueError("speed_of_sound must be positive")
        if not self.fs > 0:
            raise ValueError("fs must be positive")
        if not self.tmax > 0 or not math.isfinite(self.tmax):
            raise ValueError("tmax must be positive and finite")
        if self.seed < 0:
            raise ValueError("seed must be non-negative")
        if not 0 <= self.energy_threshold < 1:
            raise ValueError("energy_threshold must be in [0, 1)")
        if self.max_bounces < 0:
            raise ValueError("max_bounces must be non-negative")
        if self.ray_chunk_size <= 0:
            raise ValueError("ray_chunk_size must be positive")
        if self.num_workers <= 0:
            raise ValueError("num_workers must be positive")
        if self.max_iter <= 0:
            raise ValueError("max_iter must be positive")
        if not self.tol > 0:
            raise ValueError("tol must be positive")
        if self.min_distance < 0:
            raise ValueError("min_distance must be non-negative")
        if self.bounds_padding < 0:
            raise ValueError("bounds_padding must be non-negative")

    @property
    def n_bins(self) -> int:
        """Number of histogram bins covering [0, tmax]."""
        return int(math.ceil(self.tmax * self.fs)) + 1

    def replace(self, **kwargs) -> "SimulationConfig":
        """Return a new config with updated fields."""
        new_cfg = replace(self, **kwargs)
        new_cfg.validate()
        return new_cfg


def default_config() -> SimulationConfig:
    """Return the default simulation configuration.

    Example:
        >>> cfg = default_config()
    """
    cfg = SimulationConfig()
    cfg.validate()
    return cfg
