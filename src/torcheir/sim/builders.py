"""Impulse-response builders: snapshot vs. interpolated geometry."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Protocol

import torch
from torch import Tensor

from ..config import IRCardinality, IRMethod, SimulationConfig, default_config
from ..logging_utils import get_logger
from ..models.results import EIRResult, ImpulseResponse, TimeVaryingResponse
from ..models.scene import Scene
from .tracer import RayTracer, TraceMode, TraceStats

logger = get_logger("sim.builders")


class ResponseBuilder(Protocol):
    """Strategy interface for building energetic responses."""

    def build(self, scene: Scene, *, duration: float = 0.0) -> EIRResult:
        """Build the response(s) covering ``duration`` seconds of audio."""


def window_instants(duration: float, interval: float) -> Tensor:
    """Window start instants ``k * interval`` covering ``[0, duration)``.

    Example:
        >>> window_instants(0.25, 0.1)
        tensor([0.0000, 0.1000, 0.2000], dtype=torch.float64)
    """
    if not interval > 0:
        raise ValueError("interval must be positive")
    if duration < 0:
        raise ValueError("duration must be non-negative")
    count = max(1, math.ceil(duration / interval - 1e-9))
    return torch.arange(count, dtype=torch.float64) * interval


@dataclass(frozen=True)
class _BuilderBase:
    n_rays: int
    cardinality: IRCardinality = IRCardinality.SINGLE
    interval: float = 0.1
    config: SimulationConfig = field(default_factory=default_config)

    method = IRMethod.SNAPSHOT

    def __post_init__(self) -> None:
        if self.n_rays <= 0:
            raise ValueError("n_rays must be positive")
        if not self.interval > 0:
            raise ValueError("interval must be positive")
        object.__setattr__(self, "cardinality", IRCardinality(self.cardinality))
        self.config.validate()

    @property
    def tracer(self) -> RayTracer:
        return RayTracer(self.config)

    def instants(self, duration: float) -> Tensor:
        if self.cardinality is IRCardinality.SINGLE:
            return torch.zeros(1, dtype=torch.float64)
        return window_instants(duration, self.interval)

    def _result(self, scene: Scene, hist: Tensor, instants: Tensor, stats) -> EIRResult:
        if self.cardinality is IRCardinality.SINGLE:
            response = ImpulseResponse(hist[0], self.config.fs, float(instants[0]))
        else:
            response = TimeVaryingResponse(hist, self.config.fs, instants)
        total = float(hist.sum(dim=-1).max()) if hist.numel() else 0.0
        if total > 1.0 + 1e-9:
            logger.warning("response energy %.6f exceeds emitted energy", total)
        return EIRResult(
            response=response,
            scene=scene,
            config=self.config,
            method=self.method,
            cardinality=self.cardinality,
            stats=stats,
        )


@dataclass(frozen=True)
class SnapshotBuilder(_BuilderBase):
    """Trace geometry frozen at each instant; one response per instant.

    Examples:
        ```python
        builder = SnapshotBuilder(n_rays=20000, cardinality="time-varying", interval=0.1)
        result = builder.build(scene, duration=1.0)
        ```
    """

    method = IRMethod.SNAPSHOT

    def build(self, scene: Scene, *, duration: float = 0.0) -> EIRResult:
        instants = self.instants(duration)
        logger.info(
            "snapshot build: %d instant(s), %d rays each", instants.numel(), self.n_rays
        )
        tracer = self.tracer
        rows = []
        stats = TraceStats()
        for t in instants.tolist():
            hist, run_stats = tracer.histogram(
                scene, n_rays=self.n_rays, emission_times=[t], mode=TraceMode.FROZEN
            )
            rows.append(hist[0])
            stats = stats + run_stats
        return self._result(scene, torch.stack(rows), instants, stats)


@dataclass(frozen=True)
class InterpolatedBuilder(_BuilderBase):
    """Trace once against continuously moving geometry.

    Rays for every window leave at the window's start in one batch, and hits
    are binned by true arrival time per emission window.
    """

    method = IRMethod.INTERPOLATED

    def build(self, scene: Scene, *, duration: float = 0.0) -> EIRResult:
        instants = self.instants(duration)
        logger.info(
            "interpolated build: %d window(s), %d rays each", instants.numel(), self.n_rays
        )
        hist, stats = self.tracer.histogram(
            scene, n_rays=self.n_rays, emission_times=instants, mode=TraceMode.CONTINUOUS
        )
        return self._result(scene, hist, instants, stats)


def resolve_builder(
    method: IRMethod | str,
    cardinality: IRCardinality | str,
    *,
    n_rays: int,
    interval: float = 0.1,
    config: SimulationConfig | None = None,
) -> SnapshotBuilder | InterpolatedBuilder:
    """Resolve the two mode enums once into a builder.

    Args:
        method: ``snapshot`` or ``interpolated``.
        cardinality: ``single`` or ``time-varying``.
        n_rays: Rays per emission instant.
        interval: Spacing of time-varying windows in seconds.
        config: Simulation settings; defaults when omitted.

    Returns:
        SnapshotBuilder or InterpolatedBuilder.

    Example:
        >>> builder = resolve_builder("snapshot", "single", n_rays=1000)
    """
    method = IRMethod(method)
    cls = SnapshotBuilder if method is IRMethod.SNAPSHOT else InterpolatedBuilder
    return cls(
        n_rays=n_rays,
        cardinality=IRCardinality(cardinality),
        interval=interval,
        config=config or default_config(),
    )
