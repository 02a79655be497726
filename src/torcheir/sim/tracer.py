"""Stochastic ray tracer for scenes whose geometry moves during flight."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Iterator, Optional, Sequence

import torch
from torch import Tensor

from ..config import SimulationConfig, default_config
from ..logging_utils import get_logger
from ..models.results import HitBatch, HitEvent
from ..models.scene import Scene
from ..util.tensor import as_times, normalize
from .intersect import Facet, intersect_facet, intersect_receiver
from .sampling import (
    cosine_hemisphere,
    counter_uniform,
    reflect,
    uniform_cone,
    uniform_sphere,
)

logger = get_logger("sim.tracer")

_EMISSION_STREAM = 0


class TraceMode(str, Enum):
    """``FROZEN`` poses every object at a fixed instant per ray;
    ``CONTINUOUS`` poses objects at each segment's solved arrival time."""

    FROZEN = "frozen"
    CONTINUOUS = "continuous"


@dataclass
class TraceStats:
    """Counters accumulated while tracing."""

    rays: int = 0
    segments: int = 0
    surface_hits: int = 0
    receiver_hits: int = 0
    root_failures: int = 0
    escaped: int = 0
    out_of_bounds: int = 0
    skipped_rays: int = 0

    def __add__(self, other: "TraceStats") -> "TraceStats":
        return TraceStats(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )


@dataclass(frozen=True)
class _Prepared:
    facets: tuple[Facet, ...]
    absorption: Tensor
    diffusion: Tensor
    lo: Tensor
    hi: Tensor
    capture: bool


@dataclass(frozen=True)
class RayTracer:
    """Trace energy packets from the emitter and record receiver hits.

    Rays are indexed globally: with ``T`` emission instants and ``n_rays``
    rays per instant, ray ``i`` leaves at ``emission_times[i // n_rays]``
    with energy ``1 / n_rays``.

    Examples:
        ```python
        tracer = RayTracer(SimulationConfig(tmax=0.2, seed=1))
        hits = tracer.trace(scene, n_rays=10000, mode=TraceMode.FROZEN)
        hist, stats = tracer.histogram(scene, n_rays=10000, emission_times=[0.0, 0.1])
        ```
    """

    config: SimulationConfig = field(default_factory=default_config)

    def trace(
        self,
        scene: Scene,
        *,
        n_rays: int,
        emission_times: Tensor | Sequence[float] | float = 0.0,
        mode: TraceMode | str = TraceMode.CONTINUOUS,
        freeze_times: Optional[Tensor | Sequence[float]] = None,
    ) -> HitBatch:
        """Trace all rays and return every receiver hit in ray order."""
        return HitBatch.concat(
            [hits for hits, _ in self._run(scene, n_rays, emission_times, mode, freeze_times)]
        )

    def iter_hits(
        self,
        scene: Scene,
        *,
        n_rays: int,
        emission_times: Tensor | Sequence[float] | float = 0.0,
        mode: TraceMode | str = TraceMode.CONTINUOUS,
        freeze_times: Optional[Tensor | Sequence[float]] = None,
    ) -> Iterator[HitEvent]:
        """Lazily yield hits chunk by chunk."""
        for hits, _ in self._iter_chunks(scene, n_rays, emission_times, mode, freeze_times):
            yield from hits.events()

    def histogram(
        self,
        scene: Scene,
        *,
        n_rays: int,
        emission_times: Tensor | Sequence[float] | float = 0.0,
        mode: TraceMode | str = TraceMode.CONTINUOUS,
        freeze_times: Optional[Tensor | Sequence[float]] = None,
    ) -> tuple[Tensor, TraceStats]:
        """Return per-window energy histograms ``(T, n_bins)`` and trace stats.

        Each chunk is binned privately and the chunk histograms are summed in
        chunk order.

        Args:
            scene: Scene to trace.
            n_rays: Rays per emission instant.
            emission_times: Emission instants, one histogram row each.
            mode: ``TraceMode.CONTINUOUS`` or ``TraceMode.FROZEN``.
            freeze_times: Pose instants per emission in FROZEN mode; defaults
                to the emission instants.

        Returns:
            ``(hist, stats)`` with hit times binned relative to emission.
        """
        cfg = self.config
        n_windows = as_times(emission_times).reshape(-1).numel()
        hist = torch.zeros(n_windows, cfg.n_bins, dtype=torch.float64)
        stats = TraceStats()
        for hits, chunk_stats in self._run(scene, n_rays, emission_times, mode, freeze_times):
            hist += hits.histogram(fs=cfg.fs, n_bins=cfg.n_bins, n_windows=n_windows)
            stats = stats + chunk_stats
        logger.debug(
            "traced %d rays: %d segments, %d receiver hits, %d root failures",
            stats.rays,
            stats.segments,
            stats.receiver_hits,
            stats.root_failures,
        )
        return hist, stats

    def _chunk_bounds(self, total: int) -> list[tuple[int, int]]:
        size = self.config.ray_chunk_size
        return [(s, min(s + size, total)) for s in range(0, total, size)]

    def _setup(self, scene, n_rays, emission_times, mode, freeze_times):
        if n_rays <= 0:
            raise ValueError("n_rays must be positive")
        scene.validate()
        mode = TraceMode(mode)
        emit = as_times(emission_times).reshape(-1)
        freeze = None
        if mode is TraceMode.FROZEN:
            freeze = emit if freeze_times is None else as_times(freeze_times).reshape(-1)
            if freeze.numel() != emit.numel():
                raise ValueError("freeze_times must match emission_times")
        return _prepare(scene, self.config, emit, freeze), emit, freeze

    def _iter_chunks(self, scene, n_rays, emission_times, mode, freeze_times):
        prep, emit, freeze = self._setup(scene, n_rays, emission_times, mode, freeze_times)
        for start, stop in self._chunk_bounds(emit.numel() * n_rays):
            yield self._trace_chunk(scene, prep, start, stop, n_rays, emit, freeze)

    def _run(self, scene, n_rays, emission_times, mode, freeze_times):
        prep, emit, freeze = self._setup(scene, n_rays, emission_times, mode, freeze_times)
        bounds = self._chunk_bounds(emit.numel() * n_rays)
        workers = min(self.config.num_workers, len(bounds))
        if workers <= 1:
            return [
                self._trace_chunk(scene, prep, start, stop, n_rays, emit, freeze)
                for start, stop in bounds
            ]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(
                    self._trace_chunk, scene, prep, start, stop, n_rays, emit, freeze
                )
                for start, stop in bounds
            ]
            return [future.result() for future in futures]

    def _trace_chunk(
        self,
        scene: Scene,
        prep: _Prepared,
        start: int,
        stop: int,
        n_rays: int,
        emit: Tensor,
        freeze: Optional[Tensor],
    ) -> tuple[HitBatch, TraceStats]:
        cfg = self.config
        c = cfg.speed_of_sound
        stats = TraceStats(rays=stop - start)

        ray_idx = torch.arange(start, stop, dtype=torch.long)
        win = ray_idx // n_rays
        t_emit = emit[win]
        pose_t = freeze[win] if freeze is not None else None
        origin_t = t_emit if pose_t is None else pose_t

        origins = scene.emitter.position_at(origin_t)
        u = counter_uniform(cfg.seed, ray_idx, _EMISSION_STREAM, 2)
        if scene.emitter.directional:
            axis, ok = normalize(scene.receiver.position_at(origin_t) - origins)
            directions = uniform_cone(axis, scene.emitter.cone_angle, u)
            if not bool(ok.all()):
                logger.warning(
                    "emitter coincides with receiver for %d rays; skipping them",
                    int((~ok).sum()),
                )
                stats.skipped_rays += int((~ok).sum())
        else:
            directions = uniform_sphere(u)
            ok = torch.ones_like(ray_idx, dtype=torch.bool)

        e0 = 1.0 / n_rays
        state = _RayState(
            ray_idx=ray_idx[ok],
            win=win[ok],
            t_emit=t_emit[ok],
            pose_t=None if pose_t is None else pose_t[ok],
            origin=origins[ok],
            direction=directions[ok],
            time=t_emit[ok].clone(),
            energy=torch.full((int(ok.sum()),), e0, dtype=torch.float64),
        )

        hits: list[HitBatch] = []
        for bounce in range(cfg.max_bounces + 1):
            n = state.ray_idx.numel()
            if n == 0:
                break
            stats.segments += n
            best_t = torch.full((n,), float("inf"), dtype=torch.float64)
            best_n = torch.zeros(n, 3, dtype=torch.float64)
            best_f = torch.full((n,), -1, dtype=torch.long)
            for k, facet in enumerate(prep.facets):
                seg = intersect_facet(
                    facet,
                    state.origin,
                    state.direction,
                    state.time,
                    c,
                    freeze=state.pose_t,
                    max_iter=cfg.max_iter,
                    tol=cfg.tol,
                    min_distance=cfg.min_distance,
                )
                stats.root_failures += int(seg.failed.sum())
                closer = seg.valid & (seg.time < best_t)
                best_t = torch.where(closer, seg.time, best_t)
                best_n = torch.where(closer.unsqueeze(-1), seg.normal, best_n)
                best_f = torch.where(closer, torch.full_like(best_f, k), best_f)

            if prep.capture:
                rec = intersect_receiver(
                    scene.receiver,
                    state.origin,
                    state.direction,
                    state.time,
                    c,
                    freeze=state.pose_t,
                    max_iter=cfg.max_iter,
                    tol=cfg.tol,
                    min_distance=cfg.min_distance,
                )
                stats.root_failures += int(rec.failed.sum())
                rel = rec.time - state.t_emit
                caught = rec.valid & (rec.time <= best_t) & (rel <= cfg.tmax)
                if bool(caught.any()):
                    hits.append(
                        HitBatch(
                            ray_index=state.ray_idx[caught],
                            time=rel[caught],
                            energy=state.energy[caught],
                            window=state.win[caught],
                        )
                    )
                    stats.receiver_hits += int(caught.sum())

            reflected = best_f >= 0
            stats.escaped += int((~reflected).sum())
            stats.surface_hits += int(reflected.sum())
            facet_idx = best_f.clamp(min=0)
            dist = torch.where(reflected, (best_t - state.time) * c, torch.zeros_like(best_t))
            origin = state.origin + state.direction * dist.unsqueeze(-1)
            energy = state.energy * (1.0 - prep.absorption[facet_idx])

            u = counter_uniform(cfg.seed, state.ray_idx, bounce + 1, 3)
            specular = reflect(state.direction, best_n)
            diffuse = cosine_hemisphere(best_n, u[:, 1:])
            scatter = (u[:, 0] < prep.diffusion[facet_idx]).unsqueeze(-1)
            direction, _ = normalize(torch.where(scatter, diffuse, specular))

            inside = ((origin >= prep.lo) & (origin <= prep.hi)).all(dim=-1)
            stats.out_of_bounds += int((reflected & ~inside).sum())
            keep = (
                reflected
                & inside
                & (energy >= cfg.energy_threshold * e0)
                & (best_t - state.t_emit <= cfg.tmax)
                & (bounce + 1 <= cfg.max_bounces)
            )
            state = state.advance(keep, origin, direction, best_t, energy)

        if stats.root_failures:
            logger.debug("%d segment solves did not converge", stats.root_failures)
        return HitBatch.concat(hits), stats


@dataclass(frozen=True)
class _RayState:
    ray_idx: Tensor
    win: Tensor
    t_emit: Tensor
    pose_t: Optional[Tensor]
    origin: Tensor
    direction: Tensor
    time: Tensor
    energy: Tensor

    def advance(self, keep, origin, direction, time, energy) -> "_RayState":
        return _RayState(
            ray_idx=self.ray_idx[keep],
            win=self.win[keep],
            t_emit=self.t_emit[keep],
            pose_t=None if self.pose_t is None else self.pose_t[keep],
            origin=origin[keep],
            direction=direction[keep],
            time=time[keep],
            energy=energy[keep],
        )


def _prepare(
    scene: Scene, config: SimulationConfig, emit: Tensor, freeze: Optional[Tensor]
) -> _Prepared:
    facets: list[Facet] = []
    for s_idx, surface in enumerate(scene.surfaces):
        for panel in surface.panels():
            if panel.is_degenerate:
                logger.warning(
                    "skipping degenerate panel on surface %d (%s)",
                    s_idx,
                    surface.name or "unnamed",
                )
                continue
            facets.append(
                Facet(
                    surface_index=s_idx,
                    panel=panel,
                    motion=surface.motion,
                    absorption=surface.material.absorption,
                    diffusion=surface.material.diffusion,
                )
            )
    capture = scene.receiver.radius > 0
    if not capture:
        logger.warning(
            "receiver radius %.3g is not positive; no hits will be recorded",
            scene.receiver.radius,
        )
    # every pose a ray can meet
    instants = emit if freeze is None else torch.cat([emit, freeze])
    span = (float(instants.min()), float(instants.max()) + config.tmax)
    lo, hi = scene.bounds(config.bounds_padding, span=span)
    return _Prepared(
        facets=tuple(facets),
        absorption=torch.tensor([f.absorption for f in facets] or [0.0], dtype=torch.float64),
        diffusion=torch.tensor([f.diffusion for f in facets] or [0.0], dtype=torch.float64),
        lo=lo,
        hi=hi,
        capture=capture,
    )
