"""Segment intersection against moving panels and the receiver sphere."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import torch
from torch import Tensor

from ..models.motion import Motion, Pose
from ..models.scene import Receiver
from ..models.surfaces import Panel
from .roots import solve_arrival_time

_PARALLEL_EPS = 1e-12


@dataclass(frozen=True)
class Facet:
    """One panel of a surface, flattened for tracing."""

    surface_index: int
    panel: Panel
    motion: Motion
    absorption: float
    diffusion: float

    def pose(self, t: Tensor | float) -> Pose:
        return self.motion.pose(t).compose(self.panel.placement)


@dataclass(frozen=True)
class SegmentHits:
    """Per-ray arrival on one target; ``failed`` marks root-finder misses."""

    time: Tensor
    valid: Tensor
    failed: Tensor
    normal: Optional[Tensor] = None


def _pose_for(facet: Facet, times: Tensor) -> Pose:
    if getattr(facet.motion, "is_static", False):
        return facet.pose(0.0)
    return facet.pose(times)


def intersect_facet(
    facet: Facet,
    origins: Tensor,
    directions: Tensor,
    t_start: Tensor,
    speed: float,
    *,
    freeze: Optional[Tensor] = None,
    max_iter: int = 50,
    tol: float = 1e-10,
    min_distance: float = 1e-7,
) -> SegmentHits:
    """Arrival of each ray on ``facet``.

    Args:
        facet: Panel with its surface motion.
        origins: Ray origins of shape ``(N, 3)``.
        directions: Unit ray directions of shape ``(N, 3)``.
        t_start: Segment start times of shape ``(N,)``.
        speed: Propagation speed in m/s.
        freeze: Optional per-ray instants at which the panel is posed instead
            of the solved arrival time.
        max_iter: Root finder iteration bound.
        tol: Root finder residual tolerance in seconds.
        min_distance: Hits closer than this (meters) are ignored.

    Returns:
        SegmentHits with arrival times, a hit mask, root-finder failures and
        the panel normal facing against each ray.
    """

    def distance(t: Tensor) -> tuple[Tensor, Tensor]:
        pose = _pose_for(facet, t if freeze is None else freeze)
        o = pose.to_local(origins)
        d = pose.to_local_vector(directions)
        dz = d[..., 2]
        ok = dz.abs() > _PARALLEL_EPS
        dist = -o[..., 2] / torch.where(ok, dz, torch.ones_like(dz))
        return dist, ok

    root = solve_arrival_time(distance, t_start, speed, max_iter=max_iter, tol=tol)
    pose = _pose_for(facet, root.time if freeze is None else freeze)
    dist = (root.time - t_start) * speed
    points = origins + directions * dist.unsqueeze(-1)
    inside = facet.panel.shape.contains(pose.to_local(points))
    valid = root.converged & (dist > min_distance) & inside
    normal = pose.rotation[..., :, 2].expand_as(directions)
    flip = (normal * directions).sum(-1, keepdim=True) > 0
    normal = torch.where(flip, -normal, normal)
    return SegmentHits(time=root.time, valid=valid, failed=root.failed, normal=normal)


def intersect_receiver(
    receiver: Receiver,
    origins: Tensor,
    directions: Tensor,
    t_start: Tensor,
    speed: float,
    *,
    freeze: Optional[Tensor] = None,
    max_iter: int = 50,
    tol: float = 1e-10,
    min_distance: float = 1e-7,
) -> SegmentHits:
    """Entry of each ray into the receiver's capture sphere.

    Rays passing outside the sphere are tracked against their point of
    closest approach, which keeps the iteration continuous; the capture
    test is applied at the solved instant. Rays starting inside the sphere
    are not captured.

    Args:
        receiver: Capture sphere with its motion.
        origins: Ray origins of shape ``(N, 3)``.
        directions: Unit ray directions of shape ``(N, 3)``.
        t_start: Segment start times of shape ``(N,)``.
        speed: Propagation speed in m/s.
        freeze: Optional per-ray instants at which the receiver is posed.
        max_iter: Root finder iteration bound.
        tol: Root finder residual tolerance in seconds.
        min_distance: Entries closer than this (meters) are ignored.

    Returns:
        SegmentHits with entry times, a capture mask and root-finder failures.
    """
    r2 = receiver.radius**2

    def geometry(t: Tensor) -> tuple[Tensor, Tensor]:
        center = receiver.position_at(t if freeze is None else freeze)
        oc = center - origins
        proj = (oc * directions).sum(-1)
        perp2 = (oc * oc).sum(-1) - proj * proj
        return proj, perp2

    def distance(t: Tensor) -> tuple[Tensor, Tensor]:
        proj, perp2 = geometry(t)
        dist = proj - torch.sqrt(torch.clamp(r2 - perp2, min=0.0))
        return dist, torch.isfinite(dist)

    root = solve_arrival_time(distance, t_start, speed, max_iter=max_iter, tol=tol)
    proj, perp2 = geometry(root.time)
    dist = (root.time - t_start) * speed
    valid = root.converged & (perp2 <= r2) & (dist > min_distance)
    return SegmentHits(time=root.time, valid=valid, failed=root.failed)
