"""Rigid motions evaluated at scalar or per-ray instants."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional, Sequence, Union

import torch
from torch import Tensor

from ..util.tensor import as_tensor, as_times, as_vector, normalize


@dataclass(frozen=True)
class Pose:
    """Rigid transform ``x_world = rotation @ x_local + translation``.

    Shapes are ``(..., 3, 3)`` and ``(..., 3)``; the leading dims follow the
    times the pose was evaluated at.
    """

    rotation: Tensor
    translation: Tensor

    @classmethod
    def identity(cls, times: Tensor | float = 0.0) -> "Pose":
        times = as_times(times)
        rot = torch.eye(3, dtype=times.dtype).expand(*times.shape, 3, 3)
        return cls(rot, torch.zeros(*times.shape, 3, dtype=times.dtype))

    @classmethod
    def from_frame(cls, origin, x_axis, normal) -> "Pose":
        """Build a placement whose local x/z axes map to ``x_axis``/``normal``."""
        z, ok_z = normalize(as_vector(normal, name="normal"))
        x = as_vector(x_axis, name="x_axis")
        x = x - (x @ z) * z
        x, ok_x = normalize(x)
        if not (bool(ok_z) and bool(ok_x)):
            raise ValueError("frame axes must be non-zero and not parallel")
        y = torch.linalg.cross(z, x)
        return cls(torch.stack([x, y, z], dim=1), as_vector(origin, name="origin"))

    def apply(self, points: Tensor) -> Tensor:
        """Map local points to world coordinates."""
        return self.apply_vector(points) + self.translation

    def apply_vector(self, vectors: Tensor) -> Tensor:
        return (self.rotation @ vectors.unsqueeze(-1)).squeeze(-1)

    def to_local(self, points: Tensor) -> Tensor:
        """Map world points to local coordinates."""
        return self.to_local_vector(points - self.translation)

    def to_local_vector(self, vectors: Tensor) -> Tensor:
        return (self.rotation.transpose(-1, -2) @ vectors.unsqueeze(-1)).squeeze(-1)

    def compose(self, inner: "Pose") -> "Pose":
        """Return ``self ∘ inner`` (apply ``inner`` first)."""
        return Pose(
            self.rotation @ inner.rotation,
            self.apply_vector(inner.translation) + self.translation,
        )


@dataclass(frozen=True)
class StaticMotion:
    """Identity motion."""

    is_static = True

    def pose(self, t: Tensor | float) -> Pose:
        return Pose.identity(as_times(t))


@dataclass(frozen=True)
class LinearMotion:
    """Constant-velocity translation starting at ``start_time``.

    Example:
        >>> motion = LinearMotion(velocity=(-343.2 / 9, 0.0, 0.0))
        >>> motion.pose(1.0).translation
    """

    velocity: Tensor | Sequence[float]
    start_time: float = 0.0

    is_static = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "velocity", as_vector(self.velocity, name="velocity"))

    def pose(self, t: Tensor | float) -> Pose:
        times = as_times(t)
        base = Pose.identity(times)
        offset = (times - self.start_time).unsqueeze(-1) * self.velocity
        return Pose(base.rotation, offset)


@dataclass(frozen=True)
class RotationMotion:
    """Constant angular velocity (rad/s) about ``axis`` through ``pivot``."""

    axis: Tensor | Sequence[float]
    angular_velocity: float
    pivot: Tensor | Sequence[float] = (0.0, 0.0, 0.0)
    phase: float = 0.0

    is_static = False

    def __post_init__(self) -> None:
        axis, ok = normalize(as_vector(self.axis, name="axis"))
        if not bool(ok):
            raise ValueError("axis must be non-zero")
        object.__setattr__(self, "axis", axis)
        object.__setattr__(self, "pivot", as_vector(self.pivot, name="pivot"))

    @classmethod
    def revolutions(cls, axis, rev_per_second: float, **kwargs) -> "RotationMotion":
        return cls(axis, 2.0 * math.pi * rev_per_second, **kwargs)

    def pose(self, t: Tensor | float) -> Pose:
        times = as_times(t)
        rot = _axis_angle(self.axis, self.angular_velocity * times + self.phase)
        trans = self.pivot - (rot @ self.pivot.unsqueeze(-1)).squeeze(-1)
        return Pose(rot, trans)


@dataclass(frozen=True)
class KeyframeMotion:
    """Piecewise-linear translation through ``(time, offset)`` keyframes.

    Times before the first or after the last keyframe are clamped. When
    ``loop_duration`` is set the timeline wraps modulo it instead.

    Examples:
        ```python
        drift = KeyframeMotion(
            times=[0.0, 1.0, 2.0],
            offsets=[[0, 0, 0], [1, 0, 0], [0, 0, 0]],
            loop_duration=2.0,
        )
        drift.pose(torch.tensor([0.5, 2.5])).translation
        ```
    """

    times: Tensor | Sequence[float]
    offsets: Tensor | Sequence[Sequence[float]]
    loop_duration: Optional[float] = None

    is_static = False

    def __post_init__(self) -> None:
        times = as_tensor(self.times).reshape(-1)
        offsets = as_tensor(self.offsets)
        if times.numel() == 0:
            raise ValueError("keyframes must not be empty")
        if offsets.shape != (times.numel(), 3):
            raise ValueError("offsets must have shape (K, 3) matching times")
        if times.numel() > 1 and not bool((times[1:] > times[:-1]).all()):
            raise ValueError("keyframe times must be strictly increasing")
        if self.loop_duration is not None and not self.loop_duration > 0:
            raise ValueError("loop_duration must be positive")
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "offsets", offsets)

    def offset(self, t: Tensor | float) -> Tensor:
        times = as_times(t)
        if self.loop_duration is not None:
            times = self.times[0] + torch.remainder(
                times - self.times[0], self.loop_duration
            )
        if self.times.numel() == 1:
            return self.offsets[0].expand(*times.shape, 3).clone()
        clamped = times.clamp(self.times[0], self.times[-1])
        idx = torch.searchsorted(self.times, clamped.reshape(-1), right=True) - 1
        idx = idx.clamp(0, self.times.numel() - 2).reshape(clamped.shape)
        t0 = self.times[idx]
        t1 = self.times[idx + 1]
        w = ((clamped - t0) / (t1 - t0)).unsqueeze(-1)
        return self.offsets[idx] * (1.0 - w) + self.offsets[idx + 1] * w

    def pose(self, t: Tensor | float) -> Pose:
        times = as_times(t)
        return Pose(Pose.identity(times).rotation, self.offset(times))


Motion = Union[StaticMotion, LinearMotion, RotationMotion, KeyframeMotion]


def _axis_angle(axis: Tensor, angle: Tensor) -> Tensor:
    """Rodrigues rotation matrices for a unit axis and angles of any shape."""
    x, y, z = axis.tolist()
    k = torch.tensor(
        [[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]], dtype=axis.dtype
    )
    eye = torch.eye(3, dtype=axis.dtype)
    s = torch.sin(angle)[..., None, None]
    c = torch.cos(angle)[..., None, None]
    return eye + s * k + (1.0 - c) * (k @ k)
