"""Planar surface primitives and their materials.

Every primitive lives in the local plane ``z = 0`` with normal ``+z``. A
``Panel`` places a primitive in body coordinates; a ``Surface`` attaches one
or more panels to a material and a motion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

import torch
from torch import Tensor

from ..util.tensor import as_times, as_vector, normalize
from .motion import Motion, Pose, StaticMotion

_AREA_EPS = 1e-12


@dataclass(frozen=True)
class Material:
    """Acoustic material.

    ``absorption`` is the fraction of energy removed per bounce; ``diffusion``
    is the probability that a bounce scatters diffusely.
    """

    absorption: float = 0.02
    diffusion: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.absorption <= 1.0:
            raise ValueError("absorption must be in [0, 1]")
        if not 0.0 <= self.diffusion <= 1.0:
            raise ValueError("diffusion must be in [0, 1]")


CONCRETE = Material(absorption=0.02)
ROUGH_CONCRETE = Material(absorption=0.02, diffusion=0.1)


@dataclass(frozen=True)
class Rectangle:
    half_width: float
    half_height: float

    def contains(self, local: Tensor) -> Tensor:
        return (local[..., 0].abs() <= self.half_width) & (
            local[..., 1].abs() <= self.half_height
        )

    def extent(self) -> Tensor:
        hx, hy = self.half_width, self.half_height
        return torch.tensor(
            [[hx, hy, 0.0], [-hx, hy, 0.0], [-hx, -hy, 0.0], [hx, -hy, 0.0]],
            dtype=torch.float64,
        )

    @property
    def is_degenerate(self) -> bool:
        return self.half_width * self.half_height <= _AREA_EPS


@dataclass(frozen=True)
class Disc:
    radius: float

    def contains(self, local: Tensor) -> Tensor:
        return local[..., 0] ** 2 + local[..., 1] ** 2 <= self.radius**2

    def extent(self) -> Tensor:
        return Rectangle(self.radius, self.radius).extent()

    @property
    def is_degenerate(self) -> bool:
        return self.radius**2 <= _AREA_EPS


@dataclass(frozen=True)
class Triangle:
    """Triangle given by three in-plane vertices ``(3, 2)``."""

    vertices: Tensor

    def __post_init__(self) -> None:
        verts = torch.as_tensor(self.vertices, dtype=torch.float64)
        if verts.shape != (3, 2):
            raise ValueError("triangle vertices must have shape (3, 2)")
        object.__setattr__(self, "vertices", verts)

    def contains(self, local: Tensor) -> Tensor:
        a, b, c = self.vertices
        v0 = c - a
        v1 = b - a
        v2 = local[..., :2] - a
        d00 = v0 @ v0
        d01 = v0 @ v1
        d11 = v1 @ v1
        d02 = v2 @ v0
        d12 = v2 @ v1
        denom = d00 * d11 - d01 * d01
        u = (d11 * d02 - d01 * d12) / denom
        v = (d00 * d12 - d01 * d02) / denom
        return (u >= 0) & (v >= 0) & (u + v <= 1)

    def extent(self) -> Tensor:
        return torch.cat([self.vertices, torch.zeros(3, 1, dtype=torch.float64)], dim=1)

    @property
    def is_degenerate(self) -> bool:
        a, b, c = self.vertices
        ab = b - a
        ac = c - a
        return abs(float(ab[0] * ac[1] - ab[1] * ac[0])) <= _AREA_EPS


Primitive = Union[Rectangle, Disc, Triangle]


@dataclass(frozen=True)
class Panel:
    """A primitive placed in body coordinates."""

    shape: Primitive
    placement: Pose

    @property
    def is_degenerate(self) -> bool:
        return self.shape.is_degenerate


@dataclass(frozen=True)
class Composite:
    """Union of panels; the nearest part hit wins."""

    parts: tuple[Panel, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(self.parts))
        if not self.parts:
            raise ValueError("composite must have at least one part")


@dataclass(frozen=True)
class Surface:
    """Reflecting geometry with a material and an independent motion."""

    geometry: Union[Panel, Composite]
    material: Material = CONCRETE
    motion: Motion = field(default_factory=StaticMotion)
    name: str = ""

    def panels(self) -> tuple[Panel, ...]:
        if isinstance(self.geometry, Composite):
            return self.geometry.parts
        return (self.geometry,)

    def pose(self, t: Tensor | float) -> Pose:
        return self.motion.pose(t)

    def corners(self, t: Tensor | float = 0.0) -> Tensor:
        """World-space extent points of every panel at instant(s) ``t``.

        A 1D tensor of instants returns the points of all instants stacked
        as ``(len(t) * P, 3)``.
        """
        local = torch.cat([p.placement.apply(p.shape.extent()) for p in self.panels()], dim=0)
        times = as_times(t)
        pose = self.pose(times)
        if times.dim() == 0:
            return pose.apply(local)
        stacked = Pose(pose.rotation.unsqueeze(-3), pose.translation.unsqueeze(-2))
        return stacked.apply(local).reshape(-1, 3)


def _degenerate_panel(shape: Primitive) -> Panel:
    return Panel(shape, Pose.identity())


def rectangle(center, u, v) -> Panel:
    """Rectangle centered at ``center`` with half-extent vectors ``u`` and ``v``.

    The normal is ``u x v``.

    Example:
        >>> floor = rectangle((0, 0, -10), (10, 0, 0), (0, 10, 0))
    """
    u = as_vector(u, name="u")
    v = as_vector(v, name="v")
    n, ok = normalize(torch.linalg.cross(u, v))
    if not bool(ok):
        return _degenerate_panel(Rectangle(0.0, 0.0))
    u_hat, _ = normalize(u)
    v_perp = v - (v @ u_hat) * u_hat
    shape = Rectangle(float(u.norm()), float(v_perp.norm()))
    return Panel(shape, Pose.from_frame(center, u, n))


def disc(center, normal, radius: float) -> Panel:
    """Disc of ``radius`` centered at ``center`` facing ``normal``."""
    n, ok = normalize(as_vector(normal, name="normal"))
    if not bool(ok) or radius <= 0:
        return _degenerate_panel(Disc(0.0))
    helper = torch.tensor([1.0, 0.0, 0.0], dtype=torch.float64)
    if abs(float(helper @ n)) > 0.9:
        helper = torch.tensor([0.0, 1.0, 0.0], dtype=torch.float64)
    return Panel(Disc(float(radius)), Pose.from_frame(center, helper, n))


def triangle(a, b, c) -> Panel:
    """Triangle with world-space vertices; the normal is ``(b - a) x (c - a)``."""
    a = as_vector(a, name="a")
    ab = as_vector(b, name="b") - a
    ac = as_vector(c, name="c") - a
    n, ok = normalize(torch.linalg.cross(ab, ac))
    if not bool(ok):
        return _degenerate_panel(Triangle(torch.zeros(3, 2)))
    placement = Pose.from_frame(a, ab, n)
    local = placement.to_local(torch.stack([a, a + ab, a + ac]))
    return Panel(Triangle(local[:, :2]), placement)


def composite(parts: Sequence[Panel]) -> Composite:
    return Composite(tuple(parts))
