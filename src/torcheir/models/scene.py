"""Scene container: surfaces plus one emitter and one receiver."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Sequence

import torch
from torch import Tensor

from ..util.tensor import as_vector
from .motion import Motion, StaticMotion
from .surfaces import Surface

DEFAULT_RECEIVER_RADIUS = 0.1
BOUNDS_SAMPLE_STEP = 0.01


@dataclass(frozen=True)
class Emitter:
    """Point emitter.

    A directional emitter samples rays inside a cone of half angle
    ``cone_angle`` (radians) aimed at the receiver's position at emission.
    """

    position: Tensor | Sequence[float]
    motion: Motion = field(default_factory=StaticMotion)
    directional: bool = False
    cone_angle: float = math.radians(5.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", as_vector(self.position, name="emitter"))
        if self.directional and not 0.0 < self.cone_angle <= math.pi:
            raise ValueError("cone_angle must be in (0, pi]")

    def position_at(self, t: Tensor | float) -> Tensor:
        return self.motion.pose(t).apply(self.position)


@dataclass(frozen=True)
class Receiver:
    """Spherical receiver of ``radius`` meters centered at ``position``."""

    position: Tensor | Sequence[float]
    radius: float = DEFAULT_RECEIVER_RADIUS
    motion: Motion = field(default_factory=StaticMotion)

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", as_vector(self.position, name="receiver"))

    def position_at(self, t: Tensor | float) -> Tensor:
        return self.motion.pose(t).apply(self.position)


@dataclass(frozen=True)
class Scene:
    """Read-only scene queried at arbitrary instants.

    Example:
        >>> scene = Scene(surfaces=walls, emitter=Emitter((0, 0, 2)), receiver=Receiver((0, 0, 0)))
        >>> scene.validate()
    """

    surfaces: tuple[Surface, ...]
    emitter: Emitter
    receiver: Receiver
    name: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "surfaces", tuple(self.surfaces))

    def validate(self) -> None:
        """Validate component types; degenerate geometry is left to the tracer."""
        if not isinstance(self.emitter, Emitter):
            raise TypeError("emitter must be an Emitter")
        if not isinstance(self.receiver, Receiver):
            raise TypeError("receiver must be a Receiver")
        for surface in self.surfaces:
            if not isinstance(surface, Surface):
                raise TypeError("surfaces must contain Surface instances")

    @property
    def is_static(self) -> bool:
        motions = [s.motion for s in self.surfaces]
        motions += [self.emitter.motion, self.receiver.motion]
        return all(getattr(m, "is_static", False) for m in motions)

    def bounds(
        self,
        padding: float = 1.0,
        span: tuple[float, float] = (0.0, 0.0),
        step: float = BOUNDS_SAMPLE_STEP,
    ) -> tuple[Tensor, Tensor]:
        """Axis-aligned box around all geometry over ``span``, padded on each side.

        Moving objects are posed every ``step`` seconds across ``span``
        (both ends included), so the box covers everything the scene sweeps
        during that interval up to the motion within one step.

        Args:
            padding: Margin in meters added on every side.
            span: ``(start, end)`` instants in seconds.
            step: Sampling interval in seconds for moving objects.

        Returns:
            ``(lo, hi)`` corners of the box.
        """
        start, end = float(span[0]), float(span[1])
        if end < start:
            raise ValueError("span end must not precede its start")
        if step <= 0:
            raise ValueError("step must be positive")
        n = max(2, math.ceil((end - start) / step) + 1)
        sampled = torch.linspace(start, end, n, dtype=torch.float64)
        at_start = torch.tensor(start, dtype=torch.float64)

        def times_for(motion: Motion) -> Tensor:
            return at_start if getattr(motion, "is_static", False) else sampled

        pts = [
            self.emitter.position_at(times_for(self.emitter.motion)).reshape(-1, 3),
            self.receiver.position_at(times_for(self.receiver.motion)).reshape(-1, 3),
        ]
        pts += [s.corners(times_for(s.motion)) for s in self.surfaces]
        stacked = torch.cat(pts, dim=0)
        lo = stacked.min(dim=0).values - padding
        hi = stacked.max(dim=0).values + padding
        return lo, hi
