"""Catalog of canned scenes selected by integer id."""

from __future__ import annotations

import math
from typing import Callable, Sequence

from .config import DEFAULT_SPEED_OF_SOUND
from .errors import ConfigurationError
from .models import (
    CONCRETE,
    Emitter,
    KeyframeMotion,
    Material,
    Receiver,
    RotationMotion,
    Scene,
    Surface,
    composite,
    disc,
    rectangle,
)


def shoebox(
    lo: Sequence[float], hi: Sequence[float], material: Material = CONCRETE
) -> list[Surface]:
    """Six axis-aligned walls of the box ``[lo, hi]``.

    Example:
        >>> walls = shoebox((-10, -10, -10), (10, 10, 10))
    """
    (x0, y0, z0), (x1, y1, z1) = lo, hi
    cx, cy, cz = (x0 + x1) / 2, (y0 + y1) / 2, (z0 + z1) / 2
    hx, hy, hz = (x1 - x0) / 2, (y1 - y0) / 2, (z1 - z0) / 2
    panels = {
        "x-": rectangle((x0, cy, cz), (0, hy, 0), (0, 0, hz)),
        "x+": rectangle((x1, cy, cz), (0, hy, 0), (0, 0, hz)),
        "y-": rectangle((cx, y0, cz), (hx, 0, 0), (0, 0, hz)),
        "y+": rectangle((cx, y1, cz), (hx, 0, 0), (0, 0, hz)),
        "z-": rectangle((cx, cy, z0), (hx, 0, 0), (0, hy, 0)),
        "z+": rectangle((cx, cy, z1), (hx, 0, 0), (0, hy, 0)),
    }
    return [Surface(p, material, name=f"wall {k}") for k, p in panels.items()]


def static_cube(c: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    return Scene(
        surfaces=shoebox((-10, -10, -10), (10, 10, 10)),
        emitter=Emitter((0.0, 0.0, 2.0)),
        receiver=Receiver((0.0, 0.0, 0.0)),
        name="static_cube",
        description="20 m concrete cube, omni emitter 2 m above the receiver",
    )


def rotating_panel(c: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    panel = Surface(
        rectangle((5.0, 0.0, 0.0), (0, 2, 0), (0, 0, 2)),
        CONCRETE,
        RotationMotion.revolutions((0, 0, 1), 1.0, pivot=(5.0, 0.0, 0.0)),
        name="rotating panel",
    )
    return Scene(
        surfaces=[*shoebox((-10, -10, -10), (10, 10, 10)), panel],
        emitter=Emitter((0.0, 1.5, 0.0)),
        receiver=Receiver((0.0, -1.5, 0.0)),
        name="rotating_panel",
        description="cube with a 4 m panel spinning at 1 rev/s about a vertical axis",
    )


def _travel(velocity: Sequence[float], distance: float) -> KeyframeMotion:
    """Constant-velocity move from t=0 that halts after ``distance`` meters."""
    t_stop = distance / math.sqrt(sum(v * v for v in velocity))
    return KeyframeMotion(
        times=[0.0, t_stop], offsets=[[0.0, 0.0, 0.0], [v * t_stop for v in velocity]]
    )


def approaching_receiver(c: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    return Scene(
        surfaces=shoebox((-60, -10, -10), (60, 10, 10)),
        emitter=Emitter((-45.0, 0.0, 0.0), directional=True, cone_angle=math.radians(1.0)),
        receiver=Receiver((45.0, 0.0, 0.0), motion=_travel((-c / 9.0, 0, 0), 85.0)),
        name="approaching_receiver",
        description=(
            "long hall, receiver closing on a directional emitter at c/9 "
            "until it rests 5 m away (after about 2.2 s)"
        ),
    )


def receding_emitter(c: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    return Scene(
        surfaces=shoebox((-15, -15, -15), (15, 15, 15)),
        emitter=Emitter((0.0, 0.0, 0.0), motion=_travel((10.0, 0, 0), 12.0)),
        receiver=Receiver((-5.0, 0.0, 0.0)),
        name="receding_emitter",
        description=(
            "emitter moving away from the receiver at 10 m/s, "
            "resting 3 m from the far wall after 1.2 s"
        ),
    )


def rotating_disc(c: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    reflector = Surface(
        disc((0.0, 6.0, 0.0), (0, -1, 0), 3.0),
        CONCRETE,
        RotationMotion.revolutions((1, 0, 0), 1.0, pivot=(0.0, 6.0, 0.0)),
        name="rotating disc",
    )
    drift = KeyframeMotion(
        times=[0.0, 1.0, 2.0],
        offsets=[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]],
        loop_duration=2.0,
    )
    return Scene(
        surfaces=[*shoebox((-10, -10, -10), (10, 10, 10)), reflector],
        emitter=Emitter((-4.0, 0.0, 1.0)),
        receiver=Receiver((0.0, 0.0, 0.0), motion=drift),
        name="rotating_disc",
        description="closed cube with a spinning disc reflector and a drifting receiver",
    )


def l_room(c: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    """L-shaped room: ``[0,20]x[0,10]`` joined with ``[0,10]x[10,20]``, 5 m high."""
    h = 5.0

    def wall(x0, y0, x1, y1) -> Surface:
        center = ((x0 + x1) / 2, (y0 + y1) / 2, h / 2)
        half = ((x1 - x0) / 2, (y1 - y0) / 2, 0.0)
        return Surface(rectangle(center, half, (0, 0, h / 2)), CONCRETE, name="wall")

    def slab(z: float, name: str) -> Surface:
        parts = [
            rectangle((10.0, 5.0, z), (10, 0, 0), (0, 5, 0)),
            rectangle((5.0, 15.0, z), (5, 0, 0), (0, 5, 0)),
        ]
        return Surface(composite(parts), CONCRETE, name=name)

    walls = [
        wall(0, 0, 20, 0),
        wall(20, 0, 20, 10),
        wall(10, 10, 20, 10),
        wall(10, 10, 10, 20),
        wall(0, 20, 10, 20),
        wall(0, 0, 0, 20),
    ]
    return Scene(
        surfaces=[*walls, slab(0.0, "floor"), slab(h, "ceiling")],
        emitter=Emitter((5.0, 15.0, 2.0)),
        receiver=Receiver((17.0, 5.0, 2.0)),
        name="l_room",
        description="static L-shaped room without line of sight",
    )


_CATALOG: dict[int, Callable[[float], Scene]] = {
    0: static_cube,
    1: rotating_panel,
    2: approaching_receiver,
    3: receding_emitter,
    4: rotating_disc,
    5: l_room,
}
SCENE_IDS = tuple(sorted(_CATALOG))


def build_scene(scene_id: int, *, speed_of_sound: float = DEFAULT_SPEED_OF_SOUND) -> Scene:
    """Build catalog scene ``scene_id``.

    Example:
        >>> scene = build_scene(0)
    """
    try:
        factory = _CATALOG[int(scene_id)]
    except (KeyError, TypeError, ValueError):
        raise ConfigurationError(
            f"unknown scene id {scene_id!r}; expected one of {sorted(_CATALOG)}"
        ) from None
    return factory(speed_of_sound)


def list_scenes() -> list[tuple[int, str, str]]:
    """Return ``(id, name, description)`` for every catalog scene."""
    out = []
    for scene_id, factory in _CATALOG.items():
        scene = factory(DEFAULT_SPEED_OF_SOUND)
        out.append((scene_id, scene.name, scene.description))
    return out
