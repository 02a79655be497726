"""Scene, motion and result models."""

from .motion import KeyframeMotion, LinearMotion, Motion, Pose, RotationMotion, StaticMotion
from .results import (
    EIRResult,
    EnergyBin,
    HitBatch,
    HitEvent,
    ImpulseResponse,
    Response,
    TimeVaryingResponse,
)
from .scene import Emitter, Receiver, Scene
from .surfaces import (
    CONCRETE,
    ROUGH_CONCRETE,
    Composite,
    Disc,
    Material,
    Panel,
    Rectangle,
    Surface,
    Triangle,
    composite,
    disc,
    rectangle,
    triangle,
)

__all__ = [
    "CONCRETE",
    "Composite",
    "Disc",
    "EIRResult",
    "Emitter",
    "EnergyBin",
    "HitBatch",
    "HitEvent",
    "ImpulseResponse",
    "KeyframeMotion",
    "LinearMotion",
    "Material",
    "Motion",
    "Panel",
    "Pose",
    "ROUGH_CONCRETE",
    "Receiver",
    "Rectangle",
    "Response",
    "RotationMotion",
    "Scene",
    "StaticMotion",
    "Surface",
    "Triangle",
    "TimeVaryingResponse",
    "composite",
    "disc",
    "rectangle",
    "triangle",
]
