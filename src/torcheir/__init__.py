"""torcheir: energetic impulse responses of moving scenes by ray tracing.

Main entry points:
- scenes: ``build_scene`` / ``list_scenes`` for the canned catalog.
- tracing: ``RayTracer`` with ``TraceMode`` (frozen or continuous geometry).
- building: ``resolve_builder`` -> ``SnapshotBuilder`` / ``InterpolatedBuilder``.
- auralization: ``auralize`` with ``fft_convolve`` / ``DynamicConvolver``.
- I/O: ``load_wav`` / ``save_wav`` and ``save_ir_csv`` / ``load_ir_csv``.
"""

from .config import (
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SPEED_OF_SOUND,
    IRCardinality,
    IRMethod,
    SimulationConfig,
    default_config,
)
from .errors import AudioIOError, ConfigurationError
from .io import AudioBuffer, load_ir_csv, load_wav, save_ir_csv, save_wav
from .logging_utils import LoggingConfig, get_logger, setup_logging
from .models import (
    EIRResult,
    Emitter,
    HitBatch,
    HitEvent,
    ImpulseResponse,
    KeyframeMotion,
    LinearMotion,
    Material,
    Receiver,
    RotationMotion,
    Scene,
    StaticMotion,
    Surface,
    TimeVaryingResponse,
)
from .scenes import build_scene, list_scenes
from .signal import DynamicConvolver, auralize, energy_to_amplitude, fft_convolve
from .sim import (
    InterpolatedBuilder,
    RayTracer,
    SnapshotBuilder,
    TraceMode,
    resolve_builder,
)

__all__ = [
    "AudioBuffer",
    "AudioIOError",
    "ConfigurationError",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_SPEED_OF_SOUND",
    "DynamicConvolver",
    "EIRResult",
    "Emitter",
    "HitBatch",
    "HitEvent",
    "IRCardinality",
    "IRMethod",
    "ImpulseResponse",
    "InterpolatedBuilder",
    "KeyframeMotion",
    "LinearMotion",
    "LoggingConfig",
    "Material",
    "RayTracer",
    "Receiver",
    "RotationMotion",
    "Scene",
    "SimulationConfig",
    "SnapshotBuilder",
    "StaticMotion",
    "Surface",
    "TimeVaryingResponse",
    "TraceMode",
    "auralize",
    "build_scene",
    "default_config",
    "energy_to_amplitude",
    "fft_convolve",
    "get_logger",
    "list_scenes",
    "load_ir_csv",
    "load_wav",
    "resolve_builder",
    "save_ir_csv",
    "save_wav",
    "setup_logging",
]
