"""Run orchestration: scene, tracing, export and auralization."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from torch import Tensor

from .config import IRCardinality, IRMethod, SimulationConfig
from .errors import ConfigurationError
from .io import AudioBuffer, load_wav, save_ir_csv, save_wav
from .logging_utils import LoggingConfig, get_logger
from .models.results import EIRResult
from .scenes import SCENE_IDS, build_scene
from .signal import auralize
from .signal.render import FINALIZE_MODES
from .sim.builders import resolve_builder


@dataclass(frozen=True)
class RunConfig:
    """Everything one auralization run needs.

    ``interval`` is the spacing of response instants (and the convolution
    hop) in seconds; ``crossfade`` is the window overlap in seconds.

    Example:
        >>> cfg = RunConfig(scene=2, input_path="dry.wav", output_path="wet.wav")
        >>> cfg.validate()
    """

    scene: int = 0
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    ir_path: Optional[Path] = None
    plot_path: Optional[Path] = None
    rays: int = 100000
    scaling_factor: float = 10000.0
    method: IRMethod = IRMethod.INTERPOLATED
    cardinality: IRCardinality = IRCardinality.TIME_VARYING
    seed: int = 0
    workers: int = 1
    interval: float = 0.1
    crossfade: float = 0.01
    tmax: float = 1.0
    max_bounces: int = 1000
    finalize: str = "clip"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in ("input_path", "output_path", "ir_path", "plot_path"):
            value = getattr(self, name)
            if isinstance(value, str):
                object.__setattr__(self, name, Path(value))
        try:
            object.__setattr__(self, "method", IRMethod(self.method))
            object.__setattr__(self, "cardinality", IRCardinality(self.cardinality))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def validate(self) -> None:
        """Raise ConfigurationError for any invalid value."""
        if self.scene not in SCENE_IDS:
            raise ConfigurationError(
                f"unknown scene id {self.scene!r}; expected one of {list(SCENE_IDS)}"
            )
        if self.input_path is None:
            raise ConfigurationError("input_path is required")
        if self.output_path is None:
            raise ConfigurationError("output_path is required")
        if self.rays <= 0:
            raise ConfigurationError("rays must be positive")
        if not self.scaling_factor > 0:
            raise ConfigurationError("scaling_factor must be positive")
        if self.seed < 0:
            raise ConfigurationError("seed must be non-negative")
        if self.workers <= 0:
            raise ConfigurationError("workers must be positive")
        if not self.interval > 0:
            raise ConfigurationError("interval must be positive")
        if not 0 <= self.crossfade <= self.interval:
            raise ConfigurationError("crossfade must be in [0, interval]")
        if not self.tmax > 0:
            raise ConfigurationError("tmax must be positive")
        if self.max_bounces < 0:
            raise ConfigurationError("max_bounces must be non-negative")
        if self.finalize not in FINALIZE_MODES:
            raise ConfigurationError(f"finalize must be one of {FINALIZE_MODES}")
        try:
            LoggingConfig(level=self.log_level).resolve_level()
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(str(exc)) from exc

    def replace(self, **kwargs) -> "RunConfig":
        return replace(self, **kwargs)

    def simulation_config(self, fs: float) -> SimulationConfig:
        cfg = SimulationConfig(
            fs=fs,
            tmax=self.tmax,
            seed=self.seed,
            max_bounces=self.max_bounces,
            num_workers=self.workers,
        )
        cfg.validate()
        return cfg

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Path):
                data[key] = str(value)
            elif isinstance(value, (IRMethod, IRCardinality)):
                data[key] = value.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)


@dataclass(frozen=True)
class RunResult:
    result: EIRResult
    audio: Tensor
    sample_rate: int
    output_path: Path


def run(config: RunConfig) -> RunResult:
    """Validate ``config`` and perform the whole run."""
    logger = get_logger("pipeline")
    config.validate()
    scene = build_scene(config.scene)
    logger.info("scene %d (%s): %s", config.scene, scene.name, scene.description)

    dry: AudioBuffer = load_wav(config.input_path)
    logger.info(
        "input %s: %d samples at %d Hz", config.input_path, dry.samples.numel(), dry.sample_rate
    )

    sim_cfg = config.simulation_config(dry.sample_rate)
    builder = resolve_builder(
        config.method,
        config.cardinality,
        n_rays=config.rays,
        interval=config.interval,
        config=sim_cfg,
    )
    result = builder.build(scene, duration=dry.duration)

    if config.ir_path is not None:
        save_ir_csv(config.ir_path, result.response)
    if config.plot_path is not None:
        from .plotting import save_response_plot

        save_response_plot(config.plot_path, result.response, title=scene.name)
        logger.info("wrote plot to %s", config.plot_path)

    wet = auralize(
        dry.samples,
        result.response,
        scaling_factor=config.scaling_factor,
        mode=config.finalize,
        seed=config.seed,
        crossfade=int(round(config.crossfade * dry.sample_rate)),
        num_workers=config.workers,
    )
    save_wav(config.output_path, wet, dry.sample_rate)
    logger.info("wrote %d samples to %s", wet.numel(), config.output_path)
    return RunResult(result, wet, dry.sample_rate, config.output_path)
