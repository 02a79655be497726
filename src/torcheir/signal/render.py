"""Auralization: responses plus dry audio to output audio."""

from __future__ import annotations

from typing import Optional

from torch import Tensor

from ..logging_utils import get_logger
from ..models.results import ImpulseResponse, Response, TimeVaryingResponse
from .dynamic import DynamicConvolver
from .static import convolve_static
from .synthesis import energy_to_amplitude

logger = get_logger("signal.render")

FINALIZE_MODES = ("clip", "normalize", "none")


def render(
    signal: Tensor,
    response: Response,
    *,
    seed: int = 0,
    crossfade: int = 0,
    num_workers: int = 1,
) -> Tensor:
    """Convolve ``signal`` with an energetic response, without scaling.

    A single response is applied with one linear time-invariant convolution.
    A time-varying response uses windows whose hop matches the spacing of
    its timestamps.

    Args:
        signal: 1D dry signal.
        response: ImpulseResponse or TimeVaryingResponse energy bins.
        seed: Seed of the amplitude sign pattern.
        crossfade: Window overlap in samples, capped at the hop.
        num_workers: Threads used for per-window convolutions.

    Returns:
        1D tensor of length ``len(signal) + n_bins - 1``.
    """
    if isinstance(response, ImpulseResponse):
        amp = energy_to_amplitude(response.energy, seed=seed)
        return convolve_static(signal, amp)
    if isinstance(response, TimeVaryingResponse):
        amps = energy_to_amplitude(response.energy, seed=seed)
        hop = _hop_samples(response, signal.numel())
        convolver = DynamicConvolver(
            hop=hop,
            crossfade=min(crossfade, hop),
            num_workers=num_workers,
        )
        return convolver.convolve(signal, amps)
    raise TypeError("response must be ImpulseResponse or TimeVaryingResponse")


def finalize(audio: Tensor, *, scaling_factor: float = 1.0, mode: str = "clip") -> Tensor:
    """Scale and bound rendered audio.

    ``clip`` limits samples to [-1, 1]; ``normalize`` rescales to a peak of
    one when the scaled signal exceeds it.

    Args:
        audio: Rendered audio.
        scaling_factor: Gain applied before bounding.
        mode: One of ``FINALIZE_MODES``.

    Returns:
        Scaled (and bounded) audio of the same shape.
    """
    if mode not in FINALIZE_MODES:
        raise ValueError(f"mode must be one of {FINALIZE_MODES}")
    out = audio * scaling_factor
    if mode == "clip":
        clipped = int((out.abs() > 1.0).sum())
        if clipped:
            logger.warning("clipping %d samples to [-1, 1]", clipped)
        return out.clamp(-1.0, 1.0)
    if mode == "normalize":
        peak = float(out.abs().max()) if out.numel() else 0.0
        if peak > 1.0:
            out = out / peak
    return out


def auralize(
    signal: Tensor,
    response: Response,
    *,
    scaling_factor: float = 10000.0,
    mode: str = "clip",
    seed: int = 0,
    crossfade: int = 0,
    num_workers: int = 1,
    trim: Optional[int] = None,
) -> Tensor:
    """Render, scale and bound audio.

    Args:
        signal: 1D dry signal.
        response: Single or time-varying energetic response.
        scaling_factor: Gain applied after convolution.
        mode: Bounding mode passed to :func:`finalize`.
        seed: Seed of the amplitude sign pattern.
        crossfade: Window overlap in samples.
        num_workers: Threads used for per-window convolutions.
        trim: Optional output length in samples.

    Returns:
        1D output audio.

    Examples:
        ```python
        wet = auralize(dry, result.response, scaling_factor=10000, crossfade=441)
        ```
    """
    out = render(signal, response, seed=seed, crossfade=crossfade, num_workers=num_workers)
    if trim is not None:
        out = out[:trim]
    return finalize(out, scaling_factor=scaling_factor, mode=mode)


def _hop_samples(response: TimeVaryingResponse, n_samples: int) -> int:
    if len(response) < 2:
        return max(1, n_samples)
    step = float(response.timestamps[1] - response.timestamps[0])
    return max(1, int(round(step * response.fs)))
