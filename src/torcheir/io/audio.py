"""WAV reading and writing through soundfile."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import warnings

import torch

from ..errors import AudioIOError


@dataclass(frozen=True)
class AudioBuffer:
    """Mono samples plus sample rate."""

    samples: torch.Tensor
    sample_rate: int

    @property
    def duration(self) -> float:
        return self.samples.numel() / self.sample_rate


def load_wav(path: Path | str) -> AudioBuffer:
    """Load an audio file as mono float64 samples.

    Multichannel input uses channel 0 only (warns).

    Example:
        >>> buf = load_wav("sine_440Hz_1second.wav")
    """
    import soundfile as sf

    path = Path(path)
    try:
        audio, sample_rate = sf.read(str(path), dtype="float64", always_2d=True)
    except (RuntimeError, OSError) as exc:
        raise AudioIOError(path, f"cannot read audio ({exc})") from exc
    samples = torch.from_numpy(audio)
    if samples.shape[1] > 1:
        warnings.warn(
            f"load_wav received {samples.shape[1]} channels; using channel 0 only.",
            RuntimeWarning,
        )
    samples = samples[:, 0].contiguous()
    if samples.numel() == 0:
        raise AudioIOError(path, "audio file has no samples")
    return AudioBuffer(samples, int(sample_rate))


def save_wav(
    path: Path | str,
    audio: torch.Tensor,
    sample_rate: int,
    *,
    normalize: bool = False,
    peak: float = 1.0,
    subtype: str = "PCM_16",
) -> Path:
    """Save mono audio to disk.

    Values outside [-1, 1] are clipped by the PCM encoder unless
    ``normalize`` rescales them to ``peak`` first.
    """
    import soundfile as sf

    path = Path(path)
    audio = audio.detach().cpu().to(torch.float64).reshape(-1)
    if normalize:
        if peak <= 0:
            raise ValueError("peak must be positive when normalize=True")
        max_val = float(audio.abs().max()) if audio.numel() else 0.0
        if max_val > 0:
            audio = audio / max_val * peak
    try:
        sf.write(str(path), audio.numpy(), int(sample_rate), subtype=subtype)
    except (RuntimeError, OSError) as exc:
        raise AudioIOError(path, f"cannot write audio ({exc})") from exc
    return path
