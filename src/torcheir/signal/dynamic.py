from __future__ import annotations

"""Time-variant convolution.

The input is cut into windows that start every ``hop`` samples and span
``hop + crossfade`` samples. Window edges are raised-cosine ramps of width
``crossfade`` so that overlapping weights sum to one; each weighted window is
convolved with its own response and overlap-added at its offset.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import math
from typing import Optional

import torch
from torch import Tensor

from .internal import _ensure_ir_stack, _ensure_signal
from .static import fft_convolve


@dataclass(frozen=True)
class DynamicConvolver:
    """Convolver for time-varying responses.

    With ``timestamps`` and ``fs`` set, each window uses the response whose
    timestamp is nearest to the window midpoint; otherwise window ``k`` uses
    response ``k`` (the last response for windows past the end).

    Example:
        >>> convolver = DynamicConvolver(hop=4410, crossfade=441)
        >>> y = convolver.convolve(signal, irs)
    """

    hop: int
    crossfade: int = 0
    timestamps: Optional[Tensor] = None
    fs: Optional[float] = None
    num_workers: int = 1

    def __post_init__(self) -> None:
        if self.hop <= 0:
            raise ValueError("hop must be positive")
        if not 0 <= self.crossfade <= self.hop:
            raise ValueError("crossfade must be in [0, hop]")
        if self.timestamps is not None and self.fs is None:
            raise ValueError("fs must be provided when timestamps are used")
        if self.num_workers <= 0:
            raise ValueError("num_workers must be positive")

    @property
    def window(self) -> int:
        return self.hop + self.crossfade

    def __call__(self, signal: Tensor, irs: Tensor) -> Tensor:
        return self.convolve(signal, irs)

    def n_windows(self, n_samples: int) -> int:
        return max(1, math.ceil(n_samples / self.hop))

    def weights(self, n_samples: int) -> Tensor:
        """Per-window crossfade weights ``(n_windows, window)``.

        Samples past the end of the signal carry weight but no signal.
        """
        count = self.n_windows(n_samples)
        w = torch.ones(count, self.window, dtype=torch.float64)
        if self.crossfade and count > 1:
            pos = (torch.arange(self.crossfade, dtype=torch.float64) + 0.5) / self.crossfade
            rise = torch.sin(0.5 * math.pi * pos) ** 2
            w[1:, : self.crossfade] = rise
            w[:-1, self.hop :] = 1.0 - rise
        if self.crossfade:
            w[-1, self.hop :] = 0.0
        return w

    def select(self, n_samples: int, n_irs: int) -> list[int]:
        """Response index used by each window."""
        count = self.n_windows(n_samples)
        if self.timestamps is None:
            return [min(k, n_irs - 1) for k in range(count)]
        ts = torch.as_tensor(self.timestamps, dtype=torch.float64).reshape(-1)
        if ts.numel() != n_irs:
            raise ValueError("timestamps must match the number of responses")
        mids = (torch.arange(count, dtype=torch.float64) * self.hop + self.hop / 2) / self.fs
        return torch.argmin((mids[:, None] - ts[None, :]).abs(), dim=1).tolist()

    def convolve(self, signal: Tensor, irs: Tensor) -> Tensor:
        """Convolve ``signal`` with a stack of amplitude responses.

        Args:
            signal: 1D dry signal.
            irs: Responses of shape ``(T, ir_len)``.

        Returns:
            1D tensor of length ``len(signal) + ir_len - 1``.
        """
        signal = _ensure_signal(signal)
        irs = _ensure_ir_stack(irs)
        n = signal.numel()
        if n == 0:
            raise ValueError("signal must not be empty")
        ir_len = irs.shape[1]
        weights = self.weights(n).to(signal.dtype)
        choice = self.select(n, irs.shape[0])

        def segment(k: int) -> tuple[int, Optional[Tensor]]:
            start = k * self.hop
            frame = signal[start : start + self.window]
            frame = frame * weights[k, : frame.numel()]
            if frame.numel() == 0 or not bool(frame.any()):
                return start, None
            return start, fft_convolve(frame, irs[choice[k]])

        if self.num_workers > 1 and len(choice) > 1:
            with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
                segments = list(executor.map(segment, range(len(choice))))
        else:
            segments = [segment(k) for k in range(len(choice))]

        out = torch.zeros(n + ir_len - 1, dtype=torch.promote_types(signal.dtype, irs.dtype))
        for start, seg in segments:
            if seg is None:
                continue
            end = min(start + seg.numel(), out.numel())
            out[start:end] += seg[: end - start]
        return out
