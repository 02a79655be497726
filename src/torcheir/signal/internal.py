"""Internal tensor-shape helpers for convolution."""

from __future__ import annotations

import torch
from torch import Tensor


def _ensure_signal(signal: Tensor) -> Tensor:
    """Ensure signal is a 1D floating tensor."""
    if signal.ndim != 1:
        raise ValueError("signal must have shape (n_samples,)")
    if not torch.is_floating_point(signal):
        signal = signal.to(torch.float64)
    return signal


def _ensure_ir_stack(irs: Tensor) -> Tensor:
    """Normalize amplitude responses to (T, ir_len)."""
    if irs.ndim == 1:
        return irs.unsqueeze(0)
    if irs.ndim == 2:
        return irs
    raise ValueError("irs must have shape (ir_len,) or (T, ir_len)")
