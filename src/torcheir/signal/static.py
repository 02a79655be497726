from __future__ import annotations

"""Static convolution utilities."""

import torch
from torch import Tensor

from .internal import _ensure_signal


def fft_convolve(signal: Tensor, ir: Tensor) -> Tensor:
    """Full linear convolution of two 1D tensors using FFT.

    Args:
        signal: 1D signal tensor.
        ir: 1D amplitude response.

    Returns:
        1D tensor of length ``len(signal) + len(ir) - 1`` in the promoted dtype.

    Example:
        >>> y = fft_convolve(signal, ir)
    """
    if signal.ndim != 1 or ir.ndim != 1:
        raise ValueError("fft_convolve expects 1D tensors")
    if signal.numel() == 0 or ir.numel() == 0:
        raise ValueError("fft_convolve expects non-empty tensors")
    dtype = torch.promote_types(signal.dtype, ir.dtype)
    n = signal.numel() + ir.numel() - 1
    fft_len = 1 << (n - 1).bit_length()
    sig_f = torch.fft.rfft(signal.to(dtype), n=fft_len)
    ir_f = torch.fft.rfft(ir.to(dtype), n=fft_len)
    out = torch.fft.irfft(sig_f * ir_f, n=fft_len)
    return out[:n]


def convolve_static(signal: Tensor, ir: Tensor) -> Tensor:
    """Convolve the whole signal with one amplitude response.

    Args:
        signal: 1D signal.
        ir: 1D amplitude response.

    Returns:
        1D tensor of length ``len(signal) + len(ir) - 1``.
    """
    signal = _ensure_signal(signal)
    if ir.ndim != 1:
        raise ValueError("ir must be 1D")
    return fft_convolve(signal, ir)
