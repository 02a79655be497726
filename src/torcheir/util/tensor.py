"""Tensor helpers."""

from __future__ import annotations

from typing import Iterable, Optional

import torch
from torch import Tensor

DEFAULT_DTYPE = torch.float64


def as_tensor(
    value: Tensor | Iterable[float] | float | int,
    *,
    dtype: Optional[torch.dtype] = None,
    device: Optional[torch.device | str] = None,
) -> Tensor:
    """Convert a value to a tensor, defaulting to float64."""
    dtype = dtype or DEFAULT_DTYPE
    if torch.is_tensor(value):
        return value.to(device=device if device is not None else value.device, dtype=dtype)
    return torch.as_tensor(value, dtype=dtype, device=device)


def as_vector(value: Tensor | Iterable[float], *, name: str = "vector") -> Tensor:
    """Convert a 3-vector to a finite float64 tensor of shape (3,).

    Example:
        >>> as_vector([0.0, 0.0, 2.0], name="position")
        tensor([0., 0., 2.], dtype=torch.float64)
    """
    out = as_tensor(value).reshape(-1)
    if out.numel() != 3:
        raise ValueError(f"{name} must have 3 components")
    if not torch.isfinite(out).all():
        raise ValueError(f"{name} must be finite")
    return out


def as_times(t: Tensor | Iterable[float] | float) -> Tensor:
    """Convert a scalar or 1D sequence of instants to a float64 tensor."""
    out = as_tensor(t)
    if out.ndim > 1:
        raise ValueError("times must be a scalar or a 1D tensor")
    return out


def normalize(v: Tensor, *, eps: float = 1e-12) -> tuple[Tensor, Tensor]:
    """Normalize vectors along the last dim.

    Returns the unit vectors and a mask of rows whose norm exceeded ``eps``;
    degenerate rows are returned unchanged.
    """
    norm = torch.linalg.vector_norm(v, dim=-1, keepdim=True)
    ok = norm.squeeze(-1) > eps
    out = v / torch.where(norm > eps, norm, torch.ones_like(norm))
    return out, ok
