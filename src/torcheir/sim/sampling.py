"""Counter-based random streams and direction sampling.

Uniforms are a pure function of ``(seed, ray_index, stream)`` via SplitMix64
hashing, so a ray sees the same samples regardless of chunking or worker
count.
"""

from __future__ import annotations

import math

import torch
from torch import Tensor

from ..util.tensor import normalize


def _i64(value: int) -> int:
    value &= (1 << 64) - 1
    return value - (1 << 64) if value >= 1 << 63 else value


_GOLDEN = _i64(0x9E3779B97F4A7C15)
_MIX1 = _i64(0xBF58476D1CE4E5B9)
_MIX2 = _i64(0x94D049BB133111EB)


def _shr(x: Tensor, n: int) -> Tensor:
    """Logical right shift on int64."""
    return (x >> n) & ((1 << (64 - n)) - 1)


def splitmix64(x: Tensor) -> Tensor:
    """SplitMix64 finalizer on int64 tensors (wrapping arithmetic)."""
    z = x + _GOLDEN
    z = (z ^ _shr(z, 30)) * _MIX1
    z = (z ^ _shr(z, 27)) * _MIX2
    return z ^ _shr(z, 31)


def counter_uniform(seed: int, ray_index: Tensor, stream: Tensor | int, count: int) -> Tensor:
    """Return ``(len(ray_index), count)`` float64 uniforms in [0, 1).

    Args:
        seed: Global seed.
        ray_index: Global ray indices.
        stream: Per-event stream id (0 for emission, ``k + 1`` for bounce ``k``).
        count: Uniforms drawn per ray.

    Returns:
        Values that depend only on ``(seed, ray_index, stream)``, so results
        do not change with chunking.

    Example:
        >>> u = counter_uniform(0, torch.arange(4), 0, 2)
        >>> u.shape
        torch.Size([4, 2])
    """
    idx = ray_index.to(torch.int64)
    seed_key = splitmix64(torch.tensor(_i64(seed), dtype=torch.int64))
    key = splitmix64(idx ^ seed_key)
    key = splitmix64(key + torch.as_tensor(stream, dtype=torch.int64))
    offsets = torch.arange(count, dtype=torch.int64)
    bits = splitmix64(key.unsqueeze(-1) + offsets * _GOLDEN)
    return _shr(bits, 11).to(torch.float64) * 2.0**-53


def orthonormal_basis(n: Tensor) -> tuple[Tensor, Tensor]:
    """Two unit vectors spanning the plane orthogonal to unit vectors ``n``."""
    helper = torch.zeros_like(n)
    use_y = n[..., 0].abs() > 0.9
    helper[..., 0] = (~use_y).to(n.dtype)
    helper[..., 1] = use_y.to(n.dtype)
    t, _ = normalize(torch.linalg.cross(helper, n, dim=-1))
    b = torch.linalg.cross(n, t, dim=-1)
    return t, b


def uniform_sphere(u: Tensor) -> Tensor:
    """Uniform directions from ``(..., 2)`` uniforms."""
    z = 1.0 - 2.0 * u[..., 0]
    phi = 2.0 * math.pi * u[..., 1]
    r = torch.sqrt(torch.clamp(1.0 - z * z, min=0.0))
    return torch.stack([r * torch.cos(phi), r * torch.sin(phi), z], dim=-1)


def uniform_cone(axis: Tensor, half_angle: float, u: Tensor) -> Tensor:
    """Uniform directions within ``half_angle`` of unit ``axis``."""
    cos_t = 1.0 - u[..., 0] * (1.0 - math.cos(half_angle))
    sin_t = torch.sqrt(torch.clamp(1.0 - cos_t * cos_t, min=0.0))
    phi = 2.0 * math.pi * u[..., 1]
    axis = axis.expand(u.shape[:-1] + (3,))
    t, b = orthonormal_basis(axis)
    return (
        t * (sin_t * torch.cos(phi)).unsqueeze(-1)
        + b * (sin_t * torch.sin(phi)).unsqueeze(-1)
        + axis * cos_t.unsqueeze(-1)
    )


def cosine_hemisphere(normal: Tensor, u: Tensor) -> Tensor:
    """Cosine-weighted directions around unit ``normal``."""
    r = torch.sqrt(u[..., 0])
    phi = 2.0 * math.pi * u[..., 1]
    z = torch.sqrt(torch.clamp(1.0 - u[..., 0], min=0.0))
    t, b = orthonormal_basis(normal)
    return (
        t * (r * torch.cos(phi)).unsqueeze(-1)
        + b * (r * torch.sin(phi)).unsqueeze(-1)
        + normal * z.unsqueeze(-1)
    )


def reflect(direction: Tensor, normal: Tensor) -> Tensor:
    """Specular reflection ``d - 2 (d . n) n``."""
    return direction - 2.0 * (direction * normal).sum(-1, keepdim=True) * normal
