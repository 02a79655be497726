"""Energy histogram to amplitude response conversion."""

from __future__ import annotations

import torch
from torch import Tensor


def energy_to_amplitude(energy: Tensor, *, seed: int = 0) -> Tensor:
    """Convert energy bins to a pressure-like amplitude response.

    Each bin becomes ``sqrt(energy)`` with a pseudo-random sign. Signs depend
    only on ``seed`` and the bin index, so every row of a ``(T, n_bins)``
    stack shares one sign pattern and neighboring windows do not cancel
    when crossfaded.

    Args:
        energy: Non-negative bins of shape ``(n_bins,)`` or ``(T, n_bins)``.
        seed: Seed of the sign pattern.

    Returns:
        float64 tensor with the shape of ``energy``.

    Example:
        >>> amp = energy_to_amplitude(torch.tensor([0.0, 0.25, 0.04]), seed=1)
        >>> amp.abs()
        tensor([0.0000, 0.5000, 0.2000], dtype=torch.float64)
    """
    energy = torch.as_tensor(energy, dtype=torch.float64)
    if energy.ndim not in (1, 2):
        raise ValueError("energy must have shape (n_bins,) or (T, n_bins)")
    if bool((energy < 0).any()):
        raise ValueError("energy must be non-negative")
    gen = torch.Generator().manual_seed(seed)
    signs = torch.randint(0, 2, (energy.shape[-1],), generator=gen).to(energy.dtype)
    return torch.sqrt(energy) * (2.0 * signs - 1.0)
