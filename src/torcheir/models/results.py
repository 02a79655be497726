"""Hit and response containers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional, Sequence, TYPE_CHECKING, Union

import torch
from torch import Tensor

from .scene import Scene

if TYPE_CHECKING:
    from ..config import IRCardinality, IRMethod, SimulationConfig


class HitEvent(NamedTuple):
    """A ray reaching the receiver; ``time`` is relative to its emission."""

    ray_index: int
    time: float
    energy: float


class EnergyBin(NamedTuple):
    index: int
    energy: float


@dataclass(frozen=True)
class HitBatch:
    """Aligned 1D tensors of receiver hits.

    ``window`` is the emission window each ray belongs to (0 for a single
    emission instant).
    """

    ray_index: Tensor
    time: Tensor
    energy: Tensor
    window: Tensor

    @classmethod
    def empty(cls) -> "HitBatch":
        idx = torch.zeros(0, dtype=torch.long)
        val = torch.zeros(0, dtype=torch.float64)
        return cls(idx, val, val, idx)

    @classmethod
    def concat(cls, batches: Sequence["HitBatch"]) -> "HitBatch":
        if not batches:
            return cls.empty()
        return cls(
            torch.cat([b.ray_index for b in batches]),
            torch.cat([b.time for b in batches]),
            torch.cat([b.energy for b in batches]),
            torch.cat([b.window for b in batches]),
        )

    def __len__(self) -> int:
        return int(self.ray_index.numel())

    def events(self) -> Iterator[HitEvent]:
        for idx, t, e in zip(
            self.ray_index.tolist(), self.time.tolist(), self.energy.tolist()
        ):
            yield HitEvent(idx, t, e)

    def histogram(self, *, fs: float, n_bins: int, n_windows: int = 1) -> Tensor:
        """Sum hit energies into ``(n_windows, n_bins)`` bins of width ``1/fs``.

        Hits past the last bin are dropped.
        """
        hist = torch.zeros(n_windows * n_bins, dtype=torch.float64)
        if len(self) == 0:
            return hist.view(n_windows, n_bins)
        bins = torch.floor(self.time * fs).to(torch.long)
        keep = (bins >= 0) & (bins < n_bins)
        flat = self.window[keep] * n_bins + bins[keep]
        hist.index_add_(0, flat, self.energy[keep].to(torch.float64))
        return hist.view(n_windows, n_bins)


@dataclass(frozen=True)
class ImpulseResponse:
    """Energetic impulse response: bin ``k`` covers ``[k/fs, (k+1)/fs)``.

    Example:
        >>> ir = ImpulseResponse(energy=torch.tensor([0.0, 0.5, 0.25]), fs=8000)
        >>> ir.first_arrival()
        1
    """

    energy: Tensor
    fs: float
    start_time: float = 0.0

    def __post_init__(self) -> None:
        energy = torch.as_tensor(self.energy, dtype=torch.float64)
        if energy.ndim != 1:
            raise ValueError("energy must be 1D")
        if not bool(torch.isfinite(energy).all()) or bool((energy < 0).any()):
            raise ValueError("energy must be finite and non-negative")
        if not self.fs > 0:
            raise ValueError("fs must be positive")
        object.__setattr__(self, "energy", energy)

    @classmethod
    def from_pairs(
        cls, pairs: Sequence[tuple[float, float]], fs: float, start_time: float = 0.0
    ) -> "ImpulseResponse":
        """Rebuild a response from ``(time, energy)`` pairs; times snap to bins."""
        if not pairs:
            return cls(torch.zeros(0, dtype=torch.float64), fs, start_time)
        idx = [int(round(t * fs)) for t, _ in pairs]
        energy = torch.zeros(max(idx) + 1, dtype=torch.float64)
        for i, (_, e) in zip(idx, pairs):
            energy[i] += e
        return cls(energy, fs, start_time)

    def __len__(self) -> int:
        return int(self.energy.numel())

    def times(self) -> Tensor:
        return torch.arange(len(self), dtype=torch.float64) / self.fs

    def bins(self) -> list[EnergyBin]:
        return [EnergyBin(i, e) for i, e in enumerate(self.energy.tolist())]

    def to_pairs(self) -> list[tuple[float, float]]:
        return list(zip(self.times().tolist(), self.energy.tolist()))

    def total_energy(self) -> float:
        return float(self.energy.sum())

    def first_arrival(self) -> Optional[int]:
        """Index of the first non-empty bin, or None for a silent response."""
        nz = torch.nonzero(self.energy > 0)
        return int(nz[0, 0]) if nz.numel() else None


@dataclass(frozen=True)
class TimeVaryingResponse:
    """One energy histogram per analysis window, starting at ``timestamps``."""

    energy: Tensor
    fs: float
    timestamps: Tensor

    def __post_init__(self) -> None:
        energy = torch.as_tensor(self.energy, dtype=torch.float64)
        ts = torch.as_tensor(self.timestamps, dtype=torch.float64).reshape(-1)
        if energy.ndim != 2:
            raise ValueError("energy must have shape (windows, bins)")
        if ts.numel() != energy.shape[0]:
            raise ValueError("timestamps must match the number of windows")
        if bool((energy < 0).any()):
            raise ValueError("energy must be non-negative")
        object.__setattr__(self, "energy", energy)
        object.__setattr__(self, "timestamps", ts)

    @classmethod
    def stack(cls, responses: Sequence[ImpulseResponse]) -> "TimeVaryingResponse":
        if not responses:
            raise ValueError("responses must not be empty")
        n = max(len(r) for r in responses)
        energy = torch.zeros(len(responses), n, dtype=torch.float64)
        for i, r in enumerate(responses):
            energy[i, : len(r)] = r.energy
        ts = torch.tensor([r.start_time for r in responses], dtype=torch.float64)
        return cls(energy, responses[0].fs, ts)

    def __len__(self) -> int:
        return int(self.energy.shape[0])

    def __getitem__(self, index: int) -> ImpulseResponse:
        return ImpulseResponse(self.energy[index], self.fs, float(self.timestamps[index]))

    def __iter__(self) -> Iterator[ImpulseResponse]:
        for i in range(len(self)):
            yield self[i]

    def nearest(self, t: float) -> int:
        """Index of the window whose start is nearest to ``t``."""
        return int(torch.argmin((self.timestamps - t).abs()))

    def first_arrivals(self) -> list[Optional[int]]:
        return [r.first_arrival() for r in self]


Response = Union[ImpulseResponse, TimeVaryingResponse]


@dataclass(frozen=True)
class EIRResult:
    """Built response with the scene and settings that produced it.

    Examples:
        ```python
        builder = resolve_builder("interpolated", "time-varying", n_rays=20000)
        result = builder.build(scene, duration=1.0)
        result.response.first_arrivals()
        ```
    """

    response: Response
    scene: Scene
    config: "SimulationConfig"
    method: "IRMethod"
    cardinality: "IRCardinality"
    stats: Optional[object] = None
