"""Matplotlib plots of energetic impulse responses."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import torch

from .models.results import ImpulseResponse, Response, TimeVaryingResponse

_DB_FLOOR = -120.0


def _to_db(energy: torch.Tensor) -> torch.Tensor:
    return 10.0 * torch.log10(energy.clamp(min=10 ** (_DB_FLOOR / 10)))


def plot_impulse_response(
    response: ImpulseResponse,
    *,
    ax=None,
    db: bool = True,
    title: Optional[str] = None,
    show: bool = False,
):
    """Line plot of energy (or level in dB) against delay."""
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots()
    values = _to_db(response.energy) if db else response.energy
    ax.plot(response.times().numpy() * 1e3, values.numpy(), linewidth=0.8)
    ax.set_xlabel("delay [ms]")
    ax.set_ylabel("energy [dB]" if db else "energy")
    if title:
        ax.set_title(title)
    if show:
        plt.show()
    return ax


def plot_time_varying_response(
    response: TimeVaryingResponse,
    *,
    ax=None,
    title: Optional[str] = None,
    show: bool = False,
):
    """Heat map of level in dB over (window start, delay)."""
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots()
    n_bins = response.energy.shape[1]
    t0 = float(response.timestamps[0])
    t1 = float(response.timestamps[-1]) if len(response) > 1 else t0 + 1.0
    mesh = ax.imshow(
        _to_db(response.energy).T.numpy(),
        aspect="auto",
        origin="lower",
        extent=(t0, t1, 0.0, n_bins / response.fs * 1e3),
        vmin=_DB_FLOOR / 2,
        cmap="magma",
    )
    ax.figure.colorbar(mesh, ax=ax, label="energy [dB]")
    ax.set_xlabel("window start [s]")
    ax.set_ylabel("delay [ms]")
    if title:
        ax.set_title(title)
    if show:
        plt.show()
    return ax


def save_response_plot(path: Path | str, response: Response, *, title: Optional[str] = None) -> Path:
    """Render ``response`` to an image file.

    The figure is drawn on its own Agg canvas; the pyplot backend and figure
    registry are left untouched.
    """
    from matplotlib.backends.backend_agg import FigureCanvasAgg
    from matplotlib.figure import Figure

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = Figure(figsize=(8, 4))
    FigureCanvasAgg(fig)
    ax = fig.add_subplot()
    if isinstance(response, TimeVaryingResponse):
        plot_time_varying_response(response, ax=ax, title=title)
    else:
        plot_impulse_response(response, ax=ax, title=title)
    fig.tight_layout()
    fig.savefig(path, dpi=120)
    return path
