from pathlib import Path

import torch

from torcheir import ImpulseResponse, TimeVaryingResponse
from torcheir.plotting import plot_impulse_response, save_response_plot


def test_save_single_response_plot(tmp_path: Path) -> None:
    ir = ImpulseResponse(torch.rand(200, dtype=torch.float64) * 1e-3, fs=8000)
    path = save_response_plot(tmp_path / "ir.png", ir, title="single")
    assert path.exists() and path.stat().st_size > 0


def test_save_time_varying_plot(tmp_path: Path) -> None:
    response = TimeVaryingResponse(
        torch.rand(5, 100, dtype=torch.float64), fs=8000, timestamps=torch.arange(5) * 0.1
    )
    path = save_response_plot(tmp_path / "plots" / "tv.png", response)
    assert path.exists()


def test_plot_linear_scale_labels() -> None:
    from matplotlib.figure import Figure

    ax = Figure().add_subplot()
    plot_impulse_response(ImpulseResponse(torch.ones(10), fs=1000), ax=ax, db=False)
    assert ax.get_ylabel() == "energy"


def test_save_leaves_pyplot_state_alone(tmp_path: Path) -> None:
    import matplotlib
    import matplotlib.pyplot as plt

    backend = matplotlib.get_backend()
    figures = plt.get_fignums()
    save_response_plot(tmp_path / "ir.png", ImpulseResponse(torch.ones(10), fs=1000))
    assert matplotlib.get_backend() == backend
    assert plt.get_fignums() == figures
