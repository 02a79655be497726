import math

import pytest
import torch

from torcheir import Receiver, RotationMotion, StaticMotion
from torcheir.models import rectangle
from torcheir.sim.intersect import Facet, intersect_facet, intersect_receiver
from torcheir.sim.sampling import reflect

C = 343.2
PIVOT = torch.tensor([5.0, 0.0, 0.0], dtype=torch.float64)


def _spinning_panel(omega: float) -> Facet:
    return Facet(
        surface_index=0,
        panel=rectangle((5.0, 0.0, 0.0), (0, 2, 0), (0, 0, 2)),
        motion=RotationMotion((0, 0, 1), omega, pivot=(5.0, 0.0, 0.0)),
        absorption=0.0,
        diffusion=0.0,
    )


def _rays(*directions):
    d = torch.tensor(directions, dtype=torch.float64)
    d = d / d.norm(dim=-1, keepdim=True)
    n = d.shape[0]
    return torch.zeros(n, 3, dtype=torch.float64), d, torch.zeros(n, dtype=torch.float64)


def test_rotating_panel_normal_follows_arrival_time():
    # the panel turns pi/4 while sound covers the 5 m to the pivot
    omega = math.pi / 4 * C / 5.0
    origins, directions, t0 = _rays((1.0, 0.0, 0.0))
    seg = intersect_facet(_spinning_panel(omega), origins, directions, t0, C)
    assert bool(seg.valid[0])
    assert float(seg.time[0]) == pytest.approx(5.0 / C, abs=1e-12)
    s = math.sqrt(0.5)
    expected = torch.tensor([-s, -s, 0.0], dtype=torch.float64)
    assert torch.allclose(seg.normal[0], expected, atol=1e-9)
    out = reflect(directions, seg.normal)
    assert torch.allclose(out[0], torch.tensor([0.0, -1.0, 0.0], dtype=torch.float64), atol=1e-9)


def test_rotating_panel_off_pivot_hit_lies_on_moving_plane():
    omega = math.pi / 4 * C / 5.0
    facet = _spinning_panel(omega)
    origins, directions, t0 = _rays((5.0, 1.0, 0.0))
    seg = intersect_facet(facet, origins, directions, t0, C)
    frozen = intersect_facet(facet, origins, directions, t0, C, freeze=t0)
    assert bool(seg.valid[0]) and bool(frozen.valid[0])
    assert not bool(seg.failed.any())

    t = float(seg.time[0])
    point = directions[0] * t * C
    angle = omega * t
    normal = torch.tensor([math.cos(angle), math.sin(angle), 0.0], dtype=torch.float64)
    assert abs(float((point - PIVOT) @ normal)) < 1e-8
    assert float(frozen.time[0]) == pytest.approx(math.sqrt(26.0) / C, abs=1e-12)
    assert float(frozen.time[0]) - t > 1e-3


def test_parallel_ray_is_a_miss_not_a_failure():
    facet = Facet(
        surface_index=0,
        panel=rectangle((5.0, 0.0, 0.0), (0, 2, 0), (0, 0, 2)),
        motion=StaticMotion(),
        absorption=0.0,
        diffusion=0.0,
    )
    origins, directions, t0 = _rays((0.0, 1.0, 0.0), (1.0, 0.0, 0.0))
    seg = intersect_facet(facet, origins, directions, t0, C)
    assert seg.valid.tolist() == [False, True]
    assert seg.failed.tolist() == [False, False]


def test_receiver_miss_is_not_a_failure():
    receiver = Receiver((5.0, 0.0, 0.0), radius=0.5)
    origins, directions, t0 = _rays((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    seg = intersect_receiver(receiver, origins, directions, t0, C)
    assert seg.valid.tolist() == [True, False]
    assert not bool(seg.failed.any())
    assert float(seg.time[0]) == pytest.approx(4.5 / C, abs=1e-12)
