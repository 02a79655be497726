import torch

from torcheir.sim.roots import solve_arrival_time

C = 343.2


def _always(t):
    return torch.ones_like(t, dtype=torch.bool)


def test_static_target_converges_in_one_step():
    res = solve_arrival_time(lambda t: (torch.full_like(t, C), _always(t)), torch.zeros(3, dtype=torch.float64), C)
    assert bool(res.converged.all())
    assert torch.allclose(res.time, torch.ones(3, dtype=torch.float64))
    assert res.iterations == 1


def test_approaching_target():
    v = C / 10
    t0 = torch.tensor([0.0, 0.5], dtype=torch.float64)
    res = solve_arrival_time(lambda t: (10.0 - v * t, _always(t)), t0, C)
    expected = (10.0 + C * t0) / (C + v)
    assert bool(res.converged.all())
    assert torch.allclose(res.time, expected, atol=1e-9)


def test_receding_target():
    v = C / 4
    res = solve_arrival_time(lambda t: (5.0 + v * t, _always(t)), torch.zeros(1, dtype=torch.float64), C)
    assert bool(res.converged[0])
    assert abs(float(res.time[0]) - 5.0 / (C - v)) < 1e-9


def test_invalid_distance_is_not_converged():
    def fn(t):
        return torch.full_like(t, float("inf")), torch.zeros_like(t, dtype=torch.bool)

    res = solve_arrival_time(fn, torch.zeros(2, dtype=torch.float64), C)
    assert not bool(res.converged.any())
    assert not bool(res.feasible.any())
    assert res.n_failed == 0


def test_iteration_bound_reports_failure():
    res = solve_arrival_time(
        lambda t: (10.0 - 0.9 * C * t, _always(t)),
        torch.zeros(1, dtype=torch.float64),
        C,
        max_iter=1,
        tol=1e-15,
    )
    assert res.iterations == 1
    assert not bool(res.converged[0])
    assert bool(res.feasible[0])
    assert res.n_failed == 1
