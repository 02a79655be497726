"""Arrival-time root finding against moving geometry.

A ray leaving at ``t_start`` reaches a moving target at the instant ``t`` that
satisfies ``t = t_start + s(t) / c`` where ``s(t)`` is the distance along the
ray to the target frozen at ``t``. The solver starts with one fixed-point
step and refines with secant steps, falling back to fixed-point steps when
the secant slope degenerates. Static targets converge after the first step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import torch
from torch import Tensor

DistanceFn = Callable[[Tensor], tuple[Tensor, Tensor]]


@dataclass(frozen=True)
class RootResult:
    """Solved times with per-element convergence and feasibility masks.

    ``feasible`` is false where the distance function reported no target
    (e.g. a ray parallel to a plane); only feasible elements that did not
    converge count as failures.
    """

    time: Tensor
    converged: Tensor
    feasible: Tensor
    iterations: int

    @property
    def failed(self) -> Tensor:
        return self.feasible & ~self.converged

    @property
    def n_failed(self) -> int:
        return int(self.failed.sum())


def solve_arrival_time(
    distance_fn: DistanceFn,
    t_start: Tensor,
    speed: float,
    *,
    max_iter: int = 50,
    tol: float = 1e-10,
) -> RootResult:
    """Solve ``t = t_start + distance_fn(t)[0] / speed`` elementwise.

    Args:
        distance_fn: Maps candidate times to signed distances along each ray
            and a validity mask.
        t_start: Segment start times.
        speed: Propagation speed in m/s.
        max_iter: Iteration bound.
        tol: Convergence threshold on the residual, in seconds.

    Returns:
        RootResult whose ``converged`` mask is false for elements that
        became invalid or did not reach ``tol`` within ``max_iter``.

    Example:
        >>> fn = lambda t: (10.0 - 34.32 * t, torch.ones_like(t, dtype=torch.bool))
        >>> res = solve_arrival_time(fn, torch.zeros(1), 343.2)
        >>> bool(res.converged[0])
        True
    """
    if max_iter <= 0:
        raise ValueError("max_iter must be positive")

    def residual(t: Tensor) -> tuple[Tensor, Tensor]:
        dist, valid = distance_fn(t)
        g = t - t_start - dist / speed
        return g, valid & torch.isfinite(g)

    t_prev = t_start.clone()
    g_prev, ok = residual(t_prev)
    t = torch.where(ok, t_prev - g_prev, t_prev)
    active = ok.clone()
    feasible = ok.clone()
    converged = torch.zeros_like(ok)
    iterations = 0

    for iterations in range(1, max_iter + 1):
        g, valid = residual(t)
        feasible &= ~(active & ~valid)
        active &= valid
        done = active & (g.abs() <= tol)
        converged |= done
        active &= ~done
        if not bool(active.any()):
            break
        slope = (g - g_prev) / (t - t_prev)
        usable = torch.isfinite(slope) & (slope.abs() > 1e-3)
        step = torch.where(usable, g / torch.where(usable, slope, torch.ones_like(slope)), g)
        t_next = t - step
        t_prev = torch.where(active, t, t_prev)
        g_prev = torch.where(active, g, g_prev)
        t = torch.where(active, t_next, t)

    return RootResult(time=t, converged=converged, feasible=feasible, iterations=iterations)
