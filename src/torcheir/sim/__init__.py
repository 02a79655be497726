"""Ray tracing and response building."""

from .builders import (
    InterpolatedBuilder,
    ResponseBuilder,
    SnapshotBuilder,
    resolve_builder,
    window_instants,
)
from .roots import RootResult, solve_arrival_time
from .tracer import RayTracer, TraceMode, TraceStats

__all__ = [
    "InterpolatedBuilder",
    "RayTracer",
    "ResponseBuilder",
    "RootResult",
    "SnapshotBuilder",
    "TraceMode",
    "TraceStats",
    "resolve_builder",
    "solve_arrival_time",
    "window_instants",
]
