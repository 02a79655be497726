"""Utility helpers."""

from .tensor import as_tensor, as_times, as_vector, normalize

__all__ = ["as_tensor", "as_times", "as_vector", "normalize"]
