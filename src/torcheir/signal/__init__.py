"""Convolution and auralization."""

from .dynamic import DynamicConvolver
from .render import auralize, finalize, render
from .static import convolve_static, fft_convolve
from .synthesis import energy_to_amplitude

__all__ = [
    "DynamicConvolver",
    "auralize",
    "convolve_static",
    "energy_to_amplitude",
    "fft_convolve",
    "finalize",
    "render",
]
