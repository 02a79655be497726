import numpy as np
import pytest
import torch

from torcheir import ImpulseResponse, TimeVaryingResponse
from torcheir.signal import (
    DynamicConvolver,
    auralize,
    energy_to_amplitude,
    fft_convolve,
    finalize,
    render,
)


def _gen(seed: int = 0) -> torch.Generator:
    return torch.Generator().manual_seed(seed)


def test_fft_convolve_matches_direct_convolution():
    signal = torch.randn(128, generator=_gen(), dtype=torch.float64)
    ir = torch.randn(37, generator=_gen(1), dtype=torch.float64)
    out = fft_convolve(signal, ir)
    assert out.shape[0] == signal.numel() + ir.numel() - 1
    expected = np.convolve(signal.numpy(), ir.numpy())
    assert np.allclose(out.numpy(), expected, atol=1e-10)


def test_fft_convolve_rejects_2d():
    with pytest.raises(ValueError, match="1D"):
        fft_convolve(torch.zeros(2, 4), torch.zeros(3))


def test_energy_to_amplitude_magnitude_and_signs():
    energy = torch.tensor([[0.0, 0.25, 0.04, 1.0], [0.01, 0.0, 0.09, 0.16]], dtype=torch.float64)
    amp = energy_to_amplitude(energy, seed=4)
    assert torch.allclose(amp.abs(), energy.sqrt())
    signs = torch.sign(energy_to_amplitude(torch.ones(4, dtype=torch.float64), seed=4))
    assert torch.equal(torch.sign(amp[1, [0, 2, 3]]), signs[[0, 2, 3]])
    assert torch.equal(amp, energy_to_amplitude(energy, seed=4))


def test_energy_to_amplitude_rejects_negative():
    with pytest.raises(ValueError, match="non-negative"):
        energy_to_amplitude(torch.tensor([-1.0]))


def test_single_mode_render_is_linear():
    response = ImpulseResponse(torch.rand(50, generator=_gen(2), dtype=torch.float64) * 1e-3, fs=8000)
    x = torch.randn(300, generator=_gen(3), dtype=torch.float64)
    y = torch.randn(300, generator=_gen(4), dtype=torch.float64)
    lhs = render(2.0 * x - 0.5 * y, response, seed=1)
    rhs = 2.0 * render(x, response, seed=1) - 0.5 * render(y, response, seed=1)
    assert torch.allclose(lhs, rhs, atol=1e-12)
    assert lhs.numel() == 300 + 50 - 1


def test_crossfade_weights_sum_to_one():
    convolver = DynamicConvolver(hop=64, crossfade=16)
    n = 1000
    weights = convolver.weights(n)
    total = torch.zeros(n + convolver.window, dtype=torch.float64)
    for k in range(weights.shape[0]):
        total[k * 64 : k * 64 + convolver.window] += weights[k]
    assert torch.allclose(total[:n], torch.ones(n, dtype=torch.float64))


def test_dynamic_with_identical_irs_equals_static():
    signal = torch.randn(1000, generator=_gen(5), dtype=torch.float64)
    ir = torch.randn(40, generator=_gen(6), dtype=torch.float64)
    irs = ir.expand(20, -1)
    out = DynamicConvolver(hop=64, crossfade=16).convolve(signal, irs)
    assert torch.allclose(out, fft_convolve(signal, ir), atol=1e-10)


def test_dynamic_parallel_matches_serial():
    signal = torch.randn(800, generator=_gen(7), dtype=torch.float64)
    irs = torch.randn(10, 30, generator=_gen(8), dtype=torch.float64)
    serial = DynamicConvolver(hop=100, crossfade=20).convolve(signal, irs)
    parallel = DynamicConvolver(hop=100, crossfade=20, num_workers=4).convolve(signal, irs)
    assert torch.allclose(serial, parallel)


def test_dynamic_selects_nearest_timestamp():
    convolver = DynamicConvolver(hop=100, timestamps=torch.tensor([0.0, 0.5]), fs=1000)
    assert convolver.select(1000, 2) == [0, 0, 0, 1, 1, 1, 1, 1, 1, 1]
    assert DynamicConvolver(hop=100).select(350, 2) == [0, 1, 1, 1]


def test_dynamic_convolver_validation():
    with pytest.raises(ValueError, match="hop"):
        DynamicConvolver(hop=0)
    with pytest.raises(ValueError, match="crossfade"):
        DynamicConvolver(hop=10, crossfade=11)
    with pytest.raises(ValueError, match="fs"):
        DynamicConvolver(hop=10, timestamps=torch.zeros(2))


def test_finalize_modes():
    audio = torch.tensor([0.5, -2.0, 1.0], dtype=torch.float64)
    clipped = finalize(audio, scaling_factor=2.0, mode="clip")
    assert float(clipped.abs().max()) <= 1.0
    normalized = finalize(audio, scaling_factor=2.0, mode="normalize")
    assert float(normalized.abs().max()) == pytest.approx(1.0)
    assert float(normalized[0]) == pytest.approx(0.25)
    with pytest.raises(ValueError, match="mode"):
        finalize(audio, mode="loud")


def test_auralize_time_varying_length():
    energy = torch.rand(4, 25, generator=_gen(9), dtype=torch.float64) * 1e-4
    response = TimeVaryingResponse(energy, fs=1000, timestamps=torch.tensor([0.0, 0.1, 0.2, 0.3]))
    signal = torch.randn(400, generator=_gen(10), dtype=torch.float64)
    out = auralize(signal, response, scaling_factor=10.0, crossfade=10)
    assert out.numel() == 400 + 25 - 1
    assert float(out.abs().max()) <= 1.0
