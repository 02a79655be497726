from __future__ import annotations

from pathlib import Path

import pytest
import torch

from torcheir import AudioIOError, ImpulseResponse, TimeVaryingResponse
from torcheir.io import load_ir_csv, load_wav, save_ir_csv, save_wav


def _sine_wave(num_samples: int, fs: int) -> torch.Tensor:
    t = torch.arange(num_samples, dtype=torch.float64) / float(fs)
    return 0.5 * torch.sin(2.0 * torch.pi * 440.0 * t)


def test_save_load_wav_roundtrip(tmp_path: Path) -> None:
    fs = 16000
    audio = _sine_wave(2048, fs)
    path = save_wav(tmp_path / "tone.wav", audio, fs)
    buf = load_wav(path)
    assert buf.sample_rate == fs
    assert buf.samples.shape == audio.shape
    assert torch.allclose(buf.samples, audio, atol=1e-4)
    assert buf.duration == pytest.approx(2048 / fs)


def test_load_wav_uses_channel_zero(tmp_path: Path) -> None:
    import soundfile as sf

    fs = 8000
    left = _sine_wave(512, fs)
    stereo = torch.stack([left, left * 0.5], dim=1)
    path = tmp_path / "stereo.wav"
    sf.write(str(path), stereo.numpy(), fs)
    with pytest.warns(RuntimeWarning, match="channel 0"):
        buf = load_wav(path)
    assert torch.allclose(buf.samples, left, atol=1e-4)


def test_load_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(AudioIOError, match="missing.wav"):
        load_wav(tmp_path / "missing.wav")


def test_save_to_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(AudioIOError):
        save_wav(tmp_path / "no" / "such" / "out.wav", torch.zeros(10), 8000)


def test_ir_csv_roundtrip_single(tmp_path: Path) -> None:
    energy = torch.zeros(100, dtype=torch.float64)
    energy[[3, 17, 99]] = torch.tensor([0.1, 1.0 / 3.0, 2.5e-7], dtype=torch.float64)
    ir = ImpulseResponse(energy, fs=44100)
    path = save_ir_csv(tmp_path / "ir.csv", ir)
    assert path.read_text().splitlines()[1] == "time,energy"
    loaded = load_ir_csv(path)
    assert isinstance(loaded, ImpulseResponse)
    assert loaded.to_pairs() == ir.to_pairs()
    assert loaded.fs == ir.fs


def test_ir_csv_roundtrip_time_varying(tmp_path: Path) -> None:
    energy = torch.rand(3, 40, generator=torch.Generator().manual_seed(0), dtype=torch.float64)
    response = TimeVaryingResponse(energy, fs=8000, timestamps=torch.tensor([0.0, 0.1, 0.2]))
    path = save_ir_csv(tmp_path / "tv.csv", response)
    assert path.read_text().splitlines()[1] == "window,time,energy"
    loaded = load_ir_csv(path)
    assert isinstance(loaded, TimeVaryingResponse)
    assert torch.equal(loaded.energy, response.energy)
    assert torch.equal(loaded.timestamps, response.timestamps)


def test_ir_csv_rejects_unknown_header(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("# fs=8000\na,b\n1,2\n")
    with pytest.raises(ValueError, match="header"):
        load_ir_csv(path)
