"""Audio and response file I/O."""

from .audio import AudioBuffer, load_wav, save_wav
from .ir_csv import load_ir_csv, save_ir_csv

__all__ = ["AudioBuffer", "load_ir_csv", "load_wav", "save_ir_csv", "save_wav"]
