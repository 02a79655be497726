"""Exception types raised by torcheir."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid run configuration (unknown scene, bad counts, bad enum values)."""


class AudioIOError(OSError):
    """Audio or response file could not be read or written."""

    def __init__(self, path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
