from __future__ import annotations

"""Logging helpers for torcheir."""

from dataclasses import dataclass, replace
import logging
from typing import Optional

ROOT_LOGGER = "torcheir"


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for torcheir logging.

    Example:
        >>> logger = setup_logging(LoggingConfig(level="DEBUG"))
    """

    level: str | int = "INFO"
    format: str = "%(asctime)s %(levelname)s:%(name)s:%(message)s"
    datefmt: Optional[str] = "%H:%M:%S"
    propagate: bool = False

    def resolve_level(self) -> int:
        """Resolve level to a logging integer constant."""
        if isinstance(self.level, int):
            return self.level
        if not isinstance(self.level, str):
            raise TypeError("level must be str or int")
        level = logging.getLevelName(self.level.upper())
        if not isinstance(level, int):
            raise ValueError(f"unknown log level: {self.level}")
        return level

    def replace(self, **kwargs) -> "LoggingConfig":
        """Return a new config with updated fields."""
        return replace(self, **kwargs)


def setup_logging(config: LoggingConfig, *, name: str = ROOT_LOGGER) -> logging.Logger:
    """Configure the root torcheir logger once and return it."""
    logger = logging.getLogger(name)
    level = config.resolve_level()
    logger.setLevel(level)
    logger.propagate = config.propagate
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.format, datefmt=config.datefmt))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger namespaced under the torcheir root.

    Example:
        >>> logger = get_logger("sim.tracer")
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
