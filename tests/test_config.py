import logging

import pytest

from torcheir import LoggingConfig, SimulationConfig, default_config, get_logger, setup_logging


def test_default_config_values():
    cfg = default_config()
    assert cfg.speed_of_sound == pytest.approx(343.2)
    assert cfg.fs == 44100
    assert cfg.energy_threshold == pytest.approx(5e-5)
    assert cfg.n_bins == 44101


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("fs", 0, "fs"),
        ("tmax", -1.0, "tmax"),
        ("seed", -1, "seed"),
        ("energy_threshold", 1.0, "energy_threshold"),
        ("ray_chunk_size", 0, "ray_chunk_size"),
        ("num_workers", 0, "num_workers"),
        ("max_iter", 0, "max_iter"),
    ],
)
def test_config_validation(field, value, message):
    with pytest.raises(ValueError, match=message):
        default_config().replace(**{field: value})


def test_config_replace_returns_new_instance():
    cfg = SimulationConfig()
    other = cfg.replace(seed=9)
    assert other.seed == 9
    assert cfg.seed == 0


def test_logging_level_resolution():
    assert LoggingConfig(level="debug").resolve_level() == logging.DEBUG
    assert LoggingConfig(level=logging.ERROR).resolve_level() == logging.ERROR
    with pytest.raises(ValueError, match="unknown log level"):
        LoggingConfig(level="LOUD").resolve_level()


def test_get_logger_namespacing():
    assert get_logger().name == "torcheir"
    assert get_logger("sim.tracer").name == "torcheir.sim.tracer"
    assert get_logger("torcheir.io").name == "torcheir.io"


def test_setup_logging_idempotent():
    logger = setup_logging(LoggingConfig(level="WARNING"), name="torcheir.test_setup")
    setup_logging(LoggingConfig(level="DEBUG"), name="torcheir.test_setup")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
