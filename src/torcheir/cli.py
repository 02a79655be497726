from __future__ import annotations

"""Command-line entry point.

Traces a catalog scene, builds its energetic impulse response(s) and
auralizes a WAV file with them. Settings can be loaded from and saved to
JSON/YAML files; explicit flags override loaded values.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .config import IRCardinality, IRMethod
from .errors import AudioIOError, ConfigurationError
from .logging_utils import LoggingConfig, get_logger, setup_logging
from .pipeline import RunConfig, run
from .scenes import list_scenes


def _load_config(path: Path) -> Dict[str, Any]:
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            import yaml
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError("PyYAML is required for YAML configs") from exc
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigurationError("config must be a mapping")
    return data


def _dump_config(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            import yaml
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError("PyYAML is required for YAML configs") from exc
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
    else:
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="torcheir",
        description="Ray-trace a moving scene and auralize a WAV file with it.",
    )
    parser.add_argument("--fname", "--input", dest="input_path", type=Path, help="Dry input WAV.")
    parser.add_argument("--outfile", dest="output_path", type=Path, help="Output WAV.")
    parser.add_argument("--irfile", dest="ir_path", type=Path, help="Export responses as CSV.")
    parser.add_argument("--plot", dest="plot_path", type=Path, help="Save a response plot.")
    parser.add_argument("--scene", type=int, help="Scene id (see --list-scenes).")
    parser.add_argument("--rays", type=int, help="Rays per emission instant.")
    parser.add_argument("--scaling-factor", type=float, help="Output gain before clipping.")
    parser.add_argument(
        "--snapshot-method",
        dest="method",
        action="store_const",
        const=IRMethod.SNAPSHOT.value,
        help="Freeze geometry at each instant instead of interpolating motion.",
    )
    parser.add_argument(
        "--single-ir",
        dest="cardinality",
        action="store_const",
        const=IRCardinality.SINGLE.value,
        help="Use one response at t=0 for the whole signal.",
    )
    parser.add_argument("--seed", type=int, help="Random seed.")
    parser.add_argument("--workers", type=int, help="Worker threads.")
    parser.add_argument("--interval", type=float, help="Response spacing / hop in seconds.")
    parser.add_argument("--crossfade", type=float, help="Window crossfade in seconds.")
    parser.add_argument("--tmax", type=float, help="Response length in seconds.")
    parser.add_argument("--max-bounces", type=int, help="Maximum reflections per ray.")
    parser.add_argument(
        "--finalize", choices=("clip", "normalize", "none"), help="Output bounding."
    )
    parser.add_argument("--log-level", type=str, help="Log level.")
    parser.add_argument("--config", type=Path, help="Load config from JSON/YAML.")
    parser.add_argument("--save-config", type=Path, help="Write config to JSON/YAML.")
    parser.add_argument("--list-scenes", action="store_true", help="List scenes and exit.")
    return parser


def _resolve_config(args: argparse.Namespace) -> RunConfig:
    data: Dict[str, Any] = {}
    if args.config is not None:
        try:
            data.update(_load_config(args.config))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"cannot load config {args.config}: {exc}") from exc
    overrides = {
        key: value
        for key, value in vars(args).items()
        if key not in ("config", "save_config", "list_scenes") and value is not None
    }
    data.update(overrides)
    return RunConfig.from_dict(data)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.list_scenes:
        for scene_id, name, description in list_scenes():
            print(f"{scene_id}: {name} - {description}")
        return 0

    setup_logging(LoggingConfig(level="INFO"))
    logger = get_logger("cli")

    try:
        config = _resolve_config(args)
        config.validate()
        setup_logging(LoggingConfig(level=config.log_level))
        if args.save_config is not None:
            _dump_config(args.save_config, config.to_dict())
            logger.info("wrote config: %s", args.save_config)
        run(config)
    except ConfigurationError as exc:
        logger.error("configuration error: %s", exc)
        return 2
    except AudioIOError as exc:
        logger.error("I/O error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
