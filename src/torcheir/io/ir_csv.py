"""CSV import/export of energetic impulse responses.

Single responses are written as ``time,energy`` rows; time-varying responses
as ``window,time,energy`` rows with ``time`` relative to the window start.
A leading comment records the sample rate (and window starts) so a file can
be read back into an identical response.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from ..errors import AudioIOError
from ..logging_utils import get_logger
from ..models.results import ImpulseResponse, Response, TimeVaryingResponse

logger = get_logger("io.ir_csv")


def save_ir_csv(path: Path | str, response: Response) -> Path:
    """Write a response as ordered ``(time, energy)`` rows."""
    path = Path(path)
    try:
        with path.open("w", newline="") as f:
            writer = csv.writer(f)
            if isinstance(response, ImpulseResponse):
                f.write(f"# fs={response.fs!r} start={response.start_time!r}\n")
                writer.writerow(["time", "energy"])
                writer.writerows(_rows(response.to_pairs()))
            elif isinstance(response, TimeVaryingResponse):
                starts = " ".join(repr(t) for t in response.timestamps.tolist())
                f.write(f"# fs={response.fs!r} starts={starts}\n")
                writer.writerow(["window", "time", "energy"])
                for k, ir in enumerate(response):
                    writer.writerows((k, *row) for row in _rows(ir.to_pairs()))
            else:
                raise TypeError("response must be ImpulseResponse or TimeVaryingResponse")
    except OSError as exc:
        raise AudioIOError(path, f"cannot write response ({exc})") from exc
    logger.info("wrote impulse response to %s", path)
    return path


def load_ir_csv(path: Path | str) -> Response:
    """Read a file written by ``save_ir_csv``."""
    path = Path(path)
    try:
        with path.open(newline="") as f:
            meta = _parse_meta(f.readline(), path)
            rows = list(csv.reader(f))
    except OSError as exc:
        raise AudioIOError(path, f"cannot read response ({exc})") from exc
    if not rows:
        raise ValueError(f"{path}: missing header")
    header, body = rows[0], rows[1:]
    fs = float(meta["fs"])
    if header == ["time", "energy"]:
        pairs = [(float(t), float(e)) for t, e in body]
        return ImpulseResponse.from_pairs(pairs, fs, float(meta.get("start", "0.0")))
    if header == ["window", "time", "energy"]:
        starts = [float(s) for s in meta["starts"].split()]
        grouped: dict[int, list[tuple[float, float]]] = {k: [] for k in range(len(starts))}
        for k, t, e in body:
            grouped[int(k)].append((float(t), float(e)))
        irs = [ImpulseResponse.from_pairs(grouped[k], fs, starts[k]) for k in range(len(starts))]
        return TimeVaryingResponse.stack(irs)
    raise ValueError(f"{path}: unrecognized header {header}")


def _rows(pairs: Iterable[tuple[float, float]]):
    for t, e in pairs:
        yield repr(t), repr(e)


def _parse_meta(line: str, path: Path) -> dict[str, str]:
    if not line.startswith("#"):
        raise ValueError(f"{path}: missing metadata line")
    body = line[1:].strip()
    meta: dict[str, str] = {}
    key = None
    for token in body.split():
        if "=" in token:
            key, value = token.split("=", 1)
            meta[key] = value
        elif key is not None:
            meta[key] += " " + token
    if "fs" not in meta:
        raise ValueError(f"{path}: metadata must include fs")
    return meta
