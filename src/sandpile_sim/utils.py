# src/sandpile_sim/utils.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore

DEFAULT_INPUT = "input.tsv"

INT16_MIN, INT16_MAX = -(1 << 15), (1 << 15) - 1
UINT64_MAX = (1 << 64) - 1


@dataclass(frozen=True)
class Cell:
    """One seeded lattice site."""

    x: int
    y: int
    grains: int


class InputFormatError(ValueError):
    """A line of the seed file could not be parsed."""

    def __init__(self, path, lineno: int, message: str) -> None:
        self.path = str(path)
        self.lineno = lineno
        super().__init__(f"{self.path}:{lineno}: {message}")


def _parse_int(token: str, lo: int, hi: int, name: str, path, lineno: int) -> int:
    try:
        value = int(token.strip())
    except ValueError:
        raise InputFormatError(path, lineno, f"{name} is not an integer: {token!r}") from None
    if not lo <= value <= hi:
        raise InputFormatError(path, lineno, f"{name}={value} outside [{lo}, {hi}]")
    return value


def iter_cells(path: str | os.PathLike[str]) -> Iterator[Cell]:
    """
    Parse a tab-separated seed file of ``x<TAB>y<TAB>grains`` lines.

    Coordinates are signed 16-bit, grain counts unsigned 64-bit. Blank lines
    are skipped and fields after the third are ignored.
    """
    with open(path, "r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            fields = line.split("\t")
            if len(fields) < 3:
                raise InputFormatError(
                    path, lineno, f"expected 3 tab-separated fields, got {len(fields)}"
                )
            yield Cell(
                x=_parse_int(fields[0], INT16_MIN, INT16_MAX, "x", path, lineno),
                y=_parse_int(fields[1], INT16_MIN, INT16_MAX, "y", path, lineno),
                grains=_parse_int(fields[2], 0, UINT64_MAX, "grains", path, lineno),
            )


def read_cells(path: str | os.PathLike[str]) -> List[Cell]:
    return list(iter_cells(path))


def ensure_output_dir(path: str | os.PathLike[str]) -> Path:
    """Create ``path`` (and parents) if missing. Raises ``OSError`` on failure."""
    out_dir = Path(path)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir


def state_filename(iteration: int) -> str:
    return f"state_{iteration}.bmp"


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load run parameters from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        if tomllib is None:
            raise RuntimeError("tomllib is unavailable; cannot parse TOML files")
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
