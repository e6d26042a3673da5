from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from . import utils
from .model import SandpileModel


@dataclass
class SandpileConfig:
    """Parameters for one simulation run."""

    output_dir: str
    max_iter: int
    freq: int = 0
    input_path: str = utils.DEFAULT_INPUT
    verbose: bool = True

    def __post_init__(self) -> None:
        if self.max_iter < 0:
            raise ValueError(f"max_iter must be non-negative, got {self.max_iter}")
        if self.freq < 0:
            raise ValueError(f"freq must be non-negative, got {self.freq}")


@dataclass
class RunSummary:
    iteration: int = 0
    stabilized: bool = False
    saved: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0


def _save(model: SandpileModel, out_dir: Path, summary: RunSummary, verbose: bool, label: str) -> None:
    path = out_dir / utils.state_filename(model.iteration)
    try:
        model.save_state_to_bmp(path)
    except OSError as e:
        # A failed image is skipped; the run carries on.
        summary.failed.append(path)
        print(f"Could not write {path}: {e}", file=sys.stderr)
        return
    summary.saved.append(path)
    if verbose:
        print(f"{label}: {path}")


def run_simulation(
    model: SandpileModel,
    max_iter: int,
    freq: int,
    output_dir: str | Path,
    verbose: bool = True,
) -> RunSummary:
    """
    Relax ``model`` until it stabilizes or ``max_iter`` passes have run.

    ``state_<iteration>.bmp`` is written every ``freq`` passes (``freq == 0``
    disables this) and once more at the end unless the last pass was already
    saved.
    """
    out_dir = Path(output_dir)
    summary = RunSummary()
    start_time = time.time()

    changed = True
    while changed and model.iteration < max_iter:
        changed = model.iterate()
        if verbose:
            print(f"Iteration: {model.iteration}")
        if freq != 0 and model.iteration % freq == 0:
            _save(model, out_dir, summary, verbose, "Saved image")

    if freq == 0 or model.iteration % freq != 0:
        _save(model, out_dir, summary, verbose, "Saved final image")

    summary.iteration = model.iteration
    summary.stabilized = not changed
    summary.elapsed_seconds = time.time() - start_time
    return summary


__all__ = ["RunSummary", "SandpileConfig", "run_simulation"]
