"""
Command-line entry point.

    sandpile -o <output_dir> -m <max_iter> -f <freq> [-i input.tsv] [-c params.toml]

Values from ``--config`` act as defaults; explicit flags win.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional

from . import utils
from .model import SandpileModel
from .runner import SandpileConfig, run_simulation

USAGE = "Use: sandpile -o <output_dir> -m <max_iter> -f <freq> [-i <input.tsv>] [-c <config>] [-q]"

REQUIRED = ("output_dir", "max_iter", "freq")


class UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    """Reports bad arguments through :class:`UsageError` instead of exiting."""

    def error(self, message: str):
        raise UsageError(message)


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="sandpile",
        usage=USAGE,
        description="Relax an Abelian sandpile and render its states as BMP images",
    )
    parser.add_argument("-o", "--output", dest="output_dir", help="Directory for state_<n>.bmp files")
    parser.add_argument("-m", "--max-iter", dest="max_iter", type=_non_negative_int, help="Maximum number of passes")
    parser.add_argument(
        "-f", "--freq", dest="freq", type=_non_negative_int,
        help="Save an image every FREQ passes (0 saves only the final state)",
    )
    parser.add_argument(
        "-i", "--input", dest="input_path", default=None,
        help=f"Tab-separated seed file (default: {utils.DEFAULT_INPUT})",
    )
    parser.add_argument("-c", "--config", help="Optional JSON/TOML parameter file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Silence per-iteration output")
    return parser


def build_config(args: argparse.Namespace, file_cfg: Dict[str, Any]) -> SandpileConfig:
    """Merge file parameters with command-line overrides."""
    merged: Dict[str, Any] = {"input_path": utils.DEFAULT_INPUT, "verbose": True}
    for key in ("output_dir", "max_iter", "freq", "input_path", "verbose"):
        if key in file_cfg:
            merged[key] = file_cfg[key]
    for key in ("output_dir", "max_iter", "freq", "input_path"):
        value = getattr(args, key)
        if value is not None:
            merged[key] = value
    if args.quiet:
        merged["verbose"] = False

    missing = [key for key in REQUIRED if merged.get(key) is None]
    if missing:
        raise UsageError(f"missing required options: {', '.join(missing)}")
    try:
        return SandpileConfig(
            output_dir=str(merged["output_dir"]),
            max_iter=int(merged["max_iter"]),
            freq=int(merged["freq"]),
            input_path=str(merged["input_path"]),
            verbose=bool(merged["verbose"]),
        )
    except (TypeError, ValueError) as e:
        raise UsageError(str(e)) from None


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        file_cfg = utils.load_params(args.config) if args.config else {}
        config = build_config(args, file_cfg)
    except UsageError as e:
        print(USAGE)
        print(f"error: {e}")
        return 1
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Could not load config {args.config}: {e}", file=sys.stderr)
        return 1

    try:
        out_dir = utils.ensure_output_dir(config.output_dir)
    except OSError as e:
        print(f"No new directory: {config.output_dir} ({e})", file=sys.stderr)
        return 1

    try:
        cells = utils.read_cells(config.input_path)
        model = SandpileModel(cells)
    except OSError as e:
        print(f"No open file: {config.input_path} ({e})", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1

    if config.verbose:
        print(
            f"Running sandpile: {len(cells)} seeded cells, {model.grid.total_grains()} grains, "
            f"grid {model.grid.width}x{model.grid.height}"
        )
    summary = run_simulation(model, config.max_iter, config.freq, out_dir, config.verbose)

    state = "stable" if summary.stabilized else "not yet stable"
    print(f"Simulation finished at iteration {summary.iteration} ({state})")
    print(f"   Time elapsed: {summary.elapsed_seconds:.2f} seconds")
    print(f"   Images written: {len(summary.saved)}")
    if summary.failed:
        print(f"   Images failed: {len(summary.failed)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
