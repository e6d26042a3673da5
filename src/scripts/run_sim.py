# src/scripts/run_sim.py
import sys
from pathlib import Path

SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

from sandpile_sim import cli  # type: ignore[import]

if __name__ == "__main__":
    sys.exit(cli.main())
