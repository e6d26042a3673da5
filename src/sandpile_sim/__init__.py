"""
Sandpile Simulation Library

Relaxes a generalized Abelian sandpile (chip-firing model) on an unbounded
square lattice and renders its states as 4-bit indexed BMP images:
- GridStore: bounding-box backed lattice that grows one row/column at a time
- SandpileModel: synchronous toppling engine
- bitmap: BMP encoder
"""

from .grid import GridStore
from .model import SandpileModel
from .runner import RunSummary, SandpileConfig, run_simulation
from . import bitmap, utils

__all__ = [
    # Core
    "GridStore",
    "SandpileModel",
    # Driver
    "SandpileConfig",
    "RunSummary",
    "run_simulation",
    # Utilities
    "bitmap",
    "utils",
]
