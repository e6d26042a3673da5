"""
Synchronous (Jacobi-style) toppling engine for the generalized Abelian sandpile.

One call to :meth:`SandpileModel.iterate` performs a single relaxation pass:

1.  The live grid is copied into the snapshot.
2.  Cells are scanned in row-major order. Any cell whose *snapshot* value is
    at least 4 fires, sending ``grains // 4`` to each orthogonal neighbour
    of the *live* grid and losing four times that amount.
3.  A firing cell on the edge of the bounding box grows the grid by one row
    or column first. Growing up or left shifts array indices, so the scan
    cursor is moved along with the cell it points at.

Interior cells are handled by a Numba kernel. When the kernel reaches a
firing cell on the boundary it hands the cursor back to Python, which grows
the grid, fires the cell and resumes the kernel right after it. The result
is identical to a plain scan that re-reads the grid size on every step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np
from numba import njit

from . import bitmap
from .grid import DOWN, DTYPE, LEFT, RIGHT, UP, GridStore

THRESHOLD = DTYPE(4)


@njit(cache=True)
def _relax_interior(live, snap, y, x):
    """
    Fire interior cells from cursor ``(y, x)`` onwards.

    Returns ``(y, x, fired)`` where ``(y, x)`` is the first firing cell that
    touches the boundary (the caller must handle it), or ``(-1, -1)`` once
    the scan has finished.
    """
    h, w = live.shape
    four = np.uint64(4)
    fired = False
    while y < h:
        while x < w:
            grains = snap[y, x]
            if grains >= four:
                if y == 0 or x == 0 or y == h - 1 or x == w - 1:
                    return y, x, fired
                overflow = grains // four
                live[y, x] -= overflow * four
                live[y - 1, x] += overflow
                live[y + 1, x] += overflow
                live[y, x - 1] += overflow
                live[y, x + 1] += overflow
                fired = True
            x += 1
        x = 0
        y += 1
    return -1, -1, fired


class SandpileModel:
    """
    Owns one :class:`GridStore`, the pass counter and the last ``changed`` flag.
    """

    def __init__(self, cells: Optional[Iterable] = None) -> None:
        self.grid = GridStore()
        self.iteration = 0
        self.changed = False
        self._initialized = False
        if cells is not None:
            self.initialize(cells)

    def initialize(self, cells: Iterable) -> None:
        """Size the grid to the seeded cells. Raises ``ValueError`` if empty."""
        self.grid.initialize(cells)
        self.iteration = 0
        self.changed = False
        self._initialized = True

    # ------------------------------------------------------------------ engine
    def iterate(self) -> bool:
        """Run one relaxation pass; return whether any cell fired."""
        if not self._initialized:
            raise RuntimeError("SandpileModel.iterate() called before initialize()")

        grid = self.grid
        grid.refresh_snapshot()
        changed = False
        y, x = 0, 0
        while True:
            y, x, fired = _relax_interior(grid.live, grid.snapshot, y, x)
            changed = changed or fired
            if y < 0:
                break
            y, x = self._fire_boundary(int(y), int(x))
            changed = True
            x += 1

        self.iteration += 1
        self.changed = changed
        return changed

    def _fire_boundary(self, y: int, x: int) -> Tuple[int, int]:
        """
        Fire the edge cell at cursor ``(y, x)``, growing the grid where needed.

        Returns the adjusted cursor. After growing up (left) the cursor row
        (column) is bumped so it still points at the fired cell, and the
        remaining neighbours are addressed from that adjusted cursor.
        """
        grid = self.grid
        overflow = grid.snapshot[y, x] // THRESHOLD
        grid.live[y, x] -= overflow * THRESHOLD

        if y > 0:
            grid.live[y - 1, x] += overflow
        else:
            grid.expand(UP)
            grid.live[0, x] += overflow
            y += 1

        if y < grid.height - 1:
            grid.live[y + 1, x] += overflow
        else:
            grid.expand(DOWN)
            grid.live[grid.height - 1, x] += overflow

        if x > 0:
            grid.live[y, x - 1] += overflow
        else:
            grid.expand(LEFT)
            grid.live[y, 0] += overflow
            x += 1

        if x < grid.width - 1:
            grid.live[y, x + 1] += overflow
        else:
            grid.expand(RIGHT)
            grid.live[y, grid.width - 1] += overflow

        return y, x

    def stabilize(self, max_iter: int) -> bool:
        """
        Iterate until a pass fires nothing or ``max_iter`` passes have run
        in total. Returns ``True`` if the pile is stable.
        """
        changed = True
        while changed and self.iteration < max_iter:
            changed = self.iterate()
        return not changed

    # ---------------------------------------------------------------- outputs
    def get_iteration(self) -> int:
        return self.iteration

    def save_state_to_bmp(self, path) -> None:
        """Render the live grid to a 4-bit BMP. ``OSError`` propagates."""
        bitmap.write_bitmap(path, self.grid.live)

    def snapshot(self) -> Dict[str, Any]:
        """Summary of the current state."""
        grid = self.grid
        return {
            "iteration": self.iteration,
            "changed": self.changed,
            "width": grid.width,
            "height": grid.height,
            "bounds": grid.bounds,
            "total_grains": grid.total_grains(),
            "max_grains": int(grid.live.max()) if grid.live.size else 0,
        }


__all__ = ["SandpileModel", "THRESHOLD"]
