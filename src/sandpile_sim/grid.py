"""
Dense, growable storage for an unbounded sandpile lattice.

The grid keeps two same-shaped ``uint64`` arrays: ``live`` (mutated during a
relaxation pass) and ``snapshot`` (the frozen copy that firing decisions are
read from). Array index ``[iy, ix]`` maps to the logical lattice coordinate
``(min_x + ix, min_y + iy)``. Growth adds exactly one row or column on one
edge and never relabels existing cells.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

import numpy as np

DTYPE = np.uint64

UP = "up"
DOWN = "down"
LEFT = "left"
RIGHT = "right"
DIRECTIONS = (UP, DOWN, LEFT, RIGHT)


class GridStore:
    """Bounding-box backed lattice with live and snapshot arrays."""

    def __init__(self) -> None:
        self.live = np.zeros((0, 0), dtype=DTYPE)
        self.snapshot = np.zeros((0, 0), dtype=DTYPE)
        self.min_x = 0
        self.min_y = 0

    # ------------------------------------------------------------------ shape
    @property
    def height(self) -> int:
        return self.live.shape[0]

    @property
    def width(self) -> int:
        return self.live.shape[1]

    @property
    def max_x(self) -> int:
        return self.min_x + self.width - 1

    @property
    def max_y(self) -> int:
        return self.min_y + self.height - 1

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """(min_x, min_y, max_x, max_y) of the covered bounding box."""
        return self.min_x, self.min_y, self.max_x, self.max_y

    # ------------------------------------------------------------------ setup
    def initialize(self, cells: Iterable) -> None:
        """
        Size the arrays to the bounding box of ``cells`` and write their grains.

        ``cells`` holds objects with ``x``, ``y`` and ``grains`` attributes.
        Cells are written in order, so a repeated coordinate keeps the last value.
        """
        cells = list(cells)
        if not cells:
            raise ValueError("cannot initialize grid from no cells: empty bounding box")

        xs = [int(c.x) for c in cells]
        ys = [int(c.y) for c in cells]
        self.min_x, self.min_y = min(xs), min(ys)
        width = max(xs) - self.min_x + 1
        height = max(ys) - self.min_y + 1

        self.live = np.zeros((height, width), dtype=DTYPE)
        self.snapshot = np.zeros((height, width), dtype=DTYPE)
        for cell in cells:
            self.live[int(cell.y) - self.min_y, int(cell.x) - self.min_x] = DTYPE(cell.grains)

    def refresh_snapshot(self) -> None:
        np.copyto(self.snapshot, self.live)

    # ----------------------------------------------------------------- growth
    def expand(self, direction: str) -> None:
        """
        Grow both arrays by one zeroed row (up/down) or column (left/right).

        Existing values keep their logical coordinates: growing ``up`` or
        ``left`` shifts array indices by one and decrements ``min_y``/``min_x``.
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown expand direction: {direction!r}")
        self.live = self._grown(self.live, direction)
        self.snapshot = self._grown(self.snapshot, direction)
        if direction == UP:
            self.min_y -= 1
        elif direction == LEFT:
            self.min_x -= 1

    @staticmethod
    def _grown(arr: np.ndarray, direction: str) -> np.ndarray:
        h, w = arr.shape
        if direction in (UP, DOWN):
            out = np.zeros((h + 1, w), dtype=DTYPE)
            row = 1 if direction == UP else 0
            out[row:row + h, :] = arr
        else:
            out = np.zeros((h, w + 1), dtype=DTYPE)
            col = 1 if direction == LEFT else 0
            out[:, col:col + w] = arr
        return out

    # ----------------------------------------------------------------- access
    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def get(self, x: int, y: int) -> int:
        """Grains at logical ``(x, y)``; cells outside the box hold zero."""
        if not self.contains(x, y):
            return 0
        return int(self.live[y - self.min_y, x - self.min_x])

    def set(self, x: int, y: int, grains: int) -> None:
        if not self.contains(x, y):
            raise IndexError(f"({x}, {y}) lies outside the grid bounds {self.bounds}")
        self.live[y - self.min_y, x - self.min_x] = DTYPE(grains)

    def total_grains(self) -> int:
        # object dtype sums in Python ints so large piles cannot wrap
        return int(self.live.sum(dtype=object))

    def to_array(self) -> np.ndarray:
        """Copy of the live grains, indexed ``[iy, ix]``."""
        return self.live.copy()

    def nonzero_cells(self) -> Iterator[Tuple[int, int, int]]:
        """Yield ``(x, y, grains)`` for every occupied cell in row-major order."""
        for iy, ix in np.argwhere(self.live):
            yield (
                self.min_x + int(ix),
                self.min_y + int(iy),
                int(self.live[iy, ix]),
            )


__all__ = ["GridStore", "DIRECTIONS", "UP", "DOWN", "LEFT", "RIGHT", "DTYPE"]
