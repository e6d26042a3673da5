"""
Unit tests for the growable lattice store.
"""

import numpy as np
import pytest

from sandpile_sim.grid import DIRECTIONS, GridStore
from sandpile_sim.utils import Cell


def make_grid(*cells):
    grid = GridStore()
    grid.initialize([Cell(*c) for c in cells])
    return grid


def test_initialize_sizes_to_bounding_box():
    grid = make_grid((-2, 1, 5), (3, -1, 7))

    assert (grid.min_x, grid.min_y) == (-2, -1)
    assert (grid.max_x, grid.max_y) == (3, 1)
    assert (grid.width, grid.height) == (6, 3)
    assert grid.snapshot.shape == grid.live.shape
    assert grid.live.dtype == np.uint64

    assert grid.get(-2, 1) == 5
    assert grid.get(3, -1) == 7
    # array index [iy, ix] is logical (min_x + ix, min_y + iy)
    assert grid.live[2, 0] == 5
    assert grid.live[0, 5] == 7
    assert grid.total_grains() == 12


def test_duplicate_coordinates_last_write_wins():
    grid = make_grid((0, 0, 9), (0, 0, 2))
    assert grid.get(0, 0) == 2
    assert grid.total_grains() == 2


def test_initialize_without_cells_is_an_error():
    with pytest.raises(ValueError, match="empty bounding box"):
        GridStore().initialize([])


@pytest.mark.parametrize(
    "direction, shape, bounds",
    [
        ("up", (3, 2), (0, -1, 1, 1)),
        ("down", (3, 2), (0, 0, 1, 2)),
        ("left", (2, 3), (-1, 0, 1, 1)),
        ("right", (2, 3), (0, 0, 2, 1)),
    ],
)
def test_expand_keeps_logical_coordinates(direction, shape, bounds):
    grid = make_grid((0, 0, 1), (1, 0, 2), (0, 1, 3), (1, 1, 4))
    grid.refresh_snapshot()

    grid.expand(direction)

    assert grid.live.shape == shape
    assert grid.snapshot.shape == shape
    assert grid.bounds == bounds
    assert [grid.get(0, 0), grid.get(1, 0), grid.get(0, 1), grid.get(1, 1)] == [1, 2, 3, 4]
    assert grid.total_grains() == 10
    # snapshot moved with the live array
    assert np.array_equal(grid.snapshot, grid.live)


def test_expand_new_edge_is_zero():
    grid = make_grid((0, 0, 7))
    grid.expand("up")
    grid.expand("left")
    assert grid.live.tolist() == [[0, 0], [0, 7]]
    assert (grid.min_x, grid.min_y) == (-1, -1)


def test_each_expand_adds_exactly_one_row_or_column():
    grid = make_grid((0, 0, 1))
    for direction in DIRECTIONS * 3:
        h, w = grid.height, grid.width
        grid.expand(direction)
        grown = (grid.height - h) + (grid.width - w)
        assert grown == 1


def test_expand_rejects_unknown_direction():
    grid = make_grid((0, 0, 1))
    with pytest.raises(ValueError):
        grid.expand("diagonal")


def test_get_outside_is_zero_and_set_outside_raises():
    grid = make_grid((0, 0, 1))
    assert grid.get(10, 10) == 0
    with pytest.raises(IndexError):
        grid.set(10, 10, 3)
    grid.set(0, 0, 3)
    assert grid.get(0, 0) == 3


def test_total_grains_does_not_wrap():
    grid = make_grid((0, 0, 2**63), (1, 0, 2**63))
    assert grid.total_grains() == 2**64


def test_nonzero_cells_reports_logical_coordinates():
    grid = make_grid((-1, -1, 3), (1, 1, 2))
    assert list(grid.nonzero_cells()) == [(-1, -1, 3), (1, 1, 2)]
