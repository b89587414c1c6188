"""
Cell-by-cell rules of Conway's Game of Life.

This module is the semantic reference for the transition engine: every
optimized path in `lifeboard.runtime.transition` must produce exactly what
`reference_step` produces.
"""
from typing import List, Sequence, Tuple

from lifeboard.runtime.exceptions import (
    CellValueError,
    CoordinateOutOfRangeError,
    GridShapeError,
)

Grid = List[List[int]]

ALIVE = 1
DEAD = 0
MIN_NEIGHBORS_TO_SURVIVE = 2
MAX_NEIGHBORS_TO_SURVIVE = 3
NEIGHBORS_TO_REPRODUCE = 3

# Moore neighborhood offsets as (dx, dy), row by row.
NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1),
)


def grid_dimensions(grid: Sequence[Sequence[int]]) -> Tuple[int, int]:
    """Returns (width, height) of a dense grid."""
    if len(grid) == 0:
        return 0, 0
    return len(grid[0]), len(grid)


def count_live_neighbors(grid: Sequence[Sequence[int]], x: int, y: int) -> int:
    """
    Counts the live cells among the up to 8 neighbors of (x, y).

    Neighbors outside the board are not counted, but (x, y) itself must lie
    on the board.
    """
    width, height = grid_dimensions(grid)
    if x < 0 or x >= width:
        raise CoordinateOutOfRangeError("x", x, width)
    if y < 0 or y >= height:
        raise CoordinateOutOfRangeError("y", y, height)

    live = 0
    for dx, dy in NEIGHBOR_OFFSETS:
        nx, ny = x + dx, y + dy
        if 0 <= nx < width and 0 <= ny < height:
            live += grid[ny][nx]
    return live


def apply_rule(state: int, live_neighbors: int) -> int:
    """Returns the next state of a single cell."""
    if state == ALIVE:
        if MIN_NEIGHBORS_TO_SURVIVE <= live_neighbors <= MAX_NEIGHBORS_TO_SURVIVE:
            return ALIVE
        return DEAD
    if state == DEAD:
        return ALIVE if live_neighbors == NEIGHBORS_TO_REPRODUCE else DEAD
    raise CellValueError(state)


def reference_step(grid: Sequence[Sequence[int]]) -> Grid:
    """Computes the next generation by visiting every cell."""
    width, height = grid_dimensions(grid)
    if width == 0 or height == 0:
        raise GridShapeError("Board cannot have zero dimensions")

    return [
        [apply_rule(grid[y][x], count_live_neighbors(grid, x, y)) for x in range(width)]
        for y in range(height)
    ]
