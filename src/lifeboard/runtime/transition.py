"""
The generation-stepping engine.

Boards are stepped on their sparse representation: a set of live cell
coordinates. Work is split into square tiles so that each tile can be
processed independently (and, with a pool executor, concurrently); partial
results are merged with commutative operations so tile order never matters.
"""
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from lifeboard.adapters.executors.local import SerialTileExecutor
from lifeboard.model import Cell
from lifeboard.rules import (
    ALIVE,
    MIN_NEIGHBORS_TO_SURVIVE,
    NEIGHBOR_OFFSETS,
    NEIGHBORS_TO_REPRODUCE,
    Grid,
    grid_dimensions,
)
from lifeboard.runtime.exceptions import GridShapeError
from lifeboard.runtime.protocols import TileExecutor

DEFAULT_TILE_SIZE = 64

# (x0, y0, x1, y1), half-open on the upper bounds
TileBounds = Tuple[int, int, int, int]

_serial = SerialTileExecutor()


def tile_bounds(width: int, height: int, tile_size: int = DEFAULT_TILE_SIZE) -> List[TileBounds]:
    """Splits a width x height board into non-overlapping tiles, row-major."""
    if tile_size <= 0:
        raise ValueError(f"Tile size must be positive, got {tile_size}")
    return [
        (x0, y0, min(x0 + tile_size, width), min(y0 + tile_size, height))
        for y0 in range(0, height, tile_size)
        for x0 in range(0, width, tile_size)
    ]


def partition_cells(
    live_cells: Iterable[Cell], tile_size: int = DEFAULT_TILE_SIZE
) -> Dict[Tuple[int, int], List[Cell]]:
    """Groups live cells by the tile that contains them."""
    if tile_size <= 0:
        raise ValueError(f"Tile size must be positive, got {tile_size}")
    tiles: Dict[Tuple[int, int], List[Cell]] = defaultdict(list)
    for x, y in live_cells:
        tiles[(x // tile_size, y // tile_size)].append((x, y))
    return tiles


# --- Tile workers ---
# Module-level so that process pools can pickle them.


def _accumulate_tile(job: Tuple[List[Cell], int, int]) -> Dict[Cell, int]:
    cells, width, height = job
    counts: Dict[Cell, int] = {}
    for x, y in cells:
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < width and 0 <= ny < height:
                key = (nx, ny)
                counts[key] = counts.get(key, 0) + 1
    return counts


def _scan_tile(job: Tuple[np.ndarray, int, int]) -> List[Cell]:
    block, x0, y0 = job
    rows, cols = np.nonzero(block == ALIVE)
    return [(x0 + c, y0 + r) for r, c in zip(rows.tolist(), cols.tolist())]


def _paint_tile(job: Tuple[List[Cell], int, int, int, int]) -> Tuple[int, int, np.ndarray]:
    cells, x0, y0, tile_width, tile_height = job
    block = np.zeros((tile_height, tile_width), dtype=np.int8)
    for x, y in cells:
        block[y - y0, x - x0] = ALIVE
    return x0, y0, block


# --- Public API ---


def merge_counts(partials: Iterable[Dict[Cell, int]]) -> Counter:
    """Sums per-tile neighbor counts key by key."""
    total: Counter = Counter()
    for partial in partials:
        total.update(partial)
    return total


def neighbor_counts(
    live_cells: Iterable[Cell],
    width: int,
    height: int,
    executor: Optional[TileExecutor] = None,
    tile_size: int = DEFAULT_TILE_SIZE,
) -> Counter:
    """Counts, for every in-bounds coordinate next to a live cell, its live neighbors."""
    executor = executor or _serial
    tiles = partition_cells(live_cells, tile_size)
    jobs = [(tiles[key], width, height) for key in sorted(tiles)]
    return merge_counts(executor.map(_accumulate_tile, jobs))


def step_live_cells(
    live_cells: Iterable[Cell],
    width: int,
    height: int,
    executor: Optional[TileExecutor] = None,
    tile_size: int = DEFAULT_TILE_SIZE,
) -> frozenset:
    """Computes the next generation of a board given as a set of live cells."""
    if width <= 0 or height <= 0:
        raise GridShapeError("Board cannot have zero dimensions")

    current = live_cells if isinstance(live_cells, (set, frozenset)) else frozenset(live_cells)
    counts = neighbor_counts(current, width, height, executor, tile_size)

    return frozenset(
        cell
        for cell, count in counts.items()
        if count == NEIGHBORS_TO_REPRODUCE
        or (count == MIN_NEIGHBORS_TO_SURVIVE and cell in current)
    )


def to_sparse(
    grid: Sequence[Sequence[int]],
    executor: Optional[TileExecutor] = None,
    tile_size: int = DEFAULT_TILE_SIZE,
) -> frozenset:
    """Converts a dense grid into the set of coordinates of its live cells."""
    width, height = grid_dimensions(grid)
    if any(len(row) != width for row in grid):
        raise GridShapeError("All rows of a grid must have the same length")
    if width == 0 or height == 0:
        return frozenset()

    executor = executor or _serial
    cells = np.asarray(grid, dtype=np.int64)
    jobs = [
        (cells[y0:y1, x0:x1], x0, y0)
        for x0, y0, x1, y1 in tile_bounds(width, height, tile_size)
    ]

    live = set()
    for partial in executor.map(_scan_tile, jobs):
        live.update(partial)
    return frozenset(live)


def to_dense(
    live_cells: Iterable[Cell],
    width: int,
    height: int,
    executor: Optional[TileExecutor] = None,
    tile_size: int = DEFAULT_TILE_SIZE,
) -> Grid:
    """Expands a set of live cells into a height x width grid of 0/1."""
    if width == 0 or height == 0:
        return [[] for _ in range(height)]

    executor = executor or _serial
    dense = np.zeros((height, width), dtype=np.int8)

    # Only tiles holding live cells need painting; the rest stay dead.
    tiles = partition_cells(live_cells, tile_size)
    jobs = []
    for tx, ty in sorted(tiles):
        x0, y0 = tx * tile_size, ty * tile_size
        tile_width = min(x0 + tile_size, width) - x0
        tile_height = min(y0 + tile_size, height) - y0
        jobs.append((tiles[(tx, ty)], x0, y0, tile_width, tile_height))

    for x0, y0, block in executor.map(_paint_tile, jobs):
        dense[y0 : y0 + block.shape[0], x0 : x0 + block.shape[1]] = block

    return dense.tolist()


def step(
    grid: Sequence[Sequence[int]],
    executor: Optional[TileExecutor] = None,
    tile_size: int = DEFAULT_TILE_SIZE,
) -> Grid:
    """
    Computes the next generation of a dense grid.

    Equivalent to `lifeboard.rules.reference_step`, but only does work
    proportional to the number of live cells between the two conversions.
    """
    width, height = grid_dimensions(grid)
    if width == 0 or height == 0:
        raise GridShapeError("Board cannot have zero dimensions")

    live_cells = to_sparse(grid, executor, tile_size)
    next_cells = step_live_cells(live_cells, width, height, executor, tile_size)
    return to_dense(next_cells, width, height, executor, tile_size)
