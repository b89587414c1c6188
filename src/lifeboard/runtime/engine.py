import asyncio
import dataclasses
import time
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

import numpy as np

from lifeboard.adapters.executors.local import SerialTileExecutor
from lifeboard.model import Board, utcnow
from lifeboard.rules import ALIVE, DEAD
from lifeboard.runtime import transition
from lifeboard.runtime.bus import MessageBus
from lifeboard.runtime.events import (
    BoardCreated,
    BoardStabilized,
    ConvergenceFailed,
    GenerationsAdvanced,
    OperationFinished,
    OperationStarted,
)
from lifeboard.runtime.exceptions import (
    CellValueError,
    ConvergenceError,
    GenerationRangeError,
    GridShapeError,
    InvalidBoardStateError,
    MissingGridError,
)
from lifeboard.runtime.protocols import BoardStore, TileExecutor

DEFAULT_MAX_GENERATIONS = 1000

# Containers accepted for a grid and for each of its rows
_ROW_TYPES = (list, tuple, np.ndarray)


def validate_grid(grid: Optional[Sequence[Sequence[int]]]) -> None:
    """
    Checks that a caller-supplied grid is a non-empty rectangle of 0/1 values.
    """
    if grid is None:
        raise MissingGridError()
    if not isinstance(grid, _ROW_TYPES):
        raise GridShapeError(
            f"Initial state must be a list of rows, got {type(grid).__name__}"
        )
    if len(grid) == 0:
        raise GridShapeError("Initial state cannot be empty")
    for y, row in enumerate(grid):
        if not isinstance(row, _ROW_TYPES):
            raise GridShapeError(
                f"Row {y} must be a list of cells, got {type(row).__name__}"
            )

    width = len(grid[0])
    if width == 0:
        raise GridShapeError("Initial state cannot have zero-width rows")

    for y, row in enumerate(grid):
        if len(row) != width:
            raise GridShapeError(f"Row {y} has {len(row)} cells, expected {width}")
        for x, cell in enumerate(row):
            # bool is an int subclass; True is not a cell value.
            if isinstance(cell, bool) or not isinstance(cell, (int, np.integer)):
                raise CellValueError(cell, y, x)
            if cell != ALIVE and cell != DEAD:
                raise CellValueError(cell, y, x)


class Engine:
    """
    Orchestrates board creation and generation stepping on top of a BoardStore.

    Every public operation loads the board, computes off the event loop and
    persists the result at most once, so a failed call never leaves an
    intermediate state behind.
    """

    def __init__(
        self,
        store: BoardStore,
        executor: Optional[TileExecutor] = None,
        bus: Optional[MessageBus] = None,
        tile_size: int = transition.DEFAULT_TILE_SIZE,
    ):
        if tile_size <= 0:
            raise ValueError(f"Tile size must be positive, got {tile_size}")
        self.store = store
        self.executor = executor or SerialTileExecutor()
        self.bus = bus or MessageBus()
        self.tile_size = tile_size

    # --- Event plumbing ---

    @asynccontextmanager
    async def _operation(self, operation: str, board_id: str = ""):
        operation_id = str(uuid4())
        start_time = time.time()
        self.bus.publish(
            OperationStarted(
                operation_id=operation_id, board_id=board_id, operation=operation
            )
        )
        outcome = {"status": "Succeeded", "generation": None}
        try:
            yield operation_id, outcome
        except Exception as e:
            self.bus.publish(
                OperationFinished(
                    operation_id=operation_id,
                    board_id=board_id,
                    operation=operation,
                    status="Failed",
                    duration=time.time() - start_time,
                    error=f"{type(e).__name__}: {e}",
                )
            )
            raise
        self.bus.publish(
            OperationFinished(
                operation_id=operation_id,
                board_id=board_id or outcome.get("board_id", ""),
                operation=operation,
                status=outcome["status"],
                duration=time.time() - start_time,
                generation=outcome["generation"],
            )
        )

    # --- Computation (runs in a worker thread) ---

    def _step(self, board: Board, cells: frozenset) -> frozenset:
        return transition.step_live_cells(
            cells, board.width, board.height, self.executor, self.tile_size
        )

    def _run_generations(self, board: Board, generations: int) -> frozenset:
        cells = board.live_cells
        for _ in range(generations):
            cells = self._step(board, cells)
        return cells

    def _run_until_stable(
        self, board: Board, max_generations: int
    ) -> Tuple[frozenset, int, bool]:
        previous = board.live_cells
        for steps in range(1, max_generations + 1):
            current = self._step(board, previous)
            # Dimensions never change, so equal live sets mean equal states.
            if current == previous:
                return current, steps, True
            previous = current
        return previous, max_generations, False

    # --- Helpers ---

    @staticmethod
    def _ensure_steppable(board: Board) -> None:
        if board.is_empty:
            raise InvalidBoardStateError(
                f"Board {board.id} has zero dimensions ({board.width}x{board.height}) and cannot be stepped"
            )

    async def _commit(
        self, board: Board, cells: frozenset, steps: int, is_final: bool = False
    ) -> Board:
        updated = dataclasses.replace(
            board,
            live_cells=cells,
            generation=board.generation + steps,
            last_updated=utcnow(),
            is_final=is_final,
        )
        await self.store.save(updated)
        return updated

    # --- Public API ---

    async def create_board(self, grid: Optional[Sequence[Sequence[int]]]) -> str:
        """Validates a dense grid, stores it as a new board and returns its id."""
        async with self._operation("create") as (operation_id, outcome):
            validate_grid(grid)
            live_cells = await asyncio.to_thread(
                transition.to_sparse, grid, self.executor, self.tile_size
            )
            board = Board(width=len(grid[0]), height=len(grid), live_cells=live_cells)
            await self.store.create(board)
            outcome["board_id"] = board.id
            outcome["generation"] = board.generation
            self.bus.publish(
                BoardCreated(
                    operation_id=operation_id,
                    board_id=board.id,
                    width=board.width,
                    height=board.height,
                    population=board.population,
                )
            )
            return board.id

    async def get_board(self, board_id: str) -> Board:
        return await self.store.load(board_id)

    async def list_boards(self) -> List[Board]:
        return await self.store.list_boards()

    async def delete_board(self, board_id: str) -> None:
        async with self._operation("delete", board_id):
            await self.store.delete(board_id)

    async def next_generation(self, board_id: str) -> Board:
        """Advances a board by exactly one generation."""
        return await self._advance("next", board_id, 1)

    async def advance(self, board_id: str, generations: int) -> Board:
        """Advances a board by `generations` generations (0 is allowed)."""
        return await self._advance("advance", board_id, generations)

    async def _advance(self, operation: str, board_id: str, generations: int) -> Board:
        async with self._operation(operation, board_id) as (operation_id, outcome):
            if generations < 0:
                raise GenerationRangeError("generations", generations, "non-negative")
            board = await self.store.load(board_id)
            if board.is_final:
                outcome["status"] = "Skipped"
                outcome["generation"] = board.generation
                return board

            self._ensure_steppable(board)
            cells = await asyncio.to_thread(self._run_generations, board, generations)
            updated = await self._commit(board, cells, generations)

            outcome["generation"] = updated.generation
            self.bus.publish(
                GenerationsAdvanced(
                    operation_id=operation_id,
                    board_id=board_id,
                    from_generation=board.generation,
                    to_generation=updated.generation,
                    population=updated.population,
                )
            )
            return updated

    async def advance_to_stability(
        self, board_id: str, max_generations: int = DEFAULT_MAX_GENERATIONS
    ) -> Board:
        """
        Steps a board until two consecutive generations are identical and
        marks it final.

        Raises ConvergenceError, without persisting anything, if no stable
        state is reached within `max_generations` steps. Oscillators with a
        period of 2 or more always end up here.
        """
        async with self._operation("stabilize", board_id) as (operation_id, outcome):
            if max_generations <= 0:
                raise GenerationRangeError(
                    "max_generations", max_generations, "positive"
                )
            board = await self.store.load(board_id)
            if board.is_final:
                outcome["status"] = "Skipped"
                outcome["generation"] = board.generation
                return board

            self._ensure_steppable(board)
            cells, steps, converged = await asyncio.to_thread(
                self._run_until_stable, board, max_generations
            )
            if not converged:
                self.bus.publish(
                    ConvergenceFailed(
                        operation_id=operation_id,
                        board_id=board_id,
                        max_generations=max_generations,
                    )
                )
                raise ConvergenceError(board_id, max_generations)

            updated = await self._commit(board, cells, steps, is_final=True)
            outcome["generation"] = updated.generation
            self.bus.publish(
                BoardStabilized(
                    operation_id=operation_id,
                    board_id=board_id,
                    generation=updated.generation,
                    steps=steps,
                )
            )
            return updated

    def dense(self, board: Board) -> List[List[int]]:
        """Returns the dense grid view of a board."""
        return transition.to_dense(
            board.live_cells, board.width, board.height, self.executor, self.tile_size
        )

    def shutdown(self) -> None:
        self.executor.shutdown()

    async def close(self) -> None:
        """Shuts down the tile executor and disconnects the store, if it holds connections."""
        self.shutdown()
        disconnect = getattr(self.store, "disconnect", None)
        if disconnect is not None:
            await disconnect()
