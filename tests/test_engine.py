import numpy as np
import pytest

from lifeboard import create_engine
from lifeboard.adapters.executors.local import LocalTileExecutor
from lifeboard.adapters.store.in_memory import InMemoryBoardStore
from lifeboard.model import Board
from lifeboard.patterns import random_grid
from lifeboard.runtime.engine import Engine, validate_grid
from lifeboard.runtime.events import (
    BoardCreated,
    BoardStabilized,
    ConvergenceFailed,
    GenerationsAdvanced,
    OperationFinished,
    OperationStarted,
)
from lifeboard.runtime.exceptions import (
    BoardNotFoundError,
    CellValueError,
    ConvergenceError,
    GenerationRangeError,
    GridShapeError,
    GridValidationError,
    InvalidBoardStateError,
    MissingGridError,
)

BLOCK = [[1, 1], [1, 1]]
BLINKER = [[0, 1, 0], [0, 1, 0], [0, 1, 0]]
BLINKER_NEXT = [[0, 0, 0], [1, 1, 1], [0, 0, 0]]


# --- Creation ---


@pytest.mark.asyncio
async def test_create_board_stores_generation_zero(engine, store):
    board_id = await engine.create_board(BLINKER)

    board = await engine.get_board(board_id)
    assert board.id == board_id
    assert board.width == 3
    assert board.height == 3
    assert board.generation == 0
    assert board.is_final is False
    assert board.last_updated is None
    assert board.live_cells == frozenset({(1, 0), (1, 1), (1, 2)})
    assert engine.dense(board) == BLINKER
    assert store.creates == 1


@pytest.mark.asyncio
async def test_create_board_accepts_non_square_grids(engine):
    grid = [[0, 1, 0, 0, 1]]
    board = await engine.get_board(await engine.create_board(grid))

    assert (board.width, board.height) == (5, 1)
    assert engine.dense(board) == grid


@pytest.mark.asyncio
async def test_create_board_ids_are_unique(engine):
    first = await engine.create_board(BLOCK)
    second = await engine.create_board(BLOCK)
    assert first != second


@pytest.mark.parametrize(
    "grid, error",
    [
        (None, MissingGridError),
        ([], GridShapeError),
        ([None], GridShapeError),
        ([[]], GridShapeError),
        ([[0, 1], [1]], GridShapeError),
        ([[0, 1], None], GridShapeError),
        ([[0, 2]], CellValueError),
        ([[0, -1]], CellValueError),
        ([[0, True]], CellValueError),
        ([[0, "1"]], CellValueError),
        ([[0, 1.0]], CellValueError),
        ({"initialState": [[0, 1]]}, GridShapeError),
        (5, GridShapeError),
        ("0110", GridShapeError),
        ([{0: 1}], GridShapeError),
        ([[0, 1], "10"], GridShapeError),
    ],
)
@pytest.mark.asyncio
async def test_create_board_rejects_invalid_grids(engine, store, grid, error):
    with pytest.raises(error):
        await engine.create_board(grid)
    assert store.creates == 0


def test_grid_errors_are_value_errors():
    with pytest.raises(ValueError):
        validate_grid([[3]])
    with pytest.raises(GridValidationError):
        validate_grid(None)


def test_cell_value_error_reports_position():
    with pytest.raises(CellValueError) as exc_info:
        validate_grid([[0, 0], [0, 7]])
    assert exc_info.value.row == 1
    assert exc_info.value.column == 1
    assert exc_info.value.value == 7


@pytest.mark.asyncio
async def test_create_board_accepts_numpy_and_tuple_rows(engine):
    grid = np.array([[0, 1, 1], [1, 0, 0]], dtype=np.int8)

    from_array = await engine.get_board(await engine.create_board(grid))
    from_tuples = await engine.get_board(
        await engine.create_board(((0, 1, 1), (1, 0, 0)))
    )

    assert from_array.live_cells == from_tuples.live_cells == frozenset(
        {(1, 0), (2, 0), (0, 1)}
    )


# --- Stepping ---


@pytest.mark.asyncio
async def test_next_generation_advances_one_step(engine, store):
    board_id = await engine.create_board(BLINKER)

    board = await engine.next_generation(board_id)

    assert board.generation == 1
    assert board.last_updated is not None
    assert board.is_final is False
    assert engine.dense(board) == BLINKER_NEXT
    assert await engine.get_board(board_id) == board
    assert store.saves == 1


@pytest.mark.asyncio
async def test_single_cell_dies(engine):
    board_id = await engine.create_board([[1]])
    board = await engine.next_generation(board_id)
    assert engine.dense(board) == [[0]]


@pytest.mark.asyncio
async def test_advance_applies_n_generations(engine):
    board_id = await engine.create_board(BLINKER)

    board = await engine.advance(board_id, 2)

    assert board.generation == 2
    assert engine.dense(board) == BLINKER


@pytest.mark.asyncio
async def test_advance_zero_only_touches_timestamp(engine, store):
    board_id = await engine.create_board(BLINKER)

    board = await engine.advance(board_id, 0)

    assert board.generation == 0
    assert board.last_updated is not None
    assert engine.dense(board) == BLINKER
    assert store.saves == 1


@pytest.mark.asyncio
async def test_advance_rejects_negative_generations(engine, store, bus_and_spy):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLINKER)

    with pytest.raises(GenerationRangeError):
        await engine.advance(board_id, -1)

    board = await engine.get_board(board_id)
    assert board.generation == 0
    assert store.saves == 0

    finished = spy.events_of_type(OperationFinished)[-1]
    assert finished.operation == "advance"
    assert finished.status == "Failed"
    assert "GenerationRangeError" in finished.error


@pytest.mark.parametrize("n", [0, 1, 2, 5])
@pytest.mark.asyncio
async def test_advance_composes_with_next_generation(engine, n):
    grid = random_grid(12, 9, density=0.4, seed=n)
    first = await engine.create_board(grid)
    second = await engine.create_board(grid)

    await engine.advance(first, n)
    stepped = await engine.next_generation(first)
    direct = await engine.advance(second, n + 1)

    assert stepped.generation == direct.generation == n + 1
    assert stepped.live_cells == direct.live_cells


@pytest.mark.asyncio
async def test_thread_executor_and_small_tiles_give_same_result(store):
    grid = random_grid(30, 25, density=0.35, seed=4)
    serial = Engine(store=store)
    executor = LocalTileExecutor("thread", max_workers=3)
    tiled = Engine(store=store, executor=executor, tile_size=4)
    try:
        a = await serial.advance(await serial.create_board(grid), 10)
        b = await tiled.advance(await tiled.create_board(grid), 10)
    finally:
        tiled.shutdown()

    assert a.live_cells == b.live_cells


def test_engine_rejects_non_positive_tile_size():
    with pytest.raises(ValueError):
        Engine(store=InMemoryBoardStore(), tile_size=0)


# --- Stability ---


@pytest.mark.asyncio
async def test_block_is_final_at_generation_one(engine):
    board_id = await engine.create_board(BLOCK)

    board = await engine.advance_to_stability(board_id)

    assert board.is_final is True
    assert board.generation == 1
    assert engine.dense(board) == BLOCK
    assert (await engine.get_board(board_id)).is_final is True


@pytest.mark.asyncio
async def test_dead_board_is_final_at_generation_one(engine):
    board_id = await engine.create_board([[0, 0, 0], [0, 0, 0]])
    board = await engine.advance_to_stability(board_id)
    assert board.is_final is True
    assert board.generation == 1


@pytest.mark.asyncio
async def test_dying_pattern_stabilizes_once_empty(engine):
    board_id = await engine.create_board([[0, 0, 0], [0, 1, 0], [0, 0, 0]])

    board = await engine.advance_to_stability(board_id)

    # Generation 1 is empty, generation 2 equals it.
    assert board.generation == 2
    assert board.live_cells == frozenset()
    assert board.is_final is True


@pytest.mark.asyncio
async def test_oscillator_raises_convergence_error_and_saves_nothing(
    engine, store, bus_and_spy
):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLINKER)

    with pytest.raises(ConvergenceError) as exc_info:
        await engine.advance_to_stability(board_id, max_generations=5)

    assert exc_info.value.board_id == board_id
    assert exc_info.value.max_generations == 5
    board = await engine.get_board(board_id)
    assert board.generation == 0
    assert board.is_final is False
    assert store.saves == 0
    assert len(spy.events_of_type(ConvergenceFailed)) == 1


@pytest.mark.parametrize("budget", [0, -3])
@pytest.mark.asyncio
async def test_stability_budget_must_be_positive(engine, store, bus_and_spy, budget):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLOCK)

    with pytest.raises(GenerationRangeError):
        await engine.advance_to_stability(board_id, budget)

    finished = spy.events_of_type(OperationFinished)[-1]
    assert finished.operation == "stabilize"
    assert finished.status == "Failed"
    assert store.saves == 0


@pytest.mark.asyncio
async def test_final_board_is_never_stepped_again(engine, store, bus_and_spy):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLOCK)
    final = await engine.advance_to_stability(board_id)
    saves = store.saves

    assert await engine.next_generation(board_id) == final
    assert await engine.advance(board_id, 10) == final
    assert await engine.advance_to_stability(board_id) == final
    assert store.saves == saves

    skipped = [
        e for e in spy.events_of_type(OperationFinished) if e.status == "Skipped"
    ]
    assert [e.operation for e in skipped] == ["next", "advance", "stabilize"]


# --- Missing and unsteppable boards ---


@pytest.mark.asyncio
async def test_unknown_board_raises_not_found(engine):
    with pytest.raises(BoardNotFoundError):
        await engine.get_board("missing")
    with pytest.raises(BoardNotFoundError):
        await engine.next_generation("missing")
    with pytest.raises(BoardNotFoundError):
        await engine.advance("missing", 3)
    with pytest.raises(BoardNotFoundError):
        await engine.advance_to_stability("missing")
    with pytest.raises(BoardNotFoundError):
        await engine.delete_board("missing")


@pytest.mark.asyncio
async def test_zero_dimension_board_cannot_be_stepped(engine, store):
    empty = Board(width=0, height=0)
    await store.create(empty)

    with pytest.raises(InvalidBoardStateError):
        await engine.next_generation(empty.id)
    with pytest.raises(InvalidBoardStateError):
        await engine.advance(empty.id, 0)
    with pytest.raises(InvalidBoardStateError):
        await engine.advance_to_stability(empty.id)
    assert store.saves == 0


@pytest.mark.asyncio
async def test_delete_board(engine):
    board_id = await engine.create_board(BLOCK)
    await engine.delete_board(board_id)

    with pytest.raises(BoardNotFoundError):
        await engine.get_board(board_id)
    assert await engine.list_boards() == []


# --- Events ---


@pytest.mark.asyncio
async def test_create_publishes_events(engine, bus_and_spy):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLINKER)

    started = spy.events_of_type(OperationStarted)
    created = spy.events_of_type(BoardCreated)
    finished = spy.events_of_type(OperationFinished)

    assert [e.operation for e in started] == ["create"]
    assert created[0].board_id == board_id
    assert created[0].population == 3
    assert finished[0].status == "Succeeded"
    assert finished[0].board_id == board_id
    assert started[0].operation_id == created[0].operation_id == finished[0].operation_id


@pytest.mark.asyncio
async def test_advance_publishes_generation_range(engine, bus_and_spy):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLINKER)

    await engine.advance(board_id, 3)

    advanced = spy.events_of_type(GenerationsAdvanced)
    assert len(advanced) == 1
    assert (advanced[0].from_generation, advanced[0].to_generation) == (0, 3)
    assert spy.events_of_type(OperationFinished)[-1].generation == 3


@pytest.mark.asyncio
async def test_stabilize_publishes_steps(engine, bus_and_spy):
    _, spy = bus_and_spy
    board_id = await engine.create_board(BLOCK)

    await engine.advance_to_stability(board_id)

    stabilized = spy.events_of_type(BoardStabilized)
    assert stabilized[0].generation == 1
    assert stabilized[0].steps == 1


@pytest.mark.asyncio
async def test_failed_operation_publishes_failure(engine, bus_and_spy):
    _, spy = bus_and_spy

    with pytest.raises(BoardNotFoundError):
        await engine.next_generation("missing")

    finished = spy.events_of_type(OperationFinished)
    assert len(finished) == 1
    assert finished[0].status == "Failed"
    assert "BoardNotFoundError" in finished[0].error


@pytest.mark.asyncio
async def test_create_engine_uses_in_memory_defaults():
    engine = create_engine()
    board_id = await engine.create_board(BLOCK)

    board = await engine.advance_to_stability(board_id)

    assert isinstance(engine.store, InMemoryBoardStore)
    assert board.is_final is True


@pytest.mark.asyncio
async def test_close_disconnects_store(engine, store):
    await engine.close()
    assert store.disconnects == 1
