from typing import Callable, Iterable, List, Protocol, TypeVar

from lifeboard.model import Board

T = TypeVar("T")
R = TypeVar("R")


class BoardStore(Protocol):
    """
    Persistence contract consumed by the Engine.
    """

    async def load(self, board_id: str) -> Board:
        """Returns the board, raising BoardNotFoundError for unknown ids."""
        ...

    async def save(self, board: Board) -> None:
        """Upserts the full board state."""
        ...

    async def create(self, board: Board) -> None:
        """Inserts a new board. The caller guarantees a fresh id."""
        ...

    async def delete(self, board_id: str) -> None: ...

    async def list_boards(self) -> List[Board]: ...


class TileExecutor(Protocol):
    """
    Runs one function over a batch of independent tiles.

    Implementations may run the calls concurrently but must return the
    results in input order.
    """

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> List[R]: ...

    def shutdown(self) -> None: ...
