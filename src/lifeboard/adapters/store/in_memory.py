from typing import Dict, List

from lifeboard.model import Board
from lifeboard.runtime.exceptions import BoardNotFoundError


class InMemoryBoardStore:
    def __init__(self):
        self._boards: Dict[str, Board] = {}

    async def load(self, board_id: str) -> Board:
        try:
            return self._boards[board_id]
        except KeyError:
            raise BoardNotFoundError(board_id) from None

    async def save(self, board: Board) -> None:
        self._boards[board.id] = board

    async def create(self, board: Board) -> None:
        self._boards[board.id] = board

    async def delete(self, board_id: str) -> None:
        if board_id not in self._boards:
            raise BoardNotFoundError(board_id)
        del self._boards[board_id]

    async def list_boards(self) -> List[Board]:
        return sorted(self._boards.values(), key=lambda b: b.created_at)
