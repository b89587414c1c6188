from .in_memory import InMemoryBoardStore
from .sqlite import SqliteBoardStore

__all__ = ["InMemoryBoardStore", "SqliteBoardStore"]
