from .model import Board
from .rules import count_live_neighbors, apply_rule, reference_step
from .runtime.transition import step, step_live_cells, to_dense, to_sparse
from .runtime.engine import Engine
from .runtime.bus import MessageBus
from .runtime.subscribers import HumanReadableLogSubscriber
from .adapters.store import InMemoryBoardStore, SqliteBoardStore
from .adapters.executors import SerialTileExecutor, LocalTileExecutor

__all__ = [
    "Board",
    "count_live_neighbors",
    "apply_rule",
    "reference_step",
    "step",
    "step_live_cells",
    "to_dense",
    "to_sparse",
    "Engine",
    "MessageBus",
    "HumanReadableLogSubscriber",
    "InMemoryBoardStore",
    "SqliteBoardStore",
    "SerialTileExecutor",
    "LocalTileExecutor",
    "create_engine",
]


def create_engine(store=None, executor=None) -> Engine:
    """
    Creates an Engine with a default configuration: an in-memory store and
    a human-readable logger attached to the event bus.
    """
    bus = MessageBus()
    HumanReadableLogSubscriber(bus)
    return Engine(store=store or InMemoryBoardStore(), executor=executor, bus=bus)
