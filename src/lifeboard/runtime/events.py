from dataclasses import dataclass, field
from typing import Optional
import time
import itertools

# Fast, thread-safe counter for event IDs
_event_id_gen = itertools.count()


@dataclass(frozen=True)
class Event:
    event_id: str = field(default_factory=lambda: str(next(_event_id_gen)))
    timestamp: float = field(default_factory=time.time)

    # Correlates all events of one Engine call
    operation_id: Optional[str] = None


@dataclass(frozen=True)
class BoardEvent(Event):
    board_id: str = ""


@dataclass(frozen=True)
class OperationStarted(BoardEvent):
    operation: str = ""  # "create", "next", "advance", "stabilize", ...


@dataclass(frozen=True)
class OperationFinished(BoardEvent):
    operation: str = ""
    status: str = "Unknown"  # "Succeeded", "Failed", "Skipped"
    duration: float = 0.0
    generation: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class BoardCreated(BoardEvent):
    width: int = 0
    height: int = 0
    population: int = 0


@dataclass(frozen=True)
class GenerationsAdvanced(BoardEvent):
    from_generation: int = 0
    to_generation: int = 0
    population: int = 0


@dataclass(frozen=True)
class BoardStabilized(BoardEvent):
    generation: int = 0
    steps: int = 0


@dataclass(frozen=True)
class ConvergenceFailed(BoardEvent):
    max_generations: int = 0
