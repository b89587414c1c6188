from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Optional, Tuple
from uuid import uuid4

# A cell coordinate is (x, y): x is the column, y is the row.
Cell = Tuple[int, int]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Board:
    """
    A rectangular Game of Life board.

    `live_cells` is the canonical state. A dense grid is a derived view that
    must be computed explicitly (see `lifeboard.runtime.transition.to_dense`).
    """

    width: int
    height: int
    live_cells: FrozenSet[Cell] = field(default_factory=frozenset)
    id: str = field(default_factory=lambda: str(uuid4()))
    generation: int = 0
    is_final: bool = False
    created_at: datetime = field(default_factory=utcnow)
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Board dimensions must be non-negative, got {self.width}x{self.height}"
            )
        if self.generation < 0:
            raise ValueError(f"Generation must be non-negative, got {self.generation}")

        # Accept any iterable of pairs but always store a frozenset of tuples.
        cells = frozenset((int(x), int(y)) for x, y in self.live_cells)
        for x, y in cells:
            if not (0 <= x < self.width and 0 <= y < self.height):
                raise ValueError(
                    f"Live cell ({x}, {y}) lies outside a {self.width}x{self.height} board"
                )
        object.__setattr__(self, "live_cells", cells)

    @property
    def is_empty(self) -> bool:
        """True when the board has no cells at all (a zero dimension)."""
        return self.width == 0 or self.height == 0

    @property
    def population(self) -> int:
        return len(self.live_cells)
