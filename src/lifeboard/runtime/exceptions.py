class LifeboardError(Exception):
    """Base class for all errors raised by lifeboard."""

    pass


class GridValidationError(LifeboardError, ValueError):
    """Raised when a caller-supplied grid does not have a valid shape or content."""

    pass


class MissingGridError(GridValidationError):
    def __init__(self, message: str = "Initial state must be provided"):
        super().__init__(message)


class GridShapeError(GridValidationError):
    pass


class CellValueError(GridValidationError):
    def __init__(self, value, row: int = -1, column: int = -1):
        self.value = value
        self.row = row
        self.column = column
        location = f" at row {row}, column {column}" if row >= 0 else ""
        super().__init__(
            f"All cell values must be either 0 or 1, got {value!r}{location}"
        )


class GenerationRangeError(LifeboardError, ValueError):
    """Raised for a negative generation count or a non-positive generation budget."""

    def __init__(self, name: str, value: int, requirement: str):
        self.name = name
        self.value = value
        super().__init__(f"'{name}' must be {requirement}, got {value}")


class CoordinateOutOfRangeError(LifeboardError, IndexError):
    def __init__(self, axis: str, value: int, limit: int):
        self.axis = axis
        self.value = value
        self.limit = limit
        super().__init__(
            f"{axis.upper()} coordinate {value} is outside board boundaries [0, {limit})"
        )


class BoardNotFoundError(LifeboardError, KeyError):
    """Raised by a board store when no board with the given id exists."""

    def __init__(self, board_id: str):
        self.board_id = board_id
        super().__init__(f"Board with id {board_id} not found")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return self.args[0]


class InvalidBoardStateError(LifeboardError):
    """Raised when a stored board cannot be stepped, e.g. it has a zero dimension."""

    pass


class ConvergenceError(LifeboardError):
    """
    Raised when advancing to stability exhausts the generation budget
    without two consecutive generations being equal.
    """

    def __init__(self, board_id: str, max_generations: int):
        self.board_id = board_id
        self.max_generations = max_generations
        super().__init__(
            f"Board {board_id} did not reach a final state after {max_generations} generations"
        )


class ConfigError(LifeboardError):
    pass
