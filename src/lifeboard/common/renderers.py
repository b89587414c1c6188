import sys
import json
from typing import Any, Dict, TextIO, Optional
from datetime import datetime, timezone

from lifeboard.common.messaging import MessageStore, level_value, protocols
from lifeboard.model import Board


def board_summary(board: Board) -> Dict[str, Any]:
    """The fields of a board worth logging. Cell sets stay out of log lines."""
    return {
        "id": board.id,
        "width": board.width,
        "height": board.height,
        "generation": board.generation,
        "is_final": board.is_final,
        "population": board.population,
    }


def json_default(o: Any) -> Any:
    """`default` hook for json.dumps over message arguments."""
    if isinstance(o, Board):
        return board_summary(o)
    if isinstance(o, datetime):
        return o.isoformat()
    if isinstance(o, (set, frozenset)):
        return sorted(o)
    if isinstance(o, Exception):
        return f"{type(o).__name__}: {o}"
    return repr(o)


class LevelFilter:
    """Drops messages below `min_level`."""

    def __init__(self, min_level: str = "INFO"):
        self.min_level = min_level.upper()
        self._min_level_val = level_value(min_level)

    def enabled(self, level: str) -> bool:
        return level_value(level) >= self._min_level_val


class CliRenderer(LevelFilter, protocols.Renderer):
    """
    Renders messages as human-readable text lines.
    """

    def __init__(
        self,
        store: MessageStore,
        stream: Optional[TextIO] = None,
        min_level: str = "INFO",
    ):
        super().__init__(min_level)
        self._store = store
        self._stream = stream if stream is not None else sys.stderr

    def render(self, msg_id: str, level: str, **kwargs):
        if self.enabled(level):
            print(self._store.get(msg_id, **kwargs), file=self._stream)


class JsonRenderer(LevelFilter, protocols.Renderer):
    """
    Renders messages as JSON lines. Boards are logged as summaries and
    timestamps as ISO-8601 strings.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        min_level: str = "INFO",
    ):
        super().__init__(min_level)
        self._stream = stream if stream is not None else sys.stderr

    def render(self, msg_id: str, level: str, **kwargs):
        if not self.enabled(level):
            return
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "event_id": msg_id,
            "data": kwargs,
        }
        print(json.dumps(record, default=json_default), file=self._stream)


def create_renderer(
    store: MessageStore,
    log_format: str = "human",
    min_level: str = "INFO",
    stream: Optional[TextIO] = None,
) -> protocols.Renderer:
    if log_format == "json":
        return JsonRenderer(stream=stream, min_level=min_level)
    if log_format == "human":
        return CliRenderer(store=store, stream=stream, min_level=min_level)
    raise ValueError(f"Unknown log format '{log_format}', expected 'human' or 'json'")
