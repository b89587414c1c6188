from typing import List

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

from lifeboard.common.messaging import protocols, MessageStore
from lifeboard.common.renderers import LevelFilter
from lifeboard.model import Board

# Define a custom theme for Rich
custom_theme = Theme(
    {
        "debug": "dim",
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "data": "green",
    }
)

LIVE_GLYPH = "██"
DEAD_GLYPH = "· "


class RichCliRenderer(LevelFilter, protocols.Renderer):
    """
    A renderer that uses the 'rich' library for formatted, colorful output.
    """

    def __init__(
        self,
        store: MessageStore,
        min_level: str = "INFO",
    ):
        super().__init__(min_level)
        self._store = store
        self._console = Console(theme=custom_theme, stderr=True)

    def render(self, msg_id: str, level: str, **kwargs):
        if not self.enabled(level):
            return

        message = self._store.get(msg_id, **kwargs)

        # Use style tags that match our theme
        style = level.lower() if level.lower() in custom_theme.styles else ""

        self._console.print(message, style=style, markup=False, soft_wrap=True)


def grid_text(grid: List[List[int]]) -> Text:
    text = Text()
    for y, row in enumerate(grid):
        if y:
            text.append("\n")
        for cell in row:
            if cell:
                text.append(LIVE_GLYPH, style="data")
            else:
                text.append(DEAD_GLYPH, style="dim")
    return text


def print_board(console: Console, store: MessageStore, board: Board, grid: List[List[int]]):
    console.print(
        store.get(
            "cli.summary",
            board_id=board.id,
            width=board.width,
            height=board.height,
            generation=board.generation,
            population=board.population,
            is_final=board.is_final,
        ),
        markup=False,
        soft_wrap=True,
    )
    if grid:
        console.print(grid_text(grid))
