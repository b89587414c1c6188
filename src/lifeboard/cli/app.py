import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
import yaml
from aiohttp import web
from rich.console import Console

from lifeboard.common.messaging import bus
from lifeboard.config import Settings, build_engine, configure_logging, load_settings
from lifeboard.patterns import get_pattern, parse_size, random_grid
from lifeboard.runtime.engine import Engine
from lifeboard.runtime.exceptions import ConfigError, LifeboardError
from lifeboard.server import create_app
from .rendering import RichCliRenderer, print_board

app = typer.Typer(help="Create and step Conway's Game of Life boards.")
console = Console()


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj


def _execute(settings: Settings, action: Callable[[Engine], Awaitable[Any]]) -> Any:
    """Runs one engine action and turns domain errors into exit code 1."""

    async def runner():
        engine = build_engine(settings)
        try:
            return await action(engine)
        finally:
            await engine.close()

    try:
        return asyncio.run(runner())
    except LifeboardError as e:
        bus.error("cli.error", error=e)
        raise typer.Exit(1)


async def _show(engine: Engine, board) -> None:
    print_board(console, bus.store, board, engine.dense(board))


@app.callback()
def main_options(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="YAML configuration file (defaults to $LIFEBOARD_CONFIG)."
    ),
    db: Optional[str] = typer.Option(
        None, "--db", help="Board store URL, e.g. sqlite:///boards.db or memory://."
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Minimum level for console logging (DEBUG, INFO, WARNING, ERROR).",
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Format for logging ('human' or 'json')."
    ),
):
    try:
        settings = load_settings(config)
        if db is not None:
            settings.store_url = db
        if log_level is not None:
            settings.log_level = log_level
        if log_format is not None:
            settings.log_format = log_format
        settings.validate()
    except ConfigError as e:
        bus.set_renderer(RichCliRenderer(store=bus.store))
        bus.error("cli.error", error=e)
        raise typer.Exit(1)

    if settings.log_format == "json":
        configure_logging(settings)
    else:
        bus.set_renderer(RichCliRenderer(store=bus.store, min_level=settings.log_level))
    ctx.obj = settings


def _read_grid(path: Path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            # YAML is a superset of JSON, so both formats load here.
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        bus.error("cli.input_error", path=str(path), error=e)
        raise typer.Exit(1)


@app.command()
def create(
    ctx: typer.Context,
    file: Optional[Path] = typer.Argument(
        None, help="JSON or YAML file holding a list of rows of 0/1."
    ),
    pattern: Optional[str] = typer.Option(
        None, "--pattern", help="Named pattern (block, blinker, beehive, toad, glider)."
    ),
    random_size: Optional[str] = typer.Option(
        None, "--random", help="Random board of the given WIDTHxHEIGHT."
    ),
    density: float = typer.Option(0.25, "--density", help="Live cell ratio for --random."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for --random."),
):
    """
    Create a board and print its id.
    """
    sources = [s for s in (file, pattern, random_size) if s is not None]
    if len(sources) != 1:
        bus.error("cli.error", error="Provide exactly one of FILE, --pattern or --random")
        raise typer.Exit(2)

    try:
        if file is not None:
            grid = _read_grid(file)
        elif pattern is not None:
            grid = get_pattern(pattern)
        else:
            width, height = parse_size(random_size)
            grid = random_grid(width, height, density=density, seed=seed)
    except (KeyError, ValueError) as e:
        bus.error("cli.error", error=e.args[0] if e.args else e)
        raise typer.Exit(2)

    board_id = _execute(_settings(ctx), lambda engine: engine.create_board(grid))
    typer.echo(board_id)


@app.command()
def show(ctx: typer.Context, board_id: str = typer.Argument(..., help="Board id.")):
    """
    Print a board without changing it.
    """

    async def action(engine: Engine):
        await _show(engine, await engine.get_board(board_id))

    _execute(_settings(ctx), action)


@app.command(name="next")
def next_generation(
    ctx: typer.Context, board_id: str = typer.Argument(..., help="Board id.")
):
    """
    Advance a board by one generation.
    """

    async def action(engine: Engine):
        await _show(engine, await engine.next_generation(board_id))

    _execute(_settings(ctx), action)


@app.command()
def advance(
    ctx: typer.Context,
    board_id: str = typer.Argument(..., help="Board id."),
    generations: int = typer.Argument(..., help="Number of generations to apply."),
):
    """
    Advance a board by N generations.
    """

    async def action(engine: Engine):
        await _show(engine, await engine.advance(board_id, generations))

    _execute(_settings(ctx), action)


@app.command()
def final(
    ctx: typer.Context,
    board_id: str = typer.Argument(..., help="Board id."),
    max_generations: Optional[int] = typer.Option(
        None,
        "--max-generations",
        help="Generation budget (defaults to engine.max_generations).",
    ),
):
    """
    Step a board until it is stable and mark it final.
    """
    settings = _settings(ctx)
    budget = max_generations if max_generations is not None else settings.max_generations

    async def action(engine: Engine):
        await _show(engine, await engine.advance_to_stability(board_id, budget))

    _execute(settings, action)


@app.command(name="list")
def list_boards(ctx: typer.Context):
    """
    List stored boards.
    """

    async def action(engine: Engine):
        boards = await engine.list_boards()
        if not boards:
            bus.info("cli.no_boards")
            return
        for board in boards:
            print_board(console, bus.store, board, [])

    _execute(_settings(ctx), action)


@app.command()
def delete(ctx: typer.Context, board_id: str = typer.Argument(..., help="Board id.")):
    """
    Delete a board.
    """

    async def action(engine: Engine):
        await engine.delete_board(board_id)
        bus.info("cli.deleted", board_id=board_id)

    _execute(_settings(ctx), action)


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", help="Port to listen on."),
):
    """
    Serve the HTTP API.
    """
    settings = _settings(ctx)
    host = host or settings.host
    port = port or settings.port

    engine = build_engine(settings)
    bus.info("server.starting", host=host, port=port)
    try:
        web.run_app(create_app(engine), host=host, port=port, print=None)
    except KeyboardInterrupt:
        pass
    finally:
        bus.info("server.shutdown")


def main():
    app()


if __name__ == "__main__":
    main()
