import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine as SqlEngine
from sqlalchemy.pool import StaticPool

from lifeboard.model import Board
from lifeboard.runtime.exceptions import BoardNotFoundError

DEFAULT_DB_URL = "sqlite:///~/.lifeboard/boards.db"

metadata = MetaData()

boards_table = Table(
    "boards",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("width", Integer, nullable=False),
    Column("height", Integer, nullable=False),
    # JSON list of [x, y] pairs, sorted
    Column("live_cells", Text, nullable=False),
    Column("generation", Integer, nullable=False),
    Column("is_final", Boolean, nullable=False),
    # ISO-8601 with offset; SQLite has no timezone-aware datetime type
    Column("created_at", Text, nullable=False),
    Column("last_updated", Text, nullable=True),
)


def create_sql_engine(url: str = DEFAULT_DB_URL) -> SqlEngine:
    """
    Creates a SQLAlchemy engine for a SQLite URL.

    In-memory databases share one connection (StaticPool) so that every
    worker thread sees the same data.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if url.startswith("sqlite:///"):
        path = Path(url[len("sqlite:///") :]).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{path}"

    return create_engine(url, connect_args={"check_same_thread": False})


def _to_row(board: Board) -> dict:
    return {
        "id": board.id,
        "width": board.width,
        "height": board.height,
        "live_cells": json.dumps(sorted([x, y] for x, y in board.live_cells)),
        "generation": board.generation,
        "is_final": board.is_final,
        "created_at": board.created_at.isoformat(),
        "last_updated": board.last_updated.isoformat() if board.last_updated else None,
    }


def _from_row(row: Any) -> Board:
    return Board(
        id=row.id,
        width=row.width,
        height=row.height,
        live_cells=frozenset((x, y) for x, y in json.loads(row.live_cells)),
        generation=row.generation,
        is_final=bool(row.is_final),
        created_at=datetime.fromisoformat(row.created_at),
        last_updated=datetime.fromisoformat(row.last_updated)
        if row.last_updated
        else None,
    )


class SqliteBoardStore:
    """
    A BoardStore backed by a SQLite database through SQLAlchemy Core.
    Blocking database calls run in worker threads.
    """

    def __init__(self, url: str = DEFAULT_DB_URL, engine: Optional[SqlEngine] = None):
        self.url = url
        self._engine = engine or create_sql_engine(url)
        self._schema_ready = False

    async def connect(self) -> "SqliteBoardStore":
        await asyncio.to_thread(metadata.create_all, self._engine)
        self._schema_ready = True
        return self

    async def disconnect(self) -> None:
        await asyncio.to_thread(self._engine.dispose)
        self._schema_ready = False

    async def __aenter__(self):
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def _run(self, fn: Callable, *args):
        if not self._schema_ready:
            await self.connect()
        return await asyncio.to_thread(fn, *args)

    # --- Blocking implementations ---

    def _blocking_load(self, board_id: str) -> Board:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(boards_table).where(boards_table.c.id == board_id)
            ).first()
        if row is None:
            raise BoardNotFoundError(board_id)
        return _from_row(row)

    def _blocking_save(self, board: Board) -> None:
        values = _to_row(board)
        stmt = sqlite_insert(boards_table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[boards_table.c.id],
            set_={k: v for k, v in values.items() if k not in ("id", "created_at")},
        )
        with self._engine.begin() as conn:
            conn.execute(stmt)

    def _blocking_create(self, board: Board) -> None:
        with self._engine.begin() as conn:
            conn.execute(insert(boards_table).values(**_to_row(board)))

    def _blocking_delete(self, board_id: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(boards_table).where(boards_table.c.id == board_id)
            )
        if result.rowcount == 0:
            raise BoardNotFoundError(board_id)

    def _blocking_list(self) -> List[Board]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(boards_table).order_by(boards_table.c.created_at)
            ).fetchall()
        return [_from_row(row) for row in rows]

    # --- BoardStore protocol ---

    async def load(self, board_id: str) -> Board:
        return await self._run(self._blocking_load, board_id)

    async def save(self, board: Board) -> None:
        await self._run(self._blocking_save, board)

    async def create(self, board: Board) -> None:
        await self._run(self._blocking_create, board)

    async def delete(self, board_id: str) -> None:
        await self._run(self._blocking_delete, board_id)

    async def list_boards(self) -> List[Board]:
        return await self._run(self._blocking_list)
