import json
from typing import Any, Dict

from aiohttp import web

from lifeboard.model import Board
from lifeboard.runtime.engine import DEFAULT_MAX_GENERATIONS, Engine
from lifeboard.runtime.exceptions import (
    BoardNotFoundError,
    ConvergenceError,
    GenerationRangeError,
    GridValidationError,
    InvalidBoardStateError,
    LifeboardError,
)

ENGINE_KEY = web.AppKey("engine", Engine)

ERROR_STATUS = (
    (GridValidationError, 400),
    (GenerationRangeError, 400),
    (BoardNotFoundError, 404),
    (InvalidBoardStateError, 409),
    (ConvergenceError, 422),
)


def board_to_json(engine: Engine, board: Board) -> Dict[str, Any]:
    return {
        "id": board.id,
        "width": board.width,
        "height": board.height,
        "cells": engine.dense(board),
        "generation": board.generation,
        "isFinalState": board.is_final,
        "createdAt": board.created_at.isoformat(),
        "lastUpdated": board.last_updated.isoformat() if board.last_updated else None,
    }


def _error_response(status: int, error: str, message: str) -> web.Response:
    return web.json_response({"error": error, "message": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except LifeboardError as e:
        for error_type, status in ERROR_STATUS:
            if isinstance(e, error_type):
                return _error_response(status, type(e).__name__, str(e))
        raise


def _bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"error": "BadRequest", "message": message}),
        content_type="application/json",
    )


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise _bad_request(f"'{name}' must be an integer") from None


def _engine(request: web.Request) -> Engine:
    return request.app[ENGINE_KEY]


async def create_board(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise _bad_request("Request body must be valid JSON") from None

    initial_state = body.get("initialState") if isinstance(body, dict) else None
    if (
        not isinstance(initial_state, list)
        or len(initial_state) == 0
        or not all(isinstance(row, list) for row in initial_state)
    ):
        raise _bad_request("Initial state must be provided and cannot be empty")

    board_id = await _engine(request).create_board(initial_state)
    return web.json_response({"boardId": board_id}, status=201)


async def list_boards(request: web.Request) -> web.Response:
    engine = _engine(request)
    boards = await engine.list_boards()
    return web.json_response([board_to_json(engine, b) for b in boards])


async def get_board(request: web.Request) -> web.Response:
    engine = _engine(request)
    board = await engine.get_board(request.match_info["board_id"])
    return web.json_response(board_to_json(engine, board))


async def delete_board(request: web.Request) -> web.Response:
    await _engine(request).delete_board(request.match_info["board_id"])
    return web.Response(status=204)


async def next_state(request: web.Request) -> web.Response:
    engine = _engine(request)
    board = await engine.next_generation(request.match_info["board_id"])
    return web.json_response(board_to_json(engine, board))


async def state_after_generations(request: web.Request) -> web.Response:
    engine = _engine(request)
    generations = _parse_int(request.match_info["generations"], "generations")
    board = await engine.advance(request.match_info["board_id"], generations)
    return web.json_response(board_to_json(engine, board))


async def final_state(request: web.Request) -> web.Response:
    engine = _engine(request)
    max_generations = _parse_int(
        request.query.get("maxGenerations", str(DEFAULT_MAX_GENERATIONS)),
        "maxGenerations",
    )
    board = await engine.advance_to_stability(
        request.match_info["board_id"], max_generations
    )
    return web.json_response(board_to_json(engine, board))


def create_app(engine: Engine) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[ENGINE_KEY] = engine
    app.add_routes(
        [
            web.post("/api/game/boards", create_board),
            web.get("/api/game/boards", list_boards),
            web.get("/api/game/boards/{board_id}", get_board),
            web.delete("/api/game/boards/{board_id}", delete_board),
            web.get("/api/game/boards/{board_id}/next", next_state),
            web.get(
                "/api/game/boards/{board_id}/generations/{generations}",
                state_after_generations,
            ),
            web.get("/api/game/boards/{board_id}/final", final_state),
        ]
    )

    async def on_cleanup(app: web.Application) -> None:
        await app[ENGINE_KEY].close()

    app.on_cleanup.append(on_cleanup)
    return app
