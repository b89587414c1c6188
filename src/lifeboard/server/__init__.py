from .app import create_app, board_to_json

__all__ = ["create_app", "board_to_json"]
