from .local import SerialTileExecutor, LocalTileExecutor, create_executor

__all__ = ["SerialTileExecutor", "LocalTileExecutor", "create_executor"]
