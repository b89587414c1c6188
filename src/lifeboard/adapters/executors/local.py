from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

EXECUTOR_MODES = ("serial", "thread", "process")


class SerialTileExecutor:
    """Runs tiles one after another in the calling thread."""

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
        return [fn(item) for item in items]

    def shutdown(self) -> None:
        pass


class LocalTileExecutor:
    """
    Runs tiles on a local concurrent.futures pool.

    "thread" mode shares memory with the caller; "process" mode sidesteps the
    GIL for large boards, so tile functions and their arguments must be
    picklable.
    """

    def __init__(self, mode: str = "thread", max_workers: Optional[int] = None):
        if mode not in ("thread", "process"):
            raise ValueError(f"Unsupported executor mode '{mode}'")
        self.mode = mode
        self.max_workers = max_workers
        # The pool is created lazily so that an engine which never steps a
        # multi-tile board never spawns workers.
        self._pool: Optional[Executor] = None

    def _get_pool(self) -> Executor:
        if self._pool is None:
            if self.mode == "process":
                self._pool = ProcessPoolExecutor(max_workers=self.max_workers)
            else:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="lifeboard_tile"
                )
        return self._pool

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
        batch = list(items)
        # A single tile gains nothing from a pool round-trip.
        if len(batch) < 2:
            return [fn(item) for item in batch]
        return list(self._get_pool().map(fn, batch))

    def shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None


def create_executor(mode: str = "serial", max_workers: Optional[int] = None):
    if mode == "serial":
        return SerialTileExecutor()
    if mode in ("thread", "process"):
        return LocalTileExecutor(mode=mode, max_workers=max_workers)
    raise ValueError(
        f"Unknown executor mode '{mode}', expected one of {', '.join(EXECUTOR_MODES)}"
    )
