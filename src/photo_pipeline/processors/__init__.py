"""Per-item runners with different concurrency strategies."""

from typing import Callable, List, Sequence, TypeVar

from .multithread import process_batch as multithread_process_batch
from .serial import process_batch as serial_process_batch

T = TypeVar("T")
R = TypeVar("R")

ItemRunner = Callable[
    [Sequence[T], Callable[[int, T], R], Callable[[int, T, Exception], R]], List[R]
]


def get_item_runner(concurrency: int = 1) -> ItemRunner:
    """Serial for ``concurrency <= 1``, otherwise a bounded thread pool."""
    if concurrency <= 1:
        return serial_process_batch

    def runner(batch, handler, on_error):
        return multithread_process_batch(batch, handler, on_error, max_workers=concurrency)

    return runner


__all__ = [
    "ItemRunner",
    "get_item_runner",
    "serial_process_batch",
    "multithread_process_batch",
]
