"""Multithreaded processor implementation - uses thread pool for parallelism."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def process_batch(
    batch: Sequence[T],
    handler: Callable[[int, T], R],
    on_error: Callable[[int, T, Exception], R],
    max_workers: int = 4,
) -> List[R]:
    """
    Run ``handler(index, item)`` for every item on a thread pool.

    Results are collected as they complete and re-sorted by original index,
    so the returned list matches input order regardless of execution order.

    Args:
        batch: Items to process
        handler: Per-item function; must not share mutable state across items
        on_error: Turns an exception escaping ``handler`` into a result
        max_workers: Upper bound on worker threads

    Returns:
        One result per item, in input order.
    """
    if not batch:
        return []

    results: Dict[int, R] = {}
    workers = max(1, min(max_workers, len(batch)))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_index = {
            executor.submit(handler, index, item): index for index, item in enumerate(batch)
        }

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception as e:
                results[index] = on_error(index, batch[index], e)

    return [results[index] for index in range(len(batch))]
