"""Serial processor implementation - processes items one by one."""

from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def process_batch(
    batch: Sequence[T],
    handler: Callable[[int, T], R],
    on_error: Callable[[int, T, Exception], R],
) -> List[R]:
    """
    Run ``handler(index, item)`` for every item in the current thread.

    An exception escaping ``handler`` is turned into a result by ``on_error``
    so it never reaches the caller's aggregation step.

    Returns:
        One result per item, in input order.
    """
    results: List[R] = []

    for index, item in enumerate(batch):
        try:
            results.append(handler(index, item))
        except Exception as e:
            results.append(on_error(index, item, e))

    return results
