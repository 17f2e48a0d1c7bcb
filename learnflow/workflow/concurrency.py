"""
Bounded concurrency for independent agent invocations.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Sequence

from learnflow.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 3


async def run_with_concurrency(
    factories: Sequence[Callable[[], Awaitable[Any]]],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> List[Any]:
    """
    Run coroutine factories with at most ``max_concurrency`` in flight.

    A sliding window: a new factory is admitted as soon as a running one
    completes. Results come back in input order; an exception raised by one
    factory is returned in its slot and does not cancel the others.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be >= 1")

    results: List[Any] = [None] * len(factories)
    pending: Dict[asyncio.Task, int] = {}
    queue = iter(enumerate(factories))

    def admit() -> None:
        for index, factory in queue:
            pending[asyncio.ensure_future(factory())] = index
            if len(pending) >= max_concurrency:
                return

    admit()
    try:
        while pending:
            done, _ = await asyncio.wait(set(pending), return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                index = pending.pop(task)
                error = task.exception()
                if error is not None:
                    logger.warning(f"Concurrent task {index} failed: {error}")
                results[index] = error if error is not None else task.result()
            admit()
    finally:
        for task in pending:
            task.cancel()

    return results
