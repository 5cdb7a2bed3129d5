# mcp-tester/src/mcp_tester/utils/async_utils.py

"""
Async utilities - Helpers for timing coroutines and running them in bounded
batches.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Tuple, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


# ============================================================================
# Timing
# ============================================================================

async def timed(coro: Awaitable[T]) -> Tuple[T, float]:
    """
    Await a coroutine and measure its wall-clock duration.

    Args:
        coro: Coroutine to await

    Returns:
        Tuple of (result, elapsed milliseconds)

    Exceptions raised by the coroutine propagate unchanged.
    """
    start = time.perf_counter()
    result = await coro
    return result, (time.perf_counter() - start) * 1000.0


def elapsed_ms(start: float) -> float:
    """Milliseconds elapsed since a ``time.perf_counter()`` reading"""
    return (time.perf_counter() - start) * 1000.0


# ============================================================================
# Concurrent Task Management
# ============================================================================

async def run_in_batches(
        factory: Callable[[int], Awaitable[T]],
        total: int,
        batch_size: int,
) -> List[Any]:
    """
    Run ``total`` coroutines in consecutive batches of ``batch_size``.

    Each batch is awaited fully before the next one starts, so at most
    ``batch_size`` coroutines are outstanding at any time. The last batch may
    be smaller. Coroutines are created lazily through ``factory(index)``.

    Args:
        factory: Callable producing the coroutine for a given index
        total: Number of coroutines to run
        batch_size: Maximum coroutines per batch

    Returns:
        Results in index order; exceptions are returned in place, not raised
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    results: List[Any] = []

    for start in range(0, total, batch_size):
        size = min(batch_size, total - start)
        logger.debug(f"Executing batch {start // batch_size + 1} with {size} tasks")

        batch = [factory(start + offset) for offset in range(size)]
        results.extend(await asyncio.gather(*batch, return_exceptions=True))

    return results
