"""Wait for asynchronous device state to converge."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from resinos.autotest.errors import WaitTimeoutError

logger = logging.getLogger(__name__)

Predicate = Callable[[], bool | Awaitable[bool]]


async def wait_until(
    predicate: Predicate,
    *,
    interval: float = 10,
    timeout: float = 1800,
    backoff: float = 1.0,
    max_interval: float | None = None,
    description: str = "condition",
) -> None:
    """Block until predicate evaluates true.

    Args:
        predicate: Callable returning a bool or an awaitable bool
        interval: Seconds between evaluations
        timeout: Maximum wait time in seconds
        backoff: Multiplier applied to the interval after each evaluation
        max_interval: Upper bound for the interval when backing off
        description: Human-readable name used in logs and errors

    Raises:
        WaitTimeoutError: If predicate is not true within timeout

    The predicate is always evaluated once, and never after the deadline.
    Errors raised by predicate are not retried and propagate unchanged.

    """
    loop = asyncio.get_running_loop()
    end_time = loop.time() + timeout
    attempt = 0

    while True:
        attempt += 1
        result = predicate()
        if inspect.isawaitable(result):
            result = await result

        if result:
            logger.debug(f"{description}: satisfied after {attempt} attempts")
            return

        remaining = end_time - loop.time()
        # No evaluation may happen after the deadline
        if remaining <= interval:
            if remaining > 0:
                await asyncio.sleep(remaining)
            raise WaitTimeoutError(
                f"{description} not reached within {timeout} seconds "
                f"({attempt} attempts)"
            )

        logger.debug(f"{description}: attempt {attempt} not satisfied yet")
        await asyncio.sleep(interval)

        interval *= backoff
        if max_interval is not None:
            interval = min(interval, max_interval)
