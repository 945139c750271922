"""Bounded retry with exponential backoff for async operations.

Cancellation is terminal: when the surrounding ``asyncio.timeout`` fires
(or the caller's task is cancelled) the in-flight attempt receives
``asyncio.CancelledError``, which is not an ``Exception`` subclass and is
never caught here, so no further attempt is made.

Example:
    async with asyncio.timeout(30):
        response = await with_retry(
            lambda: client.generate(model=..., instructions=..., input_text=...),
            retries=3, base_delay_ms=300, max_delay_ms=3000,
        )
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry knobs for one kind of call.

    Attributes:
        retries: Extra attempts after the first (total = retries + 1).
        base_delay_ms: Delay before the first retry.
        max_delay_ms: Upper bound for any single delay.
    """

    retries: int = 3
    base_delay_ms: int = 300
    max_delay_ms: int = 3000

    def delay_ms(self, attempt: int) -> int:
        """Backoff before retrying after the given 0-based failed attempt."""
        return min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int = 3,
    base_delay_ms: int = 300,
    max_delay_ms: int = 3000,
) -> T:
    """Run an async operation, retrying failures with exponential backoff.

    Args:
        operation: Zero-argument factory returning a fresh awaitable per attempt.
        retries: Extra attempts after the first.
        base_delay_ms: First backoff delay; doubles per attempt.
        max_delay_ms: Cap on any single backoff delay.

    Returns:
        The first successful result.

    Raises:
        Exception: The last attempt's error once retries are exhausted.
        asyncio.CancelledError: Propagated immediately, never retried.
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")

    policy = RetryPolicy(retries, base_delay_ms, max_delay_ms)
    for attempt in range(retries + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= retries:
                logger.warning(
                    "Operation failed after %d attempt(s): %s", attempt + 1, e,
                )
                raise
            delay = policy.delay_ms(attempt)
            logger.info(
                "Operation failed (attempt %d/%d), retrying in %d ms: %s",
                attempt + 1, retries + 1, delay, e,
            )
            await asyncio.sleep(delay / 1000)

    raise AssertionError("unreachable")


async def with_retry_policy(
    operation: Callable[[], Awaitable[T]], policy: RetryPolicy,
) -> T:
    """with_retry() driven by a RetryPolicy."""
    return await with_retry(
        operation,
        retries=policy.retries,
        base_delay_ms=policy.base_delay_ms,
        max_delay_ms=policy.max_delay_ms,
    )
