"""
Fixed-delay retry for fallible async operations.

Upstream APIs fail transiently under load (5xx, timeouts). Each failed attempt
waits a fixed delay before the next one; attempts are bounded by count only.
Non-retryable errors (404, 400, invalid paths) are re-raised at once.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from core.exceptions import NonRetryableError, OperationFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """
    Run an async operation with bounded retries.

    Attributes:
        max_attempts: Total attempts including the first one (default: 3)
        delay: Seconds to wait between attempts (default: 1.0)
    """

    def __init__(self, max_attempts: int = 3, delay: float = 1.0):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        delay: Optional[float] = None,
        label: str = "operation",
    ) -> T:
        """
        Execute ``operation`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine function
            max_attempts: Override of the executor default
            delay: Override of the executor default, in seconds
            label: Name used in log lines and in the final error

        Returns:
            The operation's result

        Raises:
            OperationFailedError: After ``max_attempts`` failures, carrying the last error
            NonRetryableError: Re-raised unchanged on first occurrence
        """
        attempts = max_attempts or self.max_attempts
        wait = self.delay if delay is None else delay
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                logger.debug(f"[{label}] attempt {attempt}/{attempts}")
                return await operation()

            except NonRetryableError as e:
                logger.warning(f"[{label}] {type(e).__name__}, not retrying: {e.message}")
                raise

            except Exception as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        f"[{label}] attempt {attempt}/{attempts} failed ({e}). "
                        f"Retrying in {wait}s"
                    )
                    await asyncio.sleep(wait)
                else:
                    logger.error(f"[{label}] all {attempts} attempts failed: {e}")

        raise OperationFailedError(label, last_error, attempts)


async def with_retry(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int = 3,
    delay: float = 1.0,
    label: str = "operation",
) -> Any:
    """Shortcut for a one-off RetryExecutor call"""
    return await RetryExecutor(max_attempts, delay).run(operation, label=label)
