"""
Chunked concurrent fan-out with a pause between chunks.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ItemOutcome(Generic[T, R]):
    """Settled result of one worker call, at the position of its input item"""

    index: int
    item: T
    ok: bool
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class ConcurrencyLimiter:
    """
    Run a worker over a list in fixed-size chunks.

    Items of a chunk run concurrently; chunk N+1 starts only after chunk N
    has settled and the pause has elapsed, so at most ``chunk_size``
    workers are in flight.
    """

    def __init__(self, chunk_size: int = 3, pause: float = 1.0):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.chunk_size = chunk_size
        self.pause = pause

    async def for_each_chunk(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
        chunk_size: Optional[int] = None,
        pause: Optional[float] = None,
        label: str = "items",
    ) -> List[ItemOutcome]:
        """
        Apply ``worker`` to every item.

        A failing worker never cancels its siblings or later chunks; its
        exception becomes a failed ItemOutcome.

        Returns:
            One ItemOutcome per input item, in input order
        """
        size = chunk_size or self.chunk_size
        wait = self.pause if pause is None else pause
        items = list(items)
        outcomes: List[ItemOutcome] = []
        total_chunks = (len(items) + size - 1) // size

        for chunk_index, start in enumerate(range(0, len(items), size)):
            chunk = items[start:start + size]
            logger.info(
                f"Processing {label} chunk {chunk_index + 1}/{total_chunks} "
                f"({start + 1}-{start + len(chunk)} of {len(items)})"
            )

            results = await asyncio.gather(
                *(worker(item) for item in chunk),
                return_exceptions=True
            )

            for offset, (item, result) in enumerate(zip(chunk, results)):
                index = start + offset
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        # KeyboardInterrupt / CancelledError abort the run
                        raise result
                    logger.error(f"{label} #{index} failed: {result}")
                    outcomes.append(ItemOutcome(index=index, item=item, ok=False, error=result))
                else:
                    outcomes.append(ItemOutcome(index=index, item=item, ok=True, value=result))

            if chunk_index < total_chunks - 1 and wait > 0:
                logger.debug(f"Pausing {wait}s before next chunk")
                await asyncio.sleep(wait)

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(f"Finished {len(outcomes)} {label}: {len(outcomes) - failed} ok, {failed} failed")
        return outcomes


def succeeded(outcomes: Sequence[ItemOutcome]) -> List[ItemOutcome]:
    return [o for o in outcomes if o.ok]


def failed(outcomes: Sequence[ItemOutcome]) -> List[ItemOutcome]:
    return [o for o in outcomes if not o.ok]
