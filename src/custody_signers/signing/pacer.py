"""Staggered dispatch for concurrent signing batches.

Remote custody APIs rate-limit bursts. The pacer delays the start of item i
by i * delay_ms; all items still run concurrently once started.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from custody_signers.signing.base import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Above this, a recent blockhash may expire before the batch finishes
BLOCKHASH_SAFE_DELAY_MS = 3000


class RequestPacer:
    """Inter-request delay applied across one batch."""

    def __init__(self, delay_ms: float = 0):
        """Initialize pacer.

        Args:
            delay_ms: Delay between consecutive dispatches in milliseconds

        Raises:
            ConfigError: If delay_ms is negative
        """
        if delay_ms is None:
            delay_ms = 0
        if delay_ms < 0:
            raise ConfigError("request_delay_ms must not be negative")
        if delay_ms > BLOCKHASH_SAFE_DELAY_MS:
            logger.warning(
                f"request_delay_ms is {delay_ms}ms (> {BLOCKHASH_SAFE_DELAY_MS}ms), "
                "this may result in blockhash expiration errors for signed transactions"
            )
        self.delay_ms = delay_ms

    async def wait(self, index: int) -> None:
        """Sleep until item `index` may be dispatched."""
        if self.delay_ms > 0 and index > 0:
            await asyncio.sleep(index * self.delay_ms / 1000)

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> list[R]:
        """Run `worker` over every item concurrently with staggered starts.

        Results are returned in input order. The first failure propagates, no
        partial result is returned and items not yet finished are cancelled.
        """

        async def dispatch(index: int, item: T) -> R:
            await self.wait(index)
            return await worker(item)

        tasks = [
            asyncio.ensure_future(dispatch(index, item))
            for index, item in enumerate(items)
        ]
        try:
            results = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            # Collect the cancellations so nothing is left pending
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return list(results)

    def __repr__(self) -> str:
        return f"RequestPacer(delay_ms={self.delay_ms})"
