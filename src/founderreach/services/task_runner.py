"""
Rate-limited sequential task runner.

Items are consumed one at a time, in order, with at least `min_interval`
seconds between the start of consecutive tasks. Provider and mail rate
limits are shared, so concurrency is deliberately absent.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class SequentialRunner:
    def __init__(
        self,
        min_interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._next_allowed_at = 0.0

    async def wait_turn(self) -> float:
        """Block until the next task may start; return the seconds waited."""
        delay = self._next_allowed_at - self._clock()
        if delay > 0:
            logger.debug("Throttling: waiting %.2fs before next task", delay)
            await self._sleep(delay)
        else:
            delay = 0.0
        self._next_allowed_at = self._clock() + self.min_interval
        return delay

    async def run(
        self,
        items: Iterable[T],
        handler: Callable[[T], Awaitable[R]],
    ) -> list[R]:
        """
        Run `handler` over `items` sequentially and return the results in order.

        Exceptions from `handler` propagate; callers that need per-item
        isolation catch inside the handler.
        """
        results: list[R] = []
        for item in items:
            await self.wait_turn()
            results.append(await handler(item))
        return results
