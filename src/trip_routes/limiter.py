"""Per-client request spacing and sequential work queue."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class RequestLimiter:
    """Enforces a minimum spacing between requests issued through it.

    Each client owns its own limiter, so separate clients (and tests) never
    share throttle state. Callers are admitted one at a time::

        async with limiter:
            await client.get(...)
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_request(self) -> float | None:
        return self._last_request

    async def wait(self) -> None:
        """Suspend until the next request slot, then claim it."""
        async with self._lock:
            if self._last_request is not None:
                remaining = self.min_interval - (self._clock() - self._last_request)
                if remaining > 0:
                    logger.debug("Throttling request for %.3fs", remaining)
                    await self._sleep(remaining)
            self._last_request = self._clock()

    async def __aenter__(self) -> RequestLimiter:
        await self.wait()
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


class SequentialQueue:
    """Runs queued jobs strictly one after another, never concurrently.

    A job that raises yields ``None`` in its result slot; the queue keeps going.
    Pair it with a worker that goes through a :class:`RequestLimiter` to keep
    the provider spacing.
    """

    async def run(
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[R | None]],
    ) -> list[R | None]:
        pending: asyncio.Queue[T] = asyncio.Queue()
        for item in items:
            pending.put_nowait(item)

        results: list[R | None] = []
        while not pending.empty():
            item = pending.get_nowait()
            try:
                results.append(await worker(item))
            except Exception:
                logger.exception("Queued job failed for %r", item)
                results.append(None)
            finally:
                pending.task_done()
        return results
