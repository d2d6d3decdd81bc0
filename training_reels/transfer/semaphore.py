"""Counting semaphore with strict FIFO hand-off between waiters."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable, Deque


Release = Callable[[], None]


class FifoSemaphore:
    """Bound the number of concurrently running coroutines.

    ``acquire`` returns a release callable. When a permit is released while
    callers are queued, the permit is handed directly to the oldest waiter so
    a newcomer can never overtake it.
    """

    def __init__(self, permits: int) -> None:
        if permits < 1:
            raise ValueError("FifoSemaphore requires at least one permit")
        self._permits = permits
        self._waiters: Deque[asyncio.Future[None]] = deque()

    @property
    def available(self) -> int:
        return self._permits

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> Release:
        if self._permits > 0 and not self._waiters:
            self._permits -= 1
            return self._make_release()

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The permit was already handed over; pass it on.
                self._release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise
        return self._make_release()

    def _make_release(self) -> Release:
        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            self._release()

        return release

    def _release(self) -> None:
        self._permits += 1
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._permits -= 1
            waiter.set_result(None)
            break

    async def __aenter__(self) -> "FifoSemaphore":
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._release()


__all__ = ["FifoSemaphore", "Release"]
