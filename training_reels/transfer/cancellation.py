"""Cooperative cancellation shared by every chunk of an upload."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from .errors import UploadAborted

T = TypeVar("T")


class CancellationToken:
    """A one-shot flag that interrupts awaitables run through it."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise UploadAborted()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* unless the token fires first.

        When the token wins, the work is cancelled (interrupting any in-flight
        request) and :class:`UploadAborted` is raised.
        """

        work = asyncio.ensure_future(awaitable)
        if self._event.is_set():
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
            raise UploadAborted()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            waiter.cancel()
            await asyncio.gather(work, waiter, return_exceptions=True)
            raise

        if work.done():
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)
            return work.result()

        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise UploadAborted()


__all__ = ["CancellationToken"]
