"""Tests for the FIFO semaphore that bounds concurrent chunk transfers."""

from __future__ import annotations

import asyncio

import pytest

from training_reels.transfer.semaphore import FifoSemaphore


def test_rejects_non_positive_permits() -> None:
    with pytest.raises(ValueError):
        FifoSemaphore(0)


def test_waiters_are_served_in_arrival_order() -> None:
    async def scenario():
        semaphore = FifoSemaphore(1)
        order = []
        release_holder = await semaphore.acquire()

        async def worker(name: str) -> None:
            release = await semaphore.acquire()
            order.append(name)
            await asyncio.sleep(0)
            release()

        tasks = [asyncio.ensure_future(worker(name)) for name in ("a", "b", "c")]
        await asyncio.sleep(0)
        assert semaphore.waiting == 3

        release_holder()
        await asyncio.gather(*tasks)
        return order, semaphore.available

    order, available = asyncio.run(scenario())

    assert order == ["a", "b", "c"]
    assert available == 1


def test_released_permit_is_handed_to_waiter_not_newcomer() -> None:
    async def scenario():
        semaphore = FifoSemaphore(1)
        order = []
        release_holder = await semaphore.acquire()

        async def worker(name: str) -> None:
            release = await semaphore.acquire()
            order.append(name)
            release()

        first = asyncio.ensure_future(worker("queued"))
        await asyncio.sleep(0)

        release_holder()
        assert semaphore.available == 0
        late = asyncio.ensure_future(worker("newcomer"))
        await asyncio.gather(first, late)
        return order

    assert asyncio.run(scenario()) == ["queued", "newcomer"]


def test_never_exceeds_permit_count() -> None:
    async def scenario():
        semaphore = FifoSemaphore(2)
        active = 0
        peak = 0

        async def worker() -> None:
            nonlocal active, peak
            release = await semaphore.acquire()
            try:
                active += 1
                peak = max(peak, active)
                for _ in range(3):
                    await asyncio.sleep(0)
            finally:
                active -= 1
                release()

        await asyncio.gather(*(worker() for _ in range(6)))
        return peak, semaphore.available

    peak, available = asyncio.run(scenario())

    assert peak == 2
    assert available == 2


def test_cancelled_waiter_is_skipped() -> None:
    async def scenario():
        semaphore = FifoSemaphore(1)
        order = []
        release_holder = await semaphore.acquire()

        async def worker(name: str) -> None:
            release = await semaphore.acquire()
            order.append(name)
            release()

        cancelled = asyncio.ensure_future(worker("cancelled"))
        survivor = asyncio.ensure_future(worker("survivor"))
        await asyncio.sleep(0)

        cancelled.cancel()
        await asyncio.gather(cancelled, return_exceptions=True)
        assert semaphore.waiting == 1

        release_holder()
        await survivor
        return order, semaphore.available

    order, available = asyncio.run(scenario())

    assert order == ["survivor"]
    assert available == 1


def test_permit_handed_to_cancelled_waiter_is_passed_on() -> None:
    async def scenario():
        semaphore = FifoSemaphore(1)
        release_holder = await semaphore.acquire()

        waiter = asyncio.ensure_future(semaphore.acquire())
        await asyncio.sleep(0)

        release_holder()
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)
        return semaphore.available

    assert asyncio.run(scenario()) == 1


def test_release_is_idempotent() -> None:
    async def scenario():
        semaphore = FifoSemaphore(2)
        release = await semaphore.acquire()
        release()
        release()
        return semaphore.available

    assert asyncio.run(scenario()) == 2


def test_async_context_manager_holds_a_permit() -> None:
    async def scenario():
        semaphore = FifoSemaphore(1)
        async with semaphore:
            inside = semaphore.available
        return inside, semaphore.available

    assert asyncio.run(scenario()) == (0, 1)
