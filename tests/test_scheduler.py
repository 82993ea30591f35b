"""Tests for core.scheduler.AsyncioScheduler: primary/worker contexts and periodic tasks."""

import asyncio
import threading

import pytest

from core.scheduler import AsyncioScheduler


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


def _run_until(loop, condition, timeout=2.0):
    async def waiter():
        deadline = loop.time() + timeout
        while not condition():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.01)

    loop.run_until_complete(waiter())


class TestAsyncioScheduler:
    def test_run_on_primary_uses_loop_thread(self, loop):
        scheduler = AsyncioScheduler(loop, max_workers=1)
        seen = []
        scheduler.run_on_primary(lambda: seen.append(threading.get_ident()))

        _run_until(loop, lambda: seen)
        assert seen == [threading.get_ident()]
        scheduler.shutdown()

    def test_run_async_uses_worker(self, loop):
        scheduler = AsyncioScheduler(loop, max_workers=1)
        done = threading.Event()
        seen = []

        def task():
            seen.append(threading.current_thread().name)
            done.set()

        scheduler.run_async(task)
        assert done.wait(2)
        assert seen[0].startswith("tournament-worker")
        scheduler.shutdown()

    def test_failing_task_is_contained(self, loop):
        scheduler = AsyncioScheduler(loop, max_workers=1)
        seen = []

        def broken():
            raise RuntimeError("boom")

        scheduler.run_on_primary(broken)
        scheduler.run_on_primary(lambda: seen.append(1))
        _run_until(loop, lambda: seen)
        scheduler.shutdown()

    def test_periodic_fires_until_cancelled(self, loop):
        scheduler = AsyncioScheduler(loop, max_workers=2)
        ticks = []
        handle = scheduler.run_periodic_async(lambda: ticks.append(1), 0, 0.01)

        _run_until(loop, lambda: len(ticks) >= 3)
        handle.cancel()
        assert handle.cancelled

        loop.run_until_complete(asyncio.sleep(0.05))
        settled = len(ticks)
        loop.run_until_complete(asyncio.sleep(0.05))
        assert len(ticks) == settled
        scheduler.shutdown()

    def test_tasks_after_shutdown_are_dropped(self, loop):
        scheduler = AsyncioScheduler(loop, max_workers=1)
        scheduler.shutdown()
        seen = []
        scheduler.run_async(lambda: seen.append(1))
        scheduler.run_on_primary(lambda: seen.append(2))
        loop.run_until_complete(asyncio.sleep(0.02))
        assert seen == []
