from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional, Set

from shared.logging.logger import get_logger

log = get_logger("core.scheduler")

Callback = Callable[[], object]


class PeriodicHandle(ABC):
    """Cancellable handle for a repeating task."""

    @abstractmethod
    def cancel(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError


class Scheduler(ABC):
    """
    Execution primitives the tournament core relies on.

    - run_on_primary: the single-threaded context for host events and
      anything player-facing
    - run_async: a worker context for I/O-bound work
    - run_periodic_async: fire ``fn`` on a worker every ``period`` seconds;
      ticks are fired without waiting for the previous one, so callers own
      any overlap policy
    """

    @abstractmethod
    def run_async(self, fn: Callback) -> None:
        raise NotImplementedError

    @abstractmethod
    def run_on_primary(self, fn: Callback) -> None:
        raise NotImplementedError

    @abstractmethod
    def run_periodic_async(self, fn: Callback, initial_delay: float, period: float) -> PeriodicHandle:
        raise NotImplementedError


def _run_guarded(fn: Callback, where: str) -> None:
    # Task boundary: failures are logged and never kill the scheduler
    try:
        fn()
    except Exception:
        log.exception(f"Task failed on {where} context: {getattr(fn, '__qualname__', fn)!r}")


class _FuturePeriodicHandle(PeriodicHandle):
    def __init__(self, future: concurrent.futures.Future) -> None:
        self._future = future
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by an asyncio event loop (primary context) and a
    thread pool (worker contexts).

    Every primitive is safe to call from any thread.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        *,
        max_workers: int = 4,
        executor: Optional[concurrent.futures.ThreadPoolExecutor] = None,
    ) -> None:
        self._loop = loop
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="tournament-worker",
        )
        self._periodic: Set[_FuturePeriodicHandle] = set()
        self._lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def run_async(self, fn: Callback) -> None:
        if self._closed:
            log.warning("Scheduler closed; dropping async task")
            return
        self._executor.submit(_run_guarded, fn, "worker")

    def run_on_primary(self, fn: Callback) -> None:
        if self._closed:
            log.warning("Scheduler closed; dropping primary task")
            return
        self._loop.call_soon_threadsafe(_run_guarded, fn, "primary")

    def run_periodic_async(self, fn: Callback, initial_delay: float, period: float) -> PeriodicHandle:
        future = asyncio.run_coroutine_threadsafe(
            self._periodic_loop(fn, initial_delay, period), self._loop
        )
        handle = _FuturePeriodicHandle(future)
        with self._lock:
            self._periodic.add(handle)
        future.add_done_callback(lambda _f: self._forget(handle))
        return handle

    # ------------------------------------------------------------

    async def _periodic_loop(self, fn: Callback, initial_delay: float, period: float) -> None:
        try:
            if initial_delay > 0:
                await asyncio.sleep(initial_delay)
            while True:
                self.run_async(fn)
                await asyncio.sleep(period)
        except asyncio.CancelledError:
            log.debug("Periodic task cancelled")
            raise

    def _forget(self, handle: _FuturePeriodicHandle) -> None:
        with self._lock:
            self._periodic.discard(handle)

    # ------------------------------------------------------------

    def shutdown(self, *, wait: bool = True) -> None:
        log.info("Scheduler shutdown initiated")
        self._closed = True

        with self._lock:
            handles = list(self._periodic)
            self._periodic.clear()
        for handle in handles:
            handle.cancel()

        self._executor.shutdown(wait=wait)
        log.info("Scheduler shutdown complete")
