"""Scheduling primitives for remote sync.

* :class:`Debouncer`: one pending timer per key; re-scheduling cancels and
  restarts it, so a burst of calls collapses into the last one.
* :class:`SingleFlight`: at most one running coroutine per key; concurrent
  callers await the same task and share its result or exception.
* :class:`RetryPolicy`: bounded exponential backoff for transient failures.

All three expect to be used from inside a running event loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator

import httpx

from folio.errors import RemoteError

AsyncFn = Callable[[], Awaitable[Any]]


class Debouncer:
    """Delay an async callable until *delay* seconds pass without a new call."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task[Any]] = set()

    def schedule(self, key: str, fn: AsyncFn) -> None:
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(self.delay, self._fire, key, fn)

    def _fire(self, key: str, fn: AsyncFn) -> None:
        self._handles.pop(key, None)
        task = asyncio.ensure_future(fn())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    def cancel(self, key: str | None = None) -> None:
        """Cancel the pending timer for *key*, or every timer when *key* is ``None``."""
        keys = list(self._handles) if key is None else [key]
        for k in keys:
            handle = self._handles.pop(k, None)
            if handle is not None:
                handle.cancel()

    def pending(self, key: str) -> bool:
        return key in self._handles

    async def drain(self) -> None:
        """Wait for callables that have already fired to finish."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)


class SingleFlight:
    """Collapse concurrent calls for the same key into one execution."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._tasks

    async def run(self, key: str, fn: AsyncFn) -> Any:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        # A cancelled waiter must not cancel the shared task
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled():
            # Mark the exception retrieved; waiters re-raise it themselves
            task.exception()


def is_transient(exc: BaseException) -> bool:
    """Network hiccups and 5xx answers are worth retrying; everything else is not."""
    if isinstance(exc, RemoteError):
        return exc.transient
    return isinstance(exc, httpx.TransportError)


@dataclass
class RetryPolicy:
    """Exponential backoff: ``base_delay * factor**n`` capped at ``max_delay``."""

    attempts: int = 3
    base_delay: float = 2.0
    factor: float = 2.0
    max_delay: float = 30.0

    def delays(self) -> Iterator[float]:
        delay = self.base_delay
        for _ in range(max(0, self.attempts - 1)):
            yield min(delay, self.max_delay)
            delay *= self.factor

    async def run(self, fn: AsyncFn, *, should_retry: Callable[[BaseException], bool] = is_transient) -> Any:
        delays = self.delays()
        while True:
            try:
                return await fn()
            except Exception as exc:
                delay = next(delays, None)
                if delay is None or not should_retry(exc):
                    raise
                await asyncio.sleep(delay)
