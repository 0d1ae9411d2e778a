"""Cooperative concurrency helpers shared by the caches."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Awaitable, Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


async def yield_to_loop(delay: float = 0.0) -> None:
    """Suspend for at least one scheduling tick."""

    await asyncio.sleep(max(0.0, delay))


class CancellationToken:
    """Cooperative cancellation flag checked at every suspension point."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return ``False`` if cancelled meanwhile."""

        if self.cancelled:
            return False
        if delay <= 0:
            await asyncio.sleep(0)
            return not self.cancelled
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        return not self.cancelled


class SingleFlight(Generic[K, T]):
    """Share one in-progress operation between concurrent callers of a key."""

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Task[T]] = {}

    def in_flight(self, key: K) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:

            async def _runner() -> T:
                try:
                    return await factory()
                finally:
                    self._tasks.pop(key, None)

            task = asyncio.create_task(_runner())
            self._tasks[key] = task
        # A cancelled caller must not tear down the request others wait on.
        return await asyncio.shield(task)


Unsubscribe = Callable[[], None]


class EventChannel(Generic[T]):
    """Observer registry delivering typed payloads to callbacks."""

    def __init__(self, name: str = "event") -> None:
        self._name = name
        self._subscribers: dict[int, Callable[[T], Any]] = {}
        self._next_handle = 0

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], Any]) -> Unsubscribe:
        handle = self._next_handle
        self._next_handle += 1
        self._subscribers[handle] = callback

        def _unsubscribe() -> None:
            self._subscribers.pop(handle, None)

        return _unsubscribe

    def emit(self, payload: T) -> None:
        # Iterate a snapshot so callbacks may unsubscribe themselves.
        for handle, callback in list(self._subscribers.items()):
            if handle not in self._subscribers:
                continue
            try:
                callback(payload)
            except Exception:  # pragma: no cover - subscriber safety net
                logger.exception("%s subscriber failed for %r", self._name, payload)

    def clear(self) -> None:
        self._subscribers.clear()


class Debouncer:
    """Run ``callback`` only after ``delay`` seconds without a new trigger."""

    def __init__(self, delay: float, callback: Callable[..., Any]) -> None:
        self._delay = delay
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, *args: Any) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._fire(args))

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the pending timer, if any, to fire."""

        task = self._task
        if task is None:
            return
        with suppress(asyncio.CancelledError):
            await task

    async def _fire(self, args: tuple[Any, ...]) -> None:
        await asyncio.sleep(self._delay)
        try:
            result = self._callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception:  # pragma: no cover - background safety net
            logger.exception("Debounced callback failed")
