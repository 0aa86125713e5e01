"""Delayed callbacks for debounced work.

:class:`Scheduler` matches ``asyncio.AbstractEventLoop.call_later``: any
running event loop can be passed where a scheduler is expected.
:class:`ThreadingScheduler` is the default outside an event loop.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> threading.Timer:
        timer = threading.Timer(delay, callback, args=args)
        timer.daemon = True
        timer.start()
        return timer


class Debouncer:
    """Collapse bursts of calls into one callback after a quiet period.

    Every :meth:`trigger` cancels the pending timer and arms a new one, so
    at most one callback fires per quiet period and it observes whatever
    state exists when it fires. The callback runs under the debouncer's
    lock: :meth:`cancel` returns only once an in-flight callback is done.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        scheduler: Scheduler | None = None,
    ) -> None:
        self._delay = delay
        self._callback = callback
        self._scheduler: Scheduler = scheduler or ThreadingScheduler()
        self._pending: TimerHandle | None = None
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def trigger(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            self._pending = self._scheduler.call_later(self._delay, self._fire, self._generation)

    def cancel(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            self._generation += 1

    def flush(self) -> None:
        """Run a pending callback now instead of waiting for the timer."""
        with self._lock:
            if self._pending is None:
                return
            self._pending.cancel()
            self._pending = None
            self._callback()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._pending is None:
                return
            self._pending = None
            self._callback()
