"""Observable value container with subscribe-and-invoke semantics.

``subscribe`` calls the new subscriber immediately with the current value,
then again after every ``notify``. Values are produced on demand by a
snapshot function, so derived fields are always computed from the latest
state.

Subscriber failures are logged and never propagated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

Subscriber = Callable[[_T], object]


class Observable(Generic[_T]):
    """Publish/subscribe over a snapshot function."""

    def __init__(self, snapshot: Callable[[], _T]) -> None:
        self._snapshot = snapshot
        self._subscribers: list[Subscriber[_T]] = []

    @property
    def value(self) -> _T:
        return self._snapshot()

    def subscribe(self, subscriber: Subscriber[_T]) -> Callable[[], None]:
        """Register *subscriber*, invoke it once now, and return an unsubscribe callable."""
        self._subscribers.append(subscriber)
        self._deliver(subscriber, self._snapshot())

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def notify(self) -> None:
        if not self._subscribers:
            return
        value = self._snapshot()
        for subscriber in list(self._subscribers):
            self._deliver(subscriber, value)

    def clear(self) -> None:
        self._subscribers.clear()

    @staticmethod
    def _deliver(subscriber: Subscriber[_T], value: _T) -> None:
        try:
            subscriber(value)
        except Exception:
            logger.warning("Session subscriber failed", exc_info=True)
