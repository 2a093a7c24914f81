"""Subscriptions — side effects fired when a node's value changes.

Computations are lazy; a Subscription is the eager counterpart. Whenever a
write, an async settle or a refresh touches the watched node, the Store
re-reads it and calls the callback with the new value, but only if it differs
from the last value the subscription saw.

Created through Store.subscribe(); call .dispose() to stop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from recoilx.store import Store

logger = logging.getLogger(__name__)

_UNSET = object()


class Subscription:
    """Calls callback(value) when the watched node's value changes."""

    __slots__ = ("_store", "name", "_callback", "_last", "_disposed")

    def __init__(self, store: Store, name: str, callback: Callable[[Any], None]) -> None:
        self._store = store
        self.name = name
        self._callback = callback
        self._last: Any = _UNSET
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _run(self) -> None:
        """Re-read the node and fire if the value changed."""
        if self._disposed:
            return
        try:
            value = self._store.read(self.name)
        except Exception:
            logger.exception("subscription to %r could not read its value", self.name)
            return
        if self._last is not _UNSET and (value is self._last or value == self._last):
            return
        self._last = value
        try:
            self._callback(value)
        except Exception:
            logger.exception("subscriber to %r raised", self.name)

    def dispose(self) -> None:
        """Stop this subscription."""
        self._disposed = True
        self._store._unsubscribe(self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Subscription({self.name!r}, {state})"
