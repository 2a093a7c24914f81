"""Actions and transactions — batched writes.

Inside an @action or `with transaction(store)` block, writes still invalidate
dependents immediately (a read inside the block never sees a stale cache),
but subscriptions are held back and fire once when the outermost scope
exits. Subscribers never observe half of a multi-cell update.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, ParamSpec, TypeVar

if TYPE_CHECKING:
    from recoilx.store import Store

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def transaction(store: Store):
    """Context manager for batching writes.

    Usage:
        with transaction(store):
            store.write("todoListState", ())
            store.write("todoFilterState", "all")
            # subscriptions fire here, after both are written
    """
    store._begin_batch()
    try:
        yield store
    finally:
        store._end_batch()


def action(store: Store) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator factory: batch all writes fn makes to store.

    Usage:
        @action(store)
        def clear_completed():
            store.write("todoListState", lambda todos: tuple(t for t in todos if not t.is_complete))
            store.write("todoFilterState", "all")
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with transaction(store):
                return fn(*args, **kwargs)

        return wrapper

    return decorator
