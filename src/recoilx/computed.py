"""Computations — derived state with automatic dependency tracking.

A Computation wraps a function of a ReadContext. Sync functions must be
pure; async functions (coroutine functions) are run as tasks by the Store and
published as a Loadable.

Like Cells, Computations are definitions only. Cached values, dirty flags and
dependency edges live in the Store's anchor.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from recoilx._tracking import ReadContext

T = TypeVar("T")

ComputeFn = Callable[[ReadContext], Union[T, Awaitable[T]]]


class Computation(Generic[T]):
    """A named derived value, memoized until one of its dependencies changes."""

    __slots__ = ("name", "fn", "is_async")

    def __init__(self, name: str, fn: ComputeFn) -> None:
        self.name = name
        self.fn = fn
        self.is_async = inspect.iscoroutinefunction(fn)

    def __repr__(self) -> str:
        kind = "async" if self.is_async else "sync"
        return f"Computation({self.name!r}, {kind})"


def selector(name: str, fn: ComputeFn) -> Computation[Any]:
    """Factory for a Computation."""
    return Computation(name, fn)


def computed(name: str) -> Callable[[ComputeFn], Computation[Any]]:
    """Decorator form of selector().

    Usage:
        counter = atom("counter", 0)

        @computed("doubled")
        def doubled(ctx):
            return ctx.get(counter) * 2

        store = Store([counter, doubled])
        store.read("doubled")  # 0
        store.write("counter", 5)
        store.read("doubled")  # 10
    """

    def decorator(fn: ComputeFn) -> Computation[Any]:
        return Computation(name, fn)

    return decorator
