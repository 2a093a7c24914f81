"""Cells — named, independently settable units of state.

A Cell is only a definition: a name and a default. The live value is owned
by the Store the Cell is registered with, so the same definition can back
any number of independent Stores (one per test, one per app instance).
"""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")


class Cell(Generic[T]):
    """A named unit of state with a default value."""

    __slots__ = ("name", "default")

    def __init__(self, name: str, default: T) -> None:
        self.name = name
        self.default = default

    def __repr__(self) -> str:
        return f"Cell({self.name!r}, default={self.default!r})"


def atom(name: str, default: T) -> Cell[T]:
    """Factory for a Cell.

    Usage:
        todo_filter_state = atom("todoFilterState", "all")

        store = Store([todo_filter_state])
        store.write("todoFilterState", "complete")
    """
    return Cell(name, default)
