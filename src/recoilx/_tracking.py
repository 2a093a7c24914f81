"""Dependency tracking — the evaluation context handed to computation functions.

A computation never reaches for ambient state: the Store passes it a
ReadContext and every ctx.get() goes through the Store and records an edge
from the computation to what it read. After evaluation the recorded set is
the computation's dependency set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from recoilx.store import Store, NodeRef


class ReadContext:
    """Records every node read by one evaluation of one computation."""

    __slots__ = ("_store", "_name", "_generation", "dependencies")

    def __init__(self, store: Store, name: str, generation: int | None = None) -> None:
        self._store = store
        self._name = name
        self._generation = generation
        self.dependencies: set[str] = set()

    @property
    def name(self) -> str:
        """Name of the computation being evaluated."""
        return self._name

    def get(self, node: NodeRef) -> Any:
        """Read a cell or computation and register it as a dependency.

        Returns what store.read() would: a plain value for cells and sync
        computations, a Loadable for async computations.
        """
        dep = self._store._name_of(node)
        self.dependencies.add(dep)
        return self._store._read_tracked(self._name, dep, self._generation)

    def __call__(self, node: NodeRef) -> Any:
        return self.get(node)

    def __repr__(self) -> str:
        return f"ReadContext({self._name!r}, deps={sorted(self.dependencies)!r})"
