"""Store — the registry that owns every Cell and Computation and their state.

Reads evaluate lazily and memoize. Writes replace a Cell's value and mark
every transitive dependent dirty before returning; nothing is recomputed
until the next read. Async computations run as tasks on an event loop and
publish a Loadable; a result from a superseded request is dropped.

Thread safety: one RLock serialises writes, evaluations, invalidation and
async settles, so no reader sees a new Cell value next to a stale dependent.
Subscription callbacks run after the lock is released.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import logging
import threading
from typing import Any, Callable, Iterable, Union

from recoilx import _anchor
from recoilx._tracking import ReadContext
from recoilx.action import transaction
from recoilx.cell import Cell
from recoilx.computed import Computation
from recoilx.errors import AsyncFailure, CircularDependency, ComputationError, InvalidName
from recoilx.loadable import PENDING, Errored, Loadable, Pending, Resolved
from recoilx.reaction import Subscription

logger = logging.getLogger(__name__)

Node = Union[Cell, Computation]
NodeRef = Union[str, Node]

_UNSET = object()


class Store:
    """Owns the values, caches and dependency edges of a set of nodes."""

    def __init__(
        self,
        nodes: Iterable[Node],
        initial: dict[str, object] | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._anchor = _anchor.Anchor()
        self._nodes: dict[str, Node] = {}
        self._lock = threading.RLock()
        self._loop = loop
        self._batch_depth = 0
        self._pending: dict[Subscription, None] = {}
        self._evaluating: list[str] = []

        initial = initial or {}
        for node in nodes:
            self._register(node, initial)
        for name in initial:
            node = self._nodes.get(name)
            if not isinstance(node, Cell):
                raise InvalidName(name, "initial value given for something that is not a cell")

    # ─── Registration ────────────────────────────────────────────────────────

    def _register(self, node: Node, initial: dict[str, object]) -> None:
        name = node.name
        if name in self._nodes:
            raise InvalidName(name, "already registered")
        self._nodes[name] = node
        self._anchor.observers[name] = set()
        self._anchor.subscribers[name] = []
        if isinstance(node, Cell):
            self._anchor.values[name] = initial.get(name, node.default)
        elif isinstance(node, Computation):
            self._anchor.cached_values[name] = _UNSET
            self._anchor.dirty_flags[name] = True
            self._anchor.dependencies[name] = set()
            self._anchor.evaluations[name] = 0
            if node.is_async:
                self._anchor.generations[name] = 0
        else:
            raise TypeError(f"expected a Cell or Computation, got {node!r}")

    def _name_of(self, node: NodeRef) -> str:
        name = node if isinstance(node, str) else getattr(node, "name", None)
        if not isinstance(name, str):
            raise TypeError(f"expected a node name or handle, got {node!r}")
        if name not in self._nodes:
            raise InvalidName(name)
        return name

    def __contains__(self, node: NodeRef) -> bool:
        name = node if isinstance(node, str) else getattr(node, "name", None)
        return name in self._nodes

    def names(self) -> list[str]:
        return list(self._nodes)

    # ─── Reads ───────────────────────────────────────────────────────────────

    def read(self, node: NodeRef) -> Any:
        """Current value of a cell or sync computation; a Loadable for async ones."""
        with self._lock:
            return self._read_unlocked(self._name_of(node))

    def read_loadable(self, node: NodeRef) -> Loadable:
        """Any node's state as a Loadable. A sync computation that raises is Errored."""
        with self._lock:
            name = self._name_of(node)
            target = self._nodes[name]
            if isinstance(target, Computation) and target.is_async:
                return self._read_async(target)
            try:
                return Resolved(self._read_unlocked(name))
            except (CircularDependency, InvalidName):
                raise
            except Exception as exc:
                failure = ComputationError(name, str(exc) or type(exc).__name__)
                failure.__cause__ = exc
                return Errored(failure)

    async def resolve(self, node: NodeRef) -> Any:
        """Plain value of any node, waiting for pending async work.

        Raises AsyncFailure if the async computation ended in the errored state.
        """
        while True:
            with self._lock:
                name = self._name_of(node)
                target = self._nodes[name]
                if not (isinstance(target, Computation) and target.is_async):
                    return self._read_unlocked(name)
                state = self._read_async(target)
                future = self._anchor.inflight.get(name)
            if not isinstance(state, Pending):
                return state.unwrap()
            if future is None:
                raise RuntimeError(f"{name!r} is pending without a running request")
            if isinstance(future, concurrent.futures.Future):
                future = asyncio.wrap_future(future)
            # asyncio.wait never cancels the request if this caller is cancelled
            await asyncio.wait([future])
            # let the settle callback run before looking again
            await asyncio.sleep(0)

    def _read_unlocked(self, name: str) -> Any:
        node = self._nodes[name]
        if isinstance(node, Cell):
            return self._anchor.values[name]
        if node.is_async:
            return self._read_async(node)
        if self._anchor.dirty_flags[name]:
            self._evaluate(node)
        return self._anchor.cached_values[name]

    def _read_tracked(self, dependent: str, name: str, generation: int | None) -> Any:
        """Read on behalf of a computation, recording the dependency edge."""
        with self._lock:
            # an async request that was superseded keeps running but must not
            # leave edges behind
            if generation is None or self._anchor.generations.get(dependent) == generation:
                self._anchor.observers[name].add(dependent)
                self._anchor.dependencies[dependent].add(name)
            return self._read_unlocked(name)

    # ─── Evaluation ──────────────────────────────────────────────────────────

    def _evaluate(self, node: Computation) -> None:
        """Re-run a sync computation, re-tracking its dependencies."""
        name = node.name
        if name in self._evaluating:
            start = self._evaluating.index(name)
            raise CircularDependency(self._evaluating[start:] + [name])

        self._drop_dependencies(name)
        ctx = ReadContext(self, name)
        self._anchor.evaluations[name] += 1
        self._evaluating.append(name)
        try:
            value = node.fn(ctx)
        finally:
            self._evaluating.pop()

        self._anchor.cached_values[name] = value
        self._anchor.dirty_flags[name] = False
        logger.debug("evaluated %r, depends on %s", name, sorted(ctx.dependencies))

    def _drop_dependencies(self, name: str) -> None:
        for dep in self._anchor.dependencies[name]:
            self._anchor.observers[dep].discard(name)
        self._anchor.dependencies[name].clear()

    def _read_async(self, node: Computation) -> Loadable:
        name = node.name
        if self._anchor.dirty_flags[name]:
            self._start(node)
        return self._anchor.cached_values[name]

    def _start(self, node: Computation) -> None:
        """Start a new request for an async computation."""
        name = node.name
        generation = self._anchor.next_generation()
        self._anchor.generations[name] = generation
        self._drop_dependencies(name)

        coro = node.fn(ReadContext(self, name, generation))
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and (self._loop is None or self._loop is running):
            future = running.create_task(coro, name=f"recoilx:{name}")
        elif self._loop is not None:
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        else:
            coro.close()
            raise RuntimeError(
                f"{name!r} is async but no event loop is running and the Store has none"
            )

        self._anchor.inflight[name] = future
        self._anchor.cached_values[name] = PENDING
        self._anchor.dirty_flags[name] = False
        self._anchor.evaluations[name] += 1
        logger.debug("started %r (generation %d)", name, generation)
        future.add_done_callback(functools.partial(self._settle, name, generation))

    def _settle(self, name: str, generation: int, future) -> None:
        """Done callback of an async request. Stale generations are dropped."""
        with self._lock:
            if self._anchor.generations.get(name) != generation:
                if not future.cancelled():
                    future.exception()  # mark retrieved
                logger.debug("dropped stale result of %r (generation %d)", name, generation)
                return
            self._anchor.inflight.pop(name, None)

            if future.cancelled():
                result: Loadable = Errored(AsyncFailure(name, "cancelled"))
                logger.warning("%r was cancelled", name)
            elif future.exception() is not None:
                exc = future.exception()
                failure = AsyncFailure(name, str(exc) or type(exc).__name__)
                failure.__cause__ = exc
                result = Errored(failure)
                logger.error("%r failed", name, exc_info=exc)
            else:
                result = Resolved(future.result())
                logger.info("%r resolved", name)

            self._anchor.cached_values[name] = result
            self._notify(name)
        self._flush()

    # ─── Writes ──────────────────────────────────────────────────────────────

    def write(self, node: NodeRef, value: Any) -> None:
        """Replace a cell's value. A callable is applied to the previous value."""
        with self._lock:
            name = self._name_of(node)
            if not isinstance(self._nodes[name], Cell):
                raise InvalidName(name, "only cells can be written")
            old = self._anchor.values[name]
            new = value(old) if callable(value) else value
            if old is new or old == new:
                return
            self._anchor.values[name] = new
            self._notify(name)
        self._flush()

    def reset(self, node: NodeRef) -> None:
        """Write a cell's default value back."""
        name = self._name_of(node)
        target = self._nodes[name]
        if not isinstance(target, Cell):
            raise InvalidName(name, "only cells can be reset")
        self.write(name, lambda _old: target.default)

    def refresh(self, node: NodeRef) -> None:
        """Discard a computation's cache; async ones re-run on the next read."""
        with self._lock:
            name = self._name_of(node)
            if not isinstance(self._nodes[name], Computation):
                raise InvalidName(name, "only computations can be refreshed")
            affected: list[str] = []
            self._mark_dirty(name, affected)
            self._mark_dependents(name, affected)
            self._schedule(affected)
        self._flush()

    # ─── Invalidation ────────────────────────────────────────────────────────

    def _notify(self, name: str) -> None:
        """name changed: mark dependents dirty and schedule subscriptions. Lock held."""
        affected = [name]
        self._mark_dependents(name, affected)
        self._schedule(affected)

    def _mark_dependents(
        self, name: str, affected: list[str], visited: set[str] | None = None
    ) -> None:
        # already-dirty dependents are walked too: one that raised keeps its
        # edges, and whatever cached a fallback for it sits downstream
        if visited is None:
            visited = set(affected)
        for dependent in list(self._anchor.observers[name]):
            if dependent in visited:
                continue
            visited.add(dependent)
            self._mark_dirty(dependent, affected)
            self._mark_dependents(dependent, affected, visited)

    def _mark_dirty(self, name: str, affected: list[str]) -> None:
        self._anchor.dirty_flags[name] = True
        if name in self._anchor.generations:
            # orphan the in-flight request so its late result is dropped
            self._anchor.generations[name] = self._anchor.next_generation()
            self._anchor.inflight.pop(name, None)
        affected.append(name)

    # ─── Subscriptions ───────────────────────────────────────────────────────

    def subscribe(
        self,
        node: NodeRef,
        callback: Callable[[Any], None],
        *,
        fire_immediately: bool = False,
    ) -> Subscription:
        """Call callback(value) whenever the node's value changes.

        The node is read once now to establish the baseline; for async nodes
        that starts the request. Call .dispose() on the result to stop.
        """
        name = self._name_of(node)
        sub = Subscription(self, name, callback)
        with self._lock:
            if not fire_immediately:
                sub._last = self._read_unlocked(name)
            self._anchor.subscribers[name].append(sub)
        if fire_immediately:
            sub._run()
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._anchor.subscribers.get(sub.name, [])
            if sub in subs:
                subs.remove(sub)
            self._pending.pop(sub, None)

    def _schedule(self, names: list[str]) -> None:
        for name in names:
            for sub in self._anchor.subscribers[name]:
                self._pending[sub] = None

    def _flush(self) -> None:
        """Run scheduled subscriptions unless a transaction is open."""
        while True:
            with self._lock:
                if self._batch_depth > 0 or not self._pending:
                    return
                batch = list(self._pending)
                self._pending.clear()
            for sub in batch:
                sub._run()

    def _begin_batch(self) -> None:
        with self._lock:
            self._batch_depth += 1

    def _end_batch(self) -> None:
        with self._lock:
            self._batch_depth -= 1
        self._flush()

    def transaction(self):
        """Context manager: subscriptions fire once, after the outermost exit."""
        return transaction(self)

    # ─── Inspection ──────────────────────────────────────────────────────────

    def dependencies_of(self, node: NodeRef) -> frozenset[str]:
        """Names read by the computation's last evaluation."""
        with self._lock:
            return frozenset(self._anchor.dependencies.get(self._name_of(node), ()))

    def dependents_of(self, node: NodeRef) -> frozenset[str]:
        with self._lock:
            return frozenset(self._anchor.observers[self._name_of(node)])

    def is_dirty(self, node: NodeRef) -> bool:
        with self._lock:
            return self._anchor.dirty_flags.get(self._name_of(node), False)

    def evaluation_count(self, node: NodeRef) -> int:
        """How many times a computation has been evaluated (or started, if async)."""
        with self._lock:
            return self._anchor.evaluations.get(self._name_of(node), 0)

    def __repr__(self) -> str:
        cells = sum(isinstance(n, Cell) for n in self._nodes.values())
        return f"Store(cells={cells}, computations={len(self._nodes) - cells})"
