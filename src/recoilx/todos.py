"""The todo-list state graph.

Two cells (the list and the filter mode), two sync computations derived
from them (the filtered list and the stats) and one async computation that
fetches a title from a remote service. TodoController carries the handlers a
UI binds to its widgets: add, edit, toggle, delete and set_filter.
"""

from __future__ import annotations

import dataclasses
import itertools
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable

from recoilx import list_ops
from recoilx._tracking import ReadContext
from recoilx.cell import atom
from recoilx.computed import selector
from recoilx.config import Settings
from recoilx.store import Store

TODO_LIST = "todoListState"
TODO_FILTER = "todoFilterState"
FILTERED_TODOS = "todoFilterSelector"
TODO_STATS = "todoStateSelector"
USER_DATA = "userDataSelector"

FILTER_ALL = "all"
FILTER_COMPLETE = "complete"
FILTER_INCOMPLETE = "incomplete"
FILTER_MODES = (FILTER_ALL, FILTER_COMPLETE, FILTER_INCOMPLETE)


@dataclass(frozen=True)
class Todo:
    id: int
    text: str
    is_complete: bool = False

    def with_text(self, text: str) -> Todo:
        return dataclasses.replace(self, text=text)

    def toggled(self) -> Todo:
        return dataclasses.replace(self, is_complete=not self.is_complete)

    def as_dict(self) -> dict[str, object]:
        return {"id": self.id, "text": self.text, "isComplete": self.is_complete}


@dataclass(frozen=True)
class TodoStats:
    total: int
    to_do: int
    not_todo: int
    completion_ratio: float

    def as_dict(self) -> dict[str, float]:
        return {
            "total": self.total,
            "toDo": self.to_do,
            "notTodo": self.not_todo,
            "completionRatio": self.completion_ratio,
        }


class IdSequence:
    """Monotonic id source. One per controller, so stores never share ids."""

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


# ─── Derivations ─────────────────────────────────────────────────────────────


def filter_todos(todos: tuple[Todo, ...], mode: str) -> tuple[Todo, ...]:
    """Unknown modes behave like "all"."""
    if mode == FILTER_COMPLETE:
        return tuple(todo for todo in todos if todo.is_complete)
    if mode == FILTER_INCOMPLETE:
        return tuple(todo for todo in todos if not todo.is_complete)
    return todos


def todo_stats(todos: tuple[Todo, ...]) -> TodoStats:
    total = len(todos)
    done = sum(1 for todo in todos if todo.is_complete)
    return TodoStats(
        total=total,
        to_do=total - done,
        not_todo=done,
        completion_ratio=done / total if total > 0 else 0,
    )


# ─── Nodes ───────────────────────────────────────────────────────────────────

todo_list_state = atom(TODO_LIST, ())
todo_filter_state = atom(TODO_FILTER, FILTER_ALL)

todo_filter_selector = selector(
    FILTERED_TODOS,
    lambda ctx: filter_todos(ctx.get(TODO_LIST), ctx.get(TODO_FILTER)),
)

todo_state_selector = selector(
    TODO_STATS,
    lambda ctx: todo_stats(ctx.get(TODO_LIST)),
)


def user_data_selector(fetch_title: Callable[[], Awaitable[str]]):
    """The async computation publishing the remote title."""

    async def user_data(ctx: ReadContext) -> str:
        return await fetch_title()

    return selector(USER_DATA, user_data)


def build_store(
    fetch_title: Callable[[], Awaitable[str]] | None = None,
    settings: Settings | None = None,
    initial: dict[str, object] | None = None,
    **store_kwargs,
) -> Store:
    """A Store holding the five todo nodes.

    fetch_title defaults to remote.fetch_user_title with the given settings.
    """
    if fetch_title is None:
        from recoilx.remote import fetch_user_title

        def fetch_title():
            return fetch_user_title(settings=settings)

    nodes = [
        todo_list_state,
        todo_filter_state,
        todo_filter_selector,
        todo_state_selector,
        user_data_selector(fetch_title),
    ]
    return Store(nodes, initial, **store_kwargs)


# ─── Handlers ────────────────────────────────────────────────────────────────


class TodoController:
    """Handlers behind the todo UI. All list writes are updaters."""

    def __init__(self, store: Store, ids: IdSequence | None = None) -> None:
        self.store = store
        self.ids = ids or IdSequence()

    def add(self, text: str) -> Todo:
        todo = Todo(self.ids.next(), text)
        self.store.write(TODO_LIST, lambda todos: list_ops.insert(todos, todo))
        return todo

    def edit(self, todo_id: int, text: str) -> Todo:
        return self._change(todo_id, lambda todo: todo.with_text(text))

    def toggle(self, todo_id: int) -> Todo:
        return self._change(todo_id, Todo.toggled)

    def delete(self, todo_id: int) -> None:
        self.store.write(TODO_LIST, lambda todos: list_ops.remove_by_id(todos, todo_id))

    def set_filter(self, mode: str) -> None:
        self.store.write(TODO_FILTER, mode)

    def _change(self, todo_id: int, change: Callable[[Todo], Todo]) -> Todo:
        changed: list[Todo] = []

        def update(todos):
            todo = change(list_ops.find_by_id(todos, todo_id))
            changed.append(todo)
            return list_ops.replace_by_id(todos, todo_id, todo)

        self.store.write(TODO_LIST, update)
        return changed[-1]
