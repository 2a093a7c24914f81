"""Immutable list helpers for collections of identity-bearing records.

Every helper takes a collection and returns a new tuple; the input is never
modified. Records are matched by their ``id`` attribute. Untouched records
keep their relative order.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol, Sequence, TypeVar

from recoilx.errors import NotFound


class Identified(Protocol):
    @property
    def id(self) -> Any: ...


R = TypeVar("R", bound=Identified)


def index_of(collection: Sequence[R], record_id: Any) -> int:
    """Position of the record with record_id. Raises NotFound."""
    for index, record in enumerate(collection):
        if record.id == record_id:
            return index
    raise NotFound(record_id)


def find_by_id(collection: Sequence[R], record_id: Any) -> R:
    return collection[index_of(collection, record_id)]


def insert(collection: Iterable[R], record: R) -> tuple[R, ...]:
    """Append record. Its id must not already be in the collection."""
    items = tuple(collection)
    if any(item.id == record.id for item in items):
        raise ValueError(f"duplicate id {record.id!r}")
    return (*items, record)


def replace_by_id(collection: Iterable[R], record_id: Any, record: R) -> tuple[R, ...]:
    """Swap the record with record_id for record, keeping its position.

    record must carry the same id, otherwise the result could hold two
    records with one id.
    """
    if record.id != record_id:
        raise ValueError(f"replacement has id {record.id!r}, expected {record_id!r}")
    items = tuple(collection)
    index = index_of(items, record_id)
    return (*items[:index], record, *items[index + 1:])


def remove_by_id(collection: Iterable[R], record_id: Any) -> tuple[R, ...]:
    """Drop the record with record_id."""
    items = tuple(collection)
    index = index_of(items, record_id)
    return (*items[:index], *items[index + 1:])
