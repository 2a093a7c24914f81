"""Loadable — the tri-state result of an async computation.

Pending, Resolved(value) and Errored(error) are plain frozen records so they
compare by value: a subscription sees Resolved("x") == Resolved("x") and does
not fire twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from recoilx.errors import AsyncFailure, ComputationError

T = TypeVar("T")


@dataclass(frozen=True)
class Pending:
    state = "pending"

    def unwrap(self) -> Any:
        raise LookupError("value is still pending")


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T
    state = "resolved"

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Errored:
    error: Union[AsyncFailure, ComputationError]
    state = "errored"

    def unwrap(self) -> Any:
        raise self.error


Loadable = Union[Pending, Resolved, Errored]

PENDING = Pending()
