"""Error taxonomy for the state graph.

InvalidName, NotFound and CircularDependency are programmer errors and are
raised straight to the caller. AsyncFailure is the recoverable one: the Store
caches it as the errored state of an async computation. ComputationError only
appears inside an Errored returned by read_loadable for a sync computation
that raised.
"""

from __future__ import annotations


class RecoilxError(Exception):
    """Base class for every error raised by recoilx."""


class InvalidName(RecoilxError, KeyError):
    """Read or write against a name the Store does not own (or cannot write)."""

    def __init__(self, name: str, reason: str = "not registered") -> None:
        super().__init__(name)
        self.name = name
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.name!r}: {self.reason}"


class NotFound(RecoilxError, LookupError):
    """A list helper was given an id that is absent from the collection."""

    def __init__(self, record_id: object) -> None:
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"no record with id {self.record_id!r}"


class AsyncFailure(RecoilxError):
    """The operation behind an async computation raised or timed out.

    The original exception is chained as __cause__.
    """

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(name, message)
        self.name = name
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.name!r} failed: {self.message}"
        return f"{self.name!r} failed"


class CircularDependency(RecoilxError):
    """A computation read itself, directly or through another computation."""

    def __init__(self, chain: list[str]) -> None:
        super().__init__(chain)
        self.chain = chain

    def __str__(self) -> str:
        return " -> ".join(self.chain)


class ComputationError(RecoilxError):
    """A sync computation raised while being read through read_loadable.

    The original exception is chained as __cause__. Nothing is cached.
    """

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(name, message)
        self.name = name
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.name!r} raised: {self.message}"
        return f"{self.name!r} raised"
