"""Data anchor — plain Python structures that hold one Store's graph state.

Every table is keyed by node name. Keeping the data apart from the Store's
behaviour means a test can inspect the graph without going through reads,
which would evaluate and re-track.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field


@dataclass
class Anchor:
    # Cell state
    values: dict[str, object] = field(default_factory=dict)

    # Computation state
    cached_values: dict[str, object] = field(default_factory=dict)
    dirty_flags: dict[str, bool] = field(default_factory=dict)
    dependencies: dict[str, set[str]] = field(default_factory=dict)  # name -> names it read

    # name -> names of computations that read it
    observers: dict[str, set[str]] = field(default_factory=dict)

    # name -> Subscription handles watching it
    subscribers: dict[str, list] = field(default_factory=dict)

    # Async computation state: request generation and in-flight future
    generations: dict[str, int] = field(default_factory=dict)
    inflight: dict[str, object] = field(default_factory=dict)

    # Evaluation counter per computation. Useful for testing memoization.
    evaluations: dict[str, int] = field(default_factory=dict)

    _generation_counter: itertools.count = field(default_factory=lambda: itertools.count(1))

    def next_generation(self) -> int:
        return next(self._generation_counter)
