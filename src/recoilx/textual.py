"""Textual integration for recoilx. Opt-in — requires textual.

Guards, NoMatches handling and thread marshalling live here so widget code
can subscribe to store nodes without repeating them. Core recoilx never
imports textual.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded subscriptions during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def subscribe(app, store, node, effect, *, fire_immediately=False):
    """store.subscribe() that safely bridges to Textual widgets.

    Skips while the app is paused or not running, ignores NoMatches from
    widget queries, and marshals calls from other threads (an async
    computation settling on a worker loop) via call_from_thread.
    """
    _main = threading.get_ident()

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            effect(value)
        except NoMatches:
            pass

    return store.subscribe(node, _guarded, fire_immediately=fire_immediately)
