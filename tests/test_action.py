"""Tests for action batching and the transaction context manager."""

from recoilx import Store, action, atom, selector, transaction


def _store():
    return Store([
        atom("a", 0),
        atom("b", 0),
        selector("pair", lambda ctx: (ctx.get("a"), ctx.get("b"))),
    ])


class TestAction:
    def test_batches_updates(self):
        s = _store()
        log = []
        s.subscribe("pair", log.append, fire_immediately=True)
        assert log == [(0, 0)]

        @action(s)
        def update_both():
            s.write("a", 1)
            s.write("b", 2)

        update_both()
        # Should see (1, 2) not intermediate (1, 0)
        assert log == [(0, 0), (1, 2)]

    def test_nested_actions(self):
        s = _store()
        log = []
        s.subscribe("a", log.append, fire_immediately=True)

        @action(s)
        def outer():
            s.write("a", 1)

            @action(s)
            def inner():
                s.write("a", 2)

            inner()
            s.write("a", 3)

        outer()
        # Only fires after outermost action completes
        assert log == [0, 3]

    def test_preserves_return_value(self):
        s = _store()

        @action(s)
        def compute():
            return 42

        assert compute() == 42

    def test_reads_inside_batch_are_fresh(self):
        s = _store()
        s.read("pair")
        with transaction(s):
            s.write("a", 5)
            assert s.read("pair") == (5, 0)


class TestTransaction:
    def test_batches_updates(self):
        s = _store()
        log = []
        s.subscribe("pair", log.append, fire_immediately=True)

        with transaction(s):
            s.write("a", 10)
            s.write("b", 20)

        assert log == [(0, 0), (10, 20)]

    def test_store_method(self):
        s = _store()
        log = []
        s.subscribe("pair", log.append)

        with s.transaction():
            s.write("a", 1)
            s.write("b", 1)

        assert log == [(1, 1)]

    def test_nested_transactions(self):
        s = _store()
        log = []
        s.subscribe("a", log.append, fire_immediately=True)

        with transaction(s):
            s.write("a", 1)
            with transaction(s):
                s.write("a", 2)
            s.write("a", 3)

        assert log == [0, 3]

    def test_flushes_after_exception(self):
        s = _store()
        log = []
        s.subscribe("a", log.append)

        try:
            with transaction(s):
                s.write("a", 1)
                raise RuntimeError("oops")
        except RuntimeError:
            pass

        assert log == [1]
