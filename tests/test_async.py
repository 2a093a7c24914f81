"""Tests for async Computations: pending/resolved/errored, refresh, stale results."""

import asyncio
import threading

import pytest

from recoilx import AsyncFailure, ComputationError, Errored, Pending, Resolved, Store, atom, selector


def _gated():
    """An async computation whose requests finish only when their gate is set."""
    gates = []

    async def fetch(ctx):
        gate = asyncio.Event()
        value = f"v{len(gates)}"
        gates.append(gate)
        await gate.wait()
        return value

    return fetch, gates


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestAsyncComputation:
    @pytest.mark.asyncio
    async def test_pending_then_resolved(self):
        async def fetch(ctx):
            return "title"

        s = Store([selector("u", fetch)])
        assert s.read("u") == Pending()
        assert await s.resolve("u") == "title"
        assert s.read("u") == Resolved("title")

    @pytest.mark.asyncio
    async def test_resolved_value_is_not_refetched(self):
        calls = []

        async def fetch(ctx):
            calls.append(1)
            return "title"

        s = Store([selector("u", fetch)])
        await s.resolve("u")
        s.read("u")
        await s.resolve("u")
        assert len(calls) == 1
        assert s.evaluation_count("u") == 1

    @pytest.mark.asyncio
    async def test_one_request_while_pending(self):
        fetch, gates = _gated()
        s = Store([selector("u", fetch)])
        s.read("u")
        s.read("u")
        await _settle()
        assert len(gates) == 1
        gates[0].set()
        assert await s.resolve("u") == "v0"

    @pytest.mark.asyncio
    async def test_failure_is_cached_as_errored(self):
        calls = []

        async def fetch(ctx):
            calls.append(1)
            raise ConnectionError("unreachable")

        s = Store([selector("u", fetch)])
        s.read("u")
        await _settle()

        state = s.read("u")
        assert isinstance(state, Errored)
        assert isinstance(state.error, AsyncFailure)
        assert isinstance(state.error.__cause__, ConnectionError)
        assert state.error.name == "u"

        with pytest.raises(AsyncFailure):
            await s.resolve("u")
        assert len(calls) == 1  # errored state is not retried on read

    @pytest.mark.asyncio
    async def test_refresh_refetches(self):
        calls = []

        async def fetch(ctx):
            calls.append(1)
            if len(calls) == 1:
                raise ConnectionError("flaky")
            return "ok"

        s = Store([selector("u", fetch)])
        with pytest.raises(AsyncFailure):
            await s.resolve("u")
        s.refresh("u")
        assert await s.resolve("u") == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_stale_result_is_dropped(self):
        fetch, gates = _gated()
        s = Store([selector("u", fetch)])
        s.read("u")
        await _settle()
        s.refresh("u")
        s.read("u")
        await _settle()
        assert len(gates) == 2

        gates[0].set()  # the superseded request finishes first
        await _settle()
        assert s.read("u") == Pending()

        gates[1].set()
        assert await s.resolve("u") == "v1"
        assert s.read("u") == Resolved("v1")

    @pytest.mark.asyncio
    async def test_cell_dependency_restarts_request(self):
        async def greet(ctx):
            name = ctx.get("name")
            await asyncio.sleep(0)
            return f"hello {name}"

        s = Store([atom("name", "a"), selector("greeting", greet)])
        assert await s.resolve("greeting") == "hello a"
        assert s.dependencies_of("greeting") == {"name"}

        s.write("name", "b")
        assert s.is_dirty("greeting")
        assert s.read("greeting") == Pending()
        assert await s.resolve("greeting") == "hello b"

    @pytest.mark.asyncio
    async def test_write_while_pending_drops_old_request(self):
        async def greet(ctx):
            name = ctx.get("name")
            await asyncio.sleep(0.01)
            return f"hello {name}"

        s = Store([atom("name", "a"), selector("greeting", greet)])
        s.read("greeting")
        await _settle()
        s.write("name", "b")
        assert await s.resolve("greeting") == "hello b"

    @pytest.mark.asyncio
    async def test_sync_dependent_sees_settle(self):
        async def fetch(ctx):
            return "title"

        s = Store([
            selector("u", fetch),
            selector("shout", lambda ctx: ctx.get("u")),
        ])
        assert s.read("shout") == Pending()
        await s.resolve("u")
        assert s.is_dirty("shout")
        assert s.read("shout") == Resolved("title")

    @pytest.mark.asyncio
    async def test_resolve_sync_node(self):
        s = Store([atom("x", 2), selector("y", lambda ctx: ctx.get("x") + 1)])
        assert await s.resolve("x") == 2
        assert await s.resolve("y") == 3


class TestReadLoadable:
    def test_cell_is_resolved(self):
        s = Store([atom("x", 1)])
        assert s.read_loadable("x") == Resolved(1)

    def test_raising_computation_is_errored(self):
        def boom(ctx):
            raise ValueError("bad")

        s = Store([selector("y", boom)])
        state = s.read_loadable("y")
        assert isinstance(state, Errored)
        assert isinstance(state.error, ComputationError)
        assert not isinstance(state.error, AsyncFailure)
        assert isinstance(state.error.__cause__, ValueError)
        with pytest.raises(ComputationError):
            state.unwrap()

    def test_pending_unwrap_raises(self):
        with pytest.raises(LookupError):
            Pending().unwrap()


class TestEventLoops:
    def test_no_loop_fails_fast(self):
        async def fetch(ctx):
            return "title"

        s = Store([selector("u", fetch)])
        with pytest.raises(RuntimeError, match="no event loop"):
            s.read("u")
        assert s.is_dirty("u")

    def test_store_loop_in_background_thread(self):
        loop = asyncio.new_event_loop()
        thread = threading.Thread(target=loop.run_forever, daemon=True)
        thread.start()
        try:
            async def fetch(ctx):
                await asyncio.sleep(0)
                return "title"

            s = Store([selector("u", fetch)], loop=loop)
            done = threading.Event()
            seen = []

            def on_change(value):
                seen.append(value)
                done.set()

            s.subscribe("u", on_change)  # baseline read starts the request
            assert done.wait(timeout=5)
            assert seen == [Resolved("title")]
            assert s.read("u") == Resolved("title")
        finally:
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=5)
            loop.close()
