"""
Tests for cdp_mcp.cdp.events.
"""

import asyncio

import pytest

from cdp_mcp.cdp.events import EventBus


class TestEventBus:
    """Tests for EventBus fan-out."""

    def test_handlers_run_in_registration_order(self):
        """Every handler sees the event once, in the order registered."""
        bus = EventBus()
        seen = []
        bus.on("Page.loadEventFired", lambda p: seen.append(("a", p["t"])))
        bus.on("Page.loadEventFired", lambda p: seen.append(("b", p["t"])))
        bus.on("Page.loadEventFired", lambda p: seen.append(("c", p["t"])))

        assert bus.emit("Page.loadEventFired", {"t": 1}) == 3
        assert seen == [("a", 1), ("b", 1), ("c", 1)]

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        seen = []

        def broken(params):
            raise RuntimeError("handler bug")

        bus.on("X.event", lambda p: seen.append("first"))
        bus.on("X.event", broken)
        bus.on("X.event", lambda p: seen.append("last"))

        assert bus.emit("X.event") == 3
        assert seen == ["first", "last"]

    def test_duplicate_registration_is_called_twice(self):
        bus = EventBus()
        calls = []
        handler = calls.append
        bus.on("X.event", handler)
        bus.on("X.event", handler)

        bus.emit("X.event", {"n": 1})
        assert len(calls) == 2

    def test_cancel_removes_only_that_registration(self):
        """A token removes its own registration, not a twin of the same handler."""
        bus = EventBus()
        calls = []
        handler = calls.append
        first = bus.on("X.event", handler)
        bus.on("X.event", handler)

        first.cancel()
        first.cancel()
        bus.emit("X.event", {})

        assert len(calls) == 1
        assert bus.listener_count("X.event") == 1

    def test_once_unsubscribes_after_first_delivery(self):
        bus = EventBus()
        calls = []
        bus.once("X.event", calls.append)

        bus.emit("X.event", {"n": 1})
        bus.emit("X.event", {"n": 2})

        assert calls == [{"n": 1}]
        assert bus.listener_count("X.event") == 0

    def test_emit_without_handlers(self):
        bus = EventBus()
        assert bus.emit("Nobody.listens") == 0

    def test_handler_added_during_dispatch_waits_for_next_emit(self):
        bus = EventBus()
        calls = []

        def register(params):
            bus.on("X.event", lambda p: calls.append("late"))

        bus.on("X.event", register)
        bus.emit("X.event")
        assert calls == []
        bus.emit("X.event")
        assert calls == ["late"]

    def test_off_and_replace(self):
        bus = EventBus()
        calls = []
        bus.on("X.event", lambda p: calls.append("old"))
        bus.on("Y.event", lambda p: calls.append("other"))

        bus.replace("X.event", [lambda p: calls.append("new")])
        bus.emit("X.event")
        assert calls == ["new"]

        bus.off("X.event")
        assert bus.listener_count("X.event") == 0
        assert bus.event_names() == ["Y.event"]

    def test_clear_deactivates_tokens(self):
        bus = EventBus()
        subscription = bus.on("X.event", lambda p: None)
        bus.clear()
        assert not subscription.active
        assert bus.event_names() == []

    @pytest.mark.asyncio
    async def test_async_handler_failure_is_logged(self, caplog):
        bus = EventBus()
        seen = []

        async def broken(params):
            raise RuntimeError("async handler bug")

        async def working(params):
            seen.append(params["t"])

        bus.on("X.event", broken)
        bus.on("X.event", working)

        with caplog.at_level("ERROR", logger="cdp_mcp.cdp.events"):
            assert bus.emit("X.event", {"t": 1}) == 2
            for _ in range(3):
                await asyncio.sleep(0)

        assert seen == [1]
        failures = [r for r in caplog.records if "async CDP event handler for X.event" in r.getMessage()]
        assert len(failures) == 1
        assert isinstance(failures[0].exc_info[1], RuntimeError)


class TestEventWaiter:
    """Tests for one-shot event waits."""

    @pytest.mark.asyncio
    async def test_expect_catches_event_fired_before_wait(self):
        """Subscribing first means an early event is not missed."""
        bus = EventBus()
        waiter = bus.expect("Page.loadEventFired")
        bus.emit("Page.loadEventFired", {"timestamp": 5.0})

        assert waiter.done
        assert await waiter.wait(0.1) == {"timestamp": 5.0}
        assert bus.listener_count("Page.loadEventFired") == 0

    @pytest.mark.asyncio
    async def test_predicate_filters_events(self):
        bus = EventBus()
        waiter = bus.expect("X.event", predicate=lambda p: p.get("n") == 2)
        bus.emit("X.event", {"n": 1})
        assert not waiter.done
        bus.emit("X.event", {"n": 2})
        assert await waiter.wait(0.1) == {"n": 2}

    @pytest.mark.asyncio
    async def test_wait_for_timeout_unsubscribes(self):
        bus = EventBus()
        with pytest.raises(asyncio.TimeoutError):
            await bus.wait_for("X.event", timeout=0.01)
        assert bus.listener_count("X.event") == 0

    @pytest.mark.asyncio
    async def test_wait_for_resolves_from_later_emit(self):
        bus = EventBus()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, bus.emit, "X.event", {"ok": True})
        assert await bus.wait_for("X.event", timeout=1.0) == {"ok": True}

    @pytest.mark.asyncio
    async def test_cancel_waiter(self):
        bus = EventBus()
        waiter = bus.expect("X.event")
        waiter.cancel()
        assert bus.listener_count("X.event") == 0
        assert bus.emit("X.event") == 0
