"""
Tests for cdp_mcp.cdp.frames (frame and execution context tracking).
"""

import pytest
import pytest_asyncio

from conftest import (
    MAIN_FRAME,
    NO_REPLY,
    ProtocolFault,
    context_created,
    exception_result,
    value_result,
)
from cdp_mcp.cdp.errors import (
    CDPConnectionError,
    CommandTimeoutError,
    NoExecutionContextError,
    ScriptExecutionError,
)
from cdp_mcp.cdp.frames import FrameContextMap, FrameContextTracker

FRAME_TREE = {
    "frame": {"id": MAIN_FRAME, "url": "https://example.com/"},
    "childFrames": [
        {
            "frame": {"id": "F-ads", "url": "https://ads.example.net/", "name": "ads"},
        },
        {
            "frame": {"id": "F-login", "url": "https://example.com/login"},
            "childFrames": [
                {"frame": {"id": "F-captcha", "url": "https://captcha.example.org/"}},
            ],
        },
    ],
}

CONTEXTS = {MAIN_FRAME: 1, "F-ads": 2, "F-login": 3, "F-captcha": 4}


class TestFrameContextMap:
    """Tests for the bidirectional frame/context map."""

    def test_bind_and_lookup_both_ways(self):
        contexts = FrameContextMap()
        contexts.bind("F1", 10)
        assert contexts.lookup("F1") == 10
        assert contexts.frame_for(10) == "F1"
        assert "F1" in contexts
        assert len(contexts) == 1

    def test_rebinding_frame_drops_old_context(self):
        contexts = FrameContextMap()
        contexts.bind("F1", 10)
        contexts.bind("F1", 11)
        assert contexts.lookup("F1") == 11
        assert contexts.frame_for(10) is None

    def test_unbind_context(self):
        contexts = FrameContextMap()
        contexts.bind("F1", 10)
        assert contexts.unbind_context(10) == "F1"
        assert contexts.lookup("F1") is None
        assert contexts.unbind_context(10) is None

    def test_clear(self):
        contexts = FrameContextMap()
        contexts.bind("F1", 10)
        contexts.bind("F2", 20)
        contexts.clear()
        assert len(contexts) == 0
        assert contexts.frame_for(20) is None


class TestContextEvents:
    """The map follows Runtime context lifecycle events."""

    @pytest_asyncio.fixture
    async def tracker(self, make_connection):
        connection = make_connection()
        await connection.connect()
        tracker = FrameContextTracker(connection, grace_interval=0)
        tracker.attach()
        return tracker

    @pytest.mark.asyncio
    async def test_created_destroyed_cleared(self, browser, tracker):
        browser.emit("Runtime.executionContextCreated", context_created(7, "F"))
        assert tracker.contexts.lookup("F") == 7

        browser.emit("Runtime.executionContextDestroyed", {"executionContextId": 7})
        assert tracker.contexts.lookup("F") is None

        browser.emit("Runtime.executionContextCreated", context_created(8, "F"))
        browser.emit("Runtime.executionContextCreated", context_created(9, "G"))
        browser.emit("Runtime.executionContextsCleared", {})
        assert len(tracker.contexts) == 0

    @pytest.mark.asyncio
    async def test_isolated_world_does_not_bind(self, browser, tracker):
        browser.emit("Runtime.executionContextCreated", context_created(7, "F"))
        browser.emit("Runtime.executionContextCreated", context_created(50, "F", is_default=False))
        assert tracker.contexts.lookup("F") == 7

    @pytest.mark.asyncio
    async def test_detach_stops_tracking(self, browser, tracker):
        tracker.detach()
        browser.emit("Runtime.executionContextCreated", context_created(7, "F"))
        assert tracker.contexts.lookup("F") is None

    @pytest.mark.asyncio
    async def test_channel_close_resets(self, browser, tracker):
        browser.emit("Runtime.executionContextCreated", context_created(7, "F"))
        browser.transport.drop()
        assert len(tracker.contexts) == 0


class TestFrameTracker:
    """Tests for frame listing, frame-scoped evaluation and search."""

    @pytest_asyncio.fixture
    async def tracker(self, browser, make_connection):
        browser.install_page(FRAME_TREE, CONTEXTS)
        connection = make_connection()
        await connection.connect()
        tracker = FrameContextTracker(connection, grace_interval=0)
        tracker.attach()
        return tracker

    @pytest.mark.asyncio
    async def test_refresh_replays_contexts(self, browser, tracker):
        await tracker.refresh_frame_tree()

        assert tracker.main_frame_id == MAIN_FRAME
        assert browser.methods()[-2:] == ["Runtime.disable", "Runtime.enable"]
        assert tracker.contexts.lookup("F-captcha") == 4

    @pytest.mark.asyncio
    async def test_list_frames_depth_first(self, tracker):
        frames = await tracker.list_frames()

        assert [frame.id for frame in frames] == [MAIN_FRAME, "F-ads", "F-login", "F-captcha"]
        assert [frame.is_main for frame in frames] == [True, False, False, False]
        assert frames[3].parent_id == "F-login"
        assert frames[1].name == "ads"

    @pytest.mark.asyncio
    async def test_evaluate_in_frame_uses_its_context(self, browser, tracker):
        browser.on_evaluate(lambda expression, params: f"ctx{params.get('contextId')}")
        await tracker.refresh_frame_tree()

        assert await tracker.evaluate_in_frame("F-login", "document.title") == "ctx3"
        assert browser.calls_to("Runtime.evaluate")[-1]["contextId"] == 3

    @pytest.mark.asyncio
    async def test_unknown_frame_refreshes_once(self, browser, tracker):
        """A missing context triggers one refresh, then succeeds."""
        browser.on_evaluate(lambda expression, params: params.get("contextId"))

        assert await tracker.evaluate_in_frame("F-ads", "1") == 2
        assert browser.methods().count("Page.getFrameTree") == 1

    @pytest.mark.asyncio
    async def test_no_context_after_refresh(self, browser, tracker):
        with pytest.raises(NoExecutionContextError) as exc_info:
            await tracker.evaluate_in_frame("F-gone", "1")
        assert exc_info.value.frame_id == "F-gone"

    @pytest.mark.asyncio
    async def test_script_error_in_frame(self, browser, tracker):
        browser.on_evaluate(lambda expression, params: exception_result())
        await tracker.refresh_frame_tree()

        with pytest.raises(ScriptExecutionError) as exc_info:
            await tracker.evaluate_in_frame("F-login", "boom()")
        assert exc_info.value.line == 1
        assert exc_info.value.column == 5

    @pytest.mark.asyncio
    async def test_find_skips_failing_frames(self, browser, tracker):
        """First match depth-first; a frame that throws is skipped."""

        def evaluate(params):
            context_id = params.get("contextId")
            if context_id == 2:
                return ProtocolFault(-32000, "Cannot find context with specified id")
            found = context_id in (3, 4)
            return {"result": {"type": "boolean", "value": found}}

        browser.on("Runtime.evaluate", evaluate)

        match = await tracker.find_element_in_frames("#login")

        assert match is not None
        assert match.frame_id == "F-login"
        assert match.url == "https://example.com/login"

    @pytest.mark.asyncio
    async def test_find_returns_none(self, browser, tracker):
        browser.on_evaluate(lambda expression, params: False)
        assert await tracker.find_element_in_frames("#nope") is None

    @pytest.mark.asyncio
    async def test_click_and_type_in_frame(self, browser, tracker):
        browser.on_evaluate(lambda expression, params: {"success": "#ok" in expression})
        await tracker.refresh_frame_tree()

        assert await tracker.click_in_frame("F-login", "#ok") is True
        assert await tracker.type_in_frame("F-login", "#missing", "x") is False
        assert await tracker.click_in_frame("F-gone", "#ok") is False


class TestFrameSearchFailures:
    """Channel loss and timeouts are not treated as an unavailable frame."""

    async def start(self, browser, make_connection, timeout=1.0):
        browser.install_page(FRAME_TREE, CONTEXTS)
        connection = make_connection(timeout=timeout)
        await connection.connect()
        tracker = FrameContextTracker(connection, grace_interval=0)
        tracker.attach()
        await tracker.refresh_frame_tree()
        return tracker

    @pytest.mark.asyncio
    async def test_search_raises_when_a_frame_times_out(self, browser, make_connection):
        tracker = await self.start(browser, make_connection, timeout=0.05)
        browser.on(
            "Runtime.evaluate",
            lambda params: NO_REPLY if params.get("contextId") == 3 else value_result(False),
        )

        with pytest.raises(CommandTimeoutError):
            await tracker.find_element_in_frames("#x")

    @pytest.mark.asyncio
    async def test_search_raises_when_channel_drops(self, browser, make_connection):
        tracker = await self.start(browser, make_connection)

        def evaluate(params):
            if params.get("contextId") == 2:
                browser.transport.drop()
                return NO_REPLY
            return value_result(False)

        browser.on("Runtime.evaluate", evaluate)

        with pytest.raises(CDPConnectionError):
            await tracker.find_element_in_frames("#x")

    @pytest.mark.asyncio
    async def test_click_in_frame_raises_on_timeout(self, browser, make_connection):
        tracker = await self.start(browser, make_connection, timeout=0.05)
        browser.on("Runtime.evaluate", NO_REPLY)

        with pytest.raises(CommandTimeoutError):
            await tracker.click_in_frame("F-login", "#ok")

    @pytest.mark.asyncio
    async def test_type_in_frame_script_error_is_failure(self, browser, make_connection):
        tracker = await self.start(browser, make_connection)
        browser.on_evaluate(lambda expression, params: exception_result())

        assert await tracker.type_in_frame("F-login", "#name", "x") is False
