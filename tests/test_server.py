"""
Tests for the MCP server tool routing.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from mcp.types import CallToolRequest, ImageContent, ListToolsRequest, TextContent

from conftest import exception_result, unreachable_transport
from cdp_mcp.cdp.discovery import DiscoveryClient
from cdp_mcp.cdp.manager import NOT_CONNECTED_MESSAGE, ConnectionManager
from cdp_mcp.mcp import ALL_TOOLS, CDPMCPServer
from cdp_mcp.models import LaunchResult


def fake_launcher(result=None):
    launcher = MagicMock()
    launcher.is_running = False
    launcher.launch = AsyncMock(return_value=result or LaunchResult(launched=False, error="no_browser_found"))
    launcher.close = AsyncMock(return_value=True)
    return launcher


@pytest.fixture
def opened():
    """Records the (host, port) pairs sessions were built for."""
    return []


@pytest.fixture
def server(make_session, opened):
    def factory(host, port):
        opened.append((host, port))
        return make_session(host=host, port=port)

    return CDPMCPServer(
        manager=ConnectionManager(),
        launcher=fake_launcher(),
        session_factory=factory,
    )


@pytest_asyncio.fixture
async def connected(server):
    result = await server.handle_tool("cdp_connect", {"port": 9222})
    assert result["connected"] is True
    yield server
    await server.shutdown()


class TestRouting:
    """Tests for tool listing and dispatch."""

    def test_handlers_registered(self, server):
        handlers = server.server.request_handlers
        assert ListToolsRequest in handlers
        assert CallToolRequest in handlers

    @pytest.mark.asyncio
    async def test_list_tools(self, server):
        tools = await server._list_tools()
        assert len(tools) == 13
        assert [tool.name for tool in tools] == ALL_TOOLS

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        assert await server.handle_tool("cdp_teleport", {}) == {"error": "Unknown tool: cdp_teleport"}

    @pytest.mark.asyncio
    async def test_requires_connection(self, server):
        for name in ("cdp_read", "cdp_execute", "cdp_list_tabs"):
            result = await server.handle_tool(name, {"script": "1"})
            assert result == {"error": NOT_CONNECTED_MESSAGE}

    @pytest.mark.asyncio
    async def test_dict_result_is_json_text(self, server):
        content = await server._call_tool("cdp_teleport", None)
        assert isinstance(content[0], TextContent)
        assert json.loads(content[0].text) == {"error": "Unknown tool: cdp_teleport"}

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, server):
        server.manager.close = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await server._call_tool("cdp_close", {})


class TestLifecycleTools:
    """Tests for connect, launch and close."""

    @pytest.mark.asyncio
    async def test_connect(self, server, opened):
        result = await server.handle_tool("cdp_connect", {"host": "127.0.0.1", "port": 9333, "tab": 1})

        assert opened == [("127.0.0.1", 9333)]
        assert result["connected"] is True
        assert result["tab_index"] == 1
        assert result["browser"] == "Chrome/120.0.6099.109"
        assert server.manager.is_connected
        await server.shutdown()

    @pytest.mark.asyncio
    async def test_connect_uses_config_defaults(self, server, opened):
        await server.handle_tool("cdp_connect", {})
        assert opened == [("localhost", 9222)]
        await server.shutdown()

    @pytest.mark.asyncio
    async def test_connect_failure_reports_step(self, make_session):
        def factory(host, port):
            return make_session(discovery=DiscoveryClient(host, port, transport=unreachable_transport()))

        server = CDPMCPServer(launcher=fake_launcher(), session_factory=factory)
        result = await server.handle_tool("cdp_connect", {})

        assert result["connected"] is False
        assert result["step"] == "discover"
        assert server.manager.current is None

    @pytest.mark.asyncio
    async def test_launch_then_connect(self, server, opened):
        server.launcher.launch.return_value = LaunchResult(
            launched=True, browser="Chromium", port=9333, pid=4242
        )

        result = await server.handle_tool("cdp_launch", {"port": 9333, "headless": True})

        options = server.launcher.launch.await_args.args[0]
        assert options.port == 9333
        assert options.headless is True
        assert opened == [("localhost", 9333)]
        assert result["connected"] is True
        assert result["tab"]["url"] == "https://example.com/0"
        await server.shutdown()

    @pytest.mark.asyncio
    async def test_launch_failure_skips_connect(self, server, opened):
        result = await server.handle_tool("cdp_launch", {})
        assert result["error"] == "no_browser_found"
        assert opened == []

    @pytest.mark.asyncio
    async def test_close(self, connected):
        result = await connected.handle_tool("cdp_close", {})
        assert result == {"disconnected": True, "browser_closed": False}
        connected.launcher.close.assert_not_awaited()

        result = await connected.handle_tool("cdp_close", {"close_browser": True})
        assert result == {"disconnected": False, "browser_closed": True}

    @pytest.mark.asyncio
    async def test_list_and_switch_tabs(self, connected):
        tabs = (await connected.handle_tool("cdp_list_tabs", {}))["tabs"]
        assert [tab["active"] for tab in tabs] == [True, False, False]

        result = await connected.handle_tool("cdp_switch_tab", {"tab": 2})
        assert result == {"success": True, "tab": 2, "url": "https://example.com/2", "title": "Tab 2"}

        result = await connected.handle_tool("cdp_switch_tab", {"tab": 7})
        assert result == {"success": False, "error": "Tab index 7 is not available"}


class TestPageTools:
    """Tests for argument handling of the page tools."""

    @pytest.mark.asyncio
    async def test_interact_missing_argument(self, connected):
        result = await connected.handle_tool("cdp_interact", {"action": "click"})
        assert result == {"error": "selector required for click"}

    @pytest.mark.asyncio
    async def test_upload_missing_file(self, connected, tmp_path):
        result = await connected.handle_tool(
            "cdp_interact",
            {"action": "upload", "selector": "#f", "file_path": str(tmp_path / "nope.txt")},
        )
        assert result["error"].startswith("File not found")

    @pytest.mark.asyncio
    async def test_navigate_needs_url(self, connected):
        assert await connected.handle_tool("cdp_navigate", {}) == {"error": "url or action required"}

    @pytest.mark.asyncio
    async def test_read_missing_element(self, browser, connected):
        browser.on_evaluate(lambda expression, params: None)
        result = await connected.handle_tool("cdp_read", {"target": "element", "selector": "#gone"})
        assert result == {"selector": "#gone", "error": "Element not found"}

    @pytest.mark.asyncio
    async def test_screenshot_is_image_content(self, browser, connected):
        browser.on("Page.captureScreenshot", {"data": "aGVsbG8="})

        content = await connected._call_tool("cdp_screenshot", {"format": "jpeg"})

        assert isinstance(content[0], ImageContent)
        assert content[0].data == "aGVsbG8="
        assert content[0].mimeType == "image/jpeg"

    @pytest.mark.asyncio
    async def test_screenshot_saved(self, browser, connected, tmp_path):
        browser.on("Page.captureScreenshot", {"data": "aGVsbG8="})
        target = tmp_path / "shots" / "page.png"

        result = await connected.handle_tool("cdp_screenshot", {"path": str(target)})

        assert result == {"saved": str(target), "format": "png", "bytes": 5}
        assert target.read_bytes() == b"hello"

    @pytest.mark.asyncio
    async def test_wait_timeout_is_milliseconds(self, browser, connected):
        browser.on_evaluate(lambda expression, params: False)
        result = await connected.handle_tool(
            "cdp_wait", {"condition": "element_exists", "selector": "#never", "timeout": 50}
        )
        assert result["success"] is False
        assert result["waited_ms"] < 1000


class TestScriptTools:
    """Tests for script execution and frames."""

    @pytest.mark.asyncio
    async def test_execute(self, browser, connected):
        browser.on_evaluate(lambda expression, params: 42)
        assert await connected.handle_tool("cdp_execute", {"script": "6 * 7"}) == {
            "success": True,
            "result": 42,
        }

    @pytest.mark.asyncio
    async def test_execute_script_error(self, browser, connected):
        browser.on_evaluate(lambda expression, params: exception_result())

        result = await connected.handle_tool("cdp_execute", {"script": "boom()"})

        assert result["success"] is False
        assert result["error"] == "Uncaught"
        assert result["details"]["line"] == 1
        assert result["details"]["description"] == "Error: boom"

    @pytest.mark.asyncio
    async def test_frames_find_nothing(self, browser, connected):
        browser.on_evaluate(lambda expression, params: False)
        result = await connected.handle_tool("cdp_frames", {"action": "find", "selector": "#x"})
        assert result == {"found": False, "selector": "#x"}

    @pytest.mark.asyncio
    async def test_frames_evaluate_unknown_frame(self, connected):
        result = await connected.handle_tool(
            "cdp_frames", {"action": "evaluate", "frame_id": "F-gone", "script": "1"}
        )
        assert result["success"] is False
        assert result["frame_id"] == "F-gone"

    @pytest.mark.asyncio
    async def test_frames_needs_frame_id(self, connected):
        result = await connected.handle_tool("cdp_frames", {"action": "click", "selector": "#x"})
        assert result == {"error": "frame_id required for click"}
