"""
Tests for cdp_mcp.cdp.transport and frame classification.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cdp_mcp.cdp.errors import CDPConnectionError, NotConnectedError
from cdp_mcp.cdp.protocol import (
    EnableDomain,
    DisableDomain,
    EventFrame,
    Evaluate,
    ExecutionContextCreated,
    Response,
    SetFileInputFiles,
    UnknownEvent,
    classify_frame,
    parse_event,
)
from cdp_mcp.cdp.transport import TransportState, WebSocketTransport


class TestClassifyFrame:
    """Tests for inbound frame classification."""

    def test_response(self):
        frame = classify_frame({"id": 3, "result": {"a": 1}})
        assert frame == Response(id=3, result={"a": 1})

    def test_error_response(self):
        frame = classify_frame({"id": 4, "error": {"code": -32000, "message": "nope"}})
        assert isinstance(frame, Response)
        assert frame.is_error

    def test_event(self):
        frame = classify_frame({"method": "Page.loadEventFired", "params": {"timestamp": 1}})
        assert frame == EventFrame(method="Page.loadEventFired", params={"timestamp": 1})

    def test_neither(self):
        assert classify_frame({"params": {}}) is None
        assert classify_frame([1, 2]) is None


class TestProtocolShapes:
    """Tests for typed commands and events."""

    def test_command_params_are_camel_case_without_none(self):
        command = Evaluate(expression="1+1")
        assert command.method == "Runtime.evaluate"
        assert command.params() == {
            "expression": "1+1",
            "returnByValue": True,
            "awaitPromise": True,
        }

    def test_domain_commands(self):
        assert EnableDomain("DOM").method == "DOM.enable"
        assert DisableDomain("Runtime").method == "Runtime.disable"
        assert EnableDomain("DOM").params() == {}

    def test_file_input_params(self):
        params = SetFileInputFiles(files=("/tmp/a.txt",), backend_node_id=7).params()
        assert params == {"files": ["/tmp/a.txt"], "backendNodeId": 7}

    def test_parse_context_created(self):
        event = parse_event(
            "Runtime.executionContextCreated",
            {"context": {"id": 5, "auxData": {"frameId": "F1", "isDefault": False}}},
        )
        assert isinstance(event, ExecutionContextCreated)
        assert event.context_id == 5
        assert event.frame_id == "F1"
        assert event.is_default is False

    def test_parse_unknown_event(self):
        event = parse_event("Network.requestWillBeSent", {"requestId": "1"})
        assert event == UnknownEvent(method="Network.requestWillBeSent", params={"requestId": "1"})


class TestWebSocketTransport:
    """Tests for WebSocketTransport routing and lifecycle."""

    @pytest.fixture
    def callbacks(self):
        return MagicMock(), MagicMock(), MagicMock()

    @pytest.fixture
    def transport(self, callbacks):
        on_response, on_event, on_close = callbacks
        return WebSocketTransport(on_response, on_event, on_close)

    def test_dispatch_routes_each_frame_exactly_once(self, transport, callbacks):
        on_response, on_event, _ = callbacks

        transport.dispatch(json.dumps({"id": 1, "result": {}}))
        transport.dispatch(json.dumps({"method": "Page.frameNavigated", "params": {}}))
        transport.dispatch(json.dumps({"unrelated": True}))
        transport.dispatch("not json {")

        on_response.assert_called_once_with(Response(id=1, result={}))
        on_event.assert_called_once_with(EventFrame(method="Page.frameNavigated", params={}))

    @pytest.mark.asyncio
    async def test_send_before_open_raises(self, transport):
        with pytest.raises(NotConnectedError):
            await transport.send({"id": 1, "method": "Page.enable"})

    @pytest.mark.asyncio
    async def test_connect_failure(self, transport):
        with patch(
            "cdp_mcp.cdp.transport.websockets.connect",
            new=AsyncMock(side_effect=OSError("refused")),
        ):
            with pytest.raises(CDPConnectionError):
                await transport.connect("ws://localhost:1/devtools/page/X")
        assert transport.state == TransportState.CLOSED

    @pytest.mark.asyncio
    async def test_send_and_close(self, transport, callbacks):
        _, _, on_close = callbacks
        ws = MagicMock()
        ws.send = AsyncMock()
        ws.close = AsyncMock()
        ws.__aiter__.return_value = []

        with patch("cdp_mcp.cdp.transport.websockets.connect", new=AsyncMock(return_value=ws)):
            await transport.connect("ws://localhost:9222/devtools/page/A")

        assert transport.ws_url == "ws://localhost:9222/devtools/page/A"
        await transport.send({"id": 1, "method": "Page.enable", "params": {}})
        ws.send.assert_awaited_once_with(json.dumps({"id": 1, "method": "Page.enable", "params": {}}))

        await transport.close()
        assert transport.state == TransportState.CLOSED
        assert not transport.is_open
        on_close.assert_called_once()

    @pytest.mark.asyncio
    async def test_cannot_reopen(self, transport):
        with patch(
            "cdp_mcp.cdp.transport.websockets.connect",
            new=AsyncMock(side_effect=OSError("refused")),
        ):
            with pytest.raises(CDPConnectionError):
                await transport.connect("ws://localhost:1/x")
        with pytest.raises(CDPConnectionError):
            await transport.connect("ws://localhost:1/x")
