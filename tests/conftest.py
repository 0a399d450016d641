"""
Shared fixtures: an in-memory transport answered by a scripted browser, and
httpx mock transports for the discovery endpoints.
"""

from typing import Any, Callable, Optional

import httpx
import pytest
import pytest_asyncio

from cdp_mcp.cdp.connection import CDPConnection
from cdp_mcp.cdp.discovery import DiscoveryClient
from cdp_mcp.cdp.errors import CDPConnectionError, NotConnectedError
from cdp_mcp.cdp.protocol import EventFrame, Response
from cdp_mcp.cdp.session import TabSession
from cdp_mcp.config import ConnectionOptions, WaitOptions

NO_REPLY = object()

MAIN_FRAME = "F-main"

VERSION = {
    "Browser": "Chrome/120.0.6099.109",
    "Protocol-Version": "1.3",
    "User-Agent": "Mozilla/5.0",
}

TABS = [
    {
        "id": f"T{index}",
        "type": "page",
        "title": f"Tab {index}",
        "url": f"https://example.com/{index}",
        "webSocketDebuggerUrl": f"ws://localhost:9222/devtools/page/T{index}",
    }
    for index in range(3)
]

SERVICE_WORKER = {
    "id": "SW",
    "type": "service_worker",
    "title": "sw",
    "url": "https://example.com/sw.js",
    "webSocketDebuggerUrl": "ws://localhost:9222/devtools/page/SW",
}


class ProtocolFault:
    """Scripted ``{id, error}`` reply."""

    def __init__(self, code: int = -32000, message: str = "Protocol error") -> None:
        self.code = code
        self.message = message


def value_result(value: Any) -> dict[str, Any]:
    return {"result": {"type": type(value).__name__, "value": value}}


def exception_result(text: str = "Uncaught", description: str = "Error: boom") -> dict[str, Any]:
    return {
        "result": {"type": "object", "subtype": "error"},
        "exceptionDetails": {
            "text": text,
            "lineNumber": 0,
            "columnNumber": 4,
            "exception": {"className": "Error", "description": description},
        },
    }


def context_created(context_id: int, frame_id: str, is_default: bool = True) -> dict[str, Any]:
    return {
        "context": {
            "id": context_id,
            "origin": "https://example.com",
            "name": "",
            "auxData": {"frameId": frame_id, "isDefault": is_default},
        }
    }


class FakeTransport:
    """In-memory stand-in for WebSocketTransport."""

    def __init__(
        self,
        on_response: Callable[[Response], None],
        on_event: Callable[[EventFrame], None],
        on_close: Optional[Callable[[str], None]] = None,
        *,
        responder: Optional[Callable[["FakeTransport", dict[str, Any]], None]] = None,
        fail_connect: bool = False,
    ) -> None:
        self.on_response = on_response
        self.on_event = on_event
        self.on_close = on_close
        self.responder = responder
        self.fail_connect = fail_connect
        self.sent: list[dict[str, Any]] = []
        self.ws_url: Optional[str] = None
        self._open = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def connect(self, ws_url: str) -> None:
        if self.fail_connect:
            raise CDPConnectionError(f"Could not open CDP channel {ws_url}: refused")
        self.ws_url = ws_url
        self._open = True

    async def send(self, message: dict[str, Any]) -> None:
        if not self._open:
            raise NotConnectedError()
        self.sent.append(message)
        if self.responder is not None:
            self.responder(self, message)

    def respond(self, message_id: int, result: Optional[dict] = None, error: Optional[dict] = None) -> None:
        self.on_response(Response(id=message_id, result=result or {}, error=error))

    def emit(self, method: str, params: Optional[dict] = None) -> None:
        self.on_event(EventFrame(method=method, params=params or {}))

    def drop(self, reason: str = "closed by peer") -> None:
        self._open = False
        if not self._closed:
            self._closed = True
            if self.on_close is not None:
                self.on_close(reason)

    async def close(self) -> None:
        self.drop("closed locally")


class ScriptedBrowser:
    """Answers commands from a method -> reply table.

    A reply is a result dict, a ProtocolFault, NO_REPLY, or a callable taking
    the params and returning one of those.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.transports: list[FakeTransport] = []
        self.fail_connect = False
        self.install_page()

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]

    def transport_factory(self, on_response, on_event, on_close=None) -> FakeTransport:
        transport = FakeTransport(
            on_response,
            on_event,
            on_close,
            responder=self._reply,
            fail_connect=self.fail_connect,
        )
        self.transports.append(transport)
        return transport

    def on(self, method: str, reply: Any) -> None:
        self.handlers[method] = reply

    def on_evaluate(self, script: Callable[[str, dict[str, Any]], Any]) -> None:
        """Answer Runtime.evaluate with ``value_result(script(expression, params))``."""

        def reply(params: dict[str, Any]) -> Any:
            value = script(params.get("expression", ""), params)
            if isinstance(value, dict) and "exceptionDetails" in value:
                return value
            return value_result(value)

        self.on("Runtime.evaluate", reply)

    def emit(self, method: str, params: Optional[dict] = None) -> None:
        self.transport.emit(method, params)

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == method]

    def install_page(self, frame_tree: Optional[dict[str, Any]] = None, contexts: Optional[dict[str, int]] = None) -> None:
        """Default handlers for a page whose contexts replay on Runtime.enable."""
        tree = frame_tree or {"frame": {"id": MAIN_FRAME, "url": "https://example.com/"}}
        live = contexts if contexts is not None else {MAIN_FRAME: 1}

        def runtime_enable(params: dict[str, Any]) -> dict[str, Any]:
            for frame_id, context_id in live.items():
                self.emit("Runtime.executionContextCreated", context_created(context_id, frame_id))
            return {}

        self.handlers.update(
            {
                "Page.enable": {},
                "DOM.enable": {},
                "Runtime.enable": runtime_enable,
                "Runtime.disable": {},
                "Page.getFrameTree": {"frameTree": tree},
            }
        )

    def _reply(self, transport: FakeTransport, message: dict[str, Any]) -> None:
        method = message["method"]
        params = message.get("params") or {}
        self.calls.append((method, params))

        reply = self.handlers.get(method, {})
        if callable(reply):
            reply = reply(params)
        if reply is NO_REPLY:
            return
        if isinstance(reply, ProtocolFault):
            transport.respond(message["id"], error={"code": reply.code, "message": reply.message})
            return
        transport.respond(message["id"], result=reply)


def discovery_transport(
    tabs: Optional[list[dict[str, Any]]] = None,
    version: Optional[dict[str, Any]] = None,
) -> httpx.MockTransport:
    tabs = TABS if tabs is None else tabs
    version = version or VERSION

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/json/version":
            return httpx.Response(200, json=version)
        if request.url.path == "/json":
            return httpx.Response(200, json=tabs)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def unreachable_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def browser() -> ScriptedBrowser:
    return ScriptedBrowser()


@pytest.fixture
def make_connection(browser):
    def factory(ws_url: str = "ws://localhost:9222/devtools/page/T0", timeout: float = 1.0) -> CDPConnection:
        return CDPConnection(ws_url, timeout=timeout, transport_factory=browser.transport_factory)

    return factory


@pytest.fixture
def make_session(browser):
    def factory(
        tabs: Optional[list[dict[str, Any]]] = None,
        discovery: Optional[DiscoveryClient] = None,
        **options: Any,
    ) -> TabSession:
        settings = {
            "command_timeout": 1.0,
            "context_grace": 0.0,
            "navigation_timeout": 0.2,
            **options,
        }
        return TabSession(
            ConnectionOptions(**settings),
            wait_options=WaitOptions(timeout=0.3, poll_interval=0.01, navigation_settle=0.05),
            connection_factory=lambda url: CDPConnection(
                url, timeout=settings["command_timeout"], transport_factory=browser.transport_factory
            ),
            discovery=discovery or DiscoveryClient("localhost", 9222, transport=discovery_transport(tabs)),
        )

    return factory


@pytest_asyncio.fixture
async def session(make_session):
    session = make_session()
    await session.connect(0)
    yield session
    await session.disconnect()
