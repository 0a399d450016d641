"""
Tab session facade.

Connect/switch/disconnect lifecycle for one browser tab plus the composite
operations agents use: verified click and type, uploads, reads, condition
waits, screenshots and Monaco editor helpers.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import math
from contextlib import asynccontextmanager, nullcontext
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional

from cdp_mcp.cdp import scripts
from cdp_mcp.cdp.connection import CDPConnection
from cdp_mcp.cdp.discovery import DiscoveryClient
from cdp_mcp.cdp.errors import (
    CDPError,
    ConnectStepError,
    NotConnectedError,
    RemoteProtocolError,
    ScriptExecutionError,
)
from cdp_mcp.cdp.frames import FrameContextTracker
from cdp_mcp.cdp.protocol import (
    CaptureScreenshot,
    ClearDeviceMetricsOverride,
    DescribeNode,
    DispatchKeyEvent,
    DispatchMouseEvent,
    EnableDomain,
    Evaluate,
    GetBoxModel,
    GetDocument,
    GetLayoutMetrics,
    InsertText,
    LoadEventFired,
    Navigate,
    QuerySelector,
    QuerySelectorAll,
    SetDeviceMetricsOverride,
    SetFileInputFiles,
    evaluation_value,
)
from cdp_mcp.cdp.transport import WebSocketTransport
from cdp_mcp.config import ConnectionOptions, WaitOptions
from cdp_mcp.models import (
    ActionResult,
    BrowserVersion,
    ConnectResult,
    FrameInfo,
    FrameMatch,
    NavigationResult,
    TabInfo,
    WaitResult,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str], CDPConnection]

REQUIRED_DOMAINS = ("Page", "DOM", "Runtime")

# Input.dispatchKeyEvent modifier bits
MODIFIER_ALT = 1
MODIFIER_CTRL = 2
MODIFIER_META = 4
MODIFIER_SHIFT = 8

WAIT_CONDITIONS = (
    "element_visible",
    "element_hidden",
    "element_exists",
    "text_contains",
    "value_equals",
    "navigation",
)

MONACO_ACTIONS = {
    "detect": "detect",
    "get_value": "get_value",
    "getValue": "get_value",
    "set_value": "set_value",
    "setValue": "set_value",
    "clear": "clear",
}


class ConnectionState(str, Enum):
    """Lifecycle of a tab session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def modifier_mask(*, ctrl: bool = False, shift: bool = False, alt: bool = False, meta: bool = False) -> int:
    """Build the modifier bitmask for Input.dispatchKeyEvent."""
    mask = 0
    if alt:
        mask |= MODIFIER_ALT
    if ctrl:
        mask |= MODIFIER_CTRL
    if meta:
        mask |= MODIFIER_META
    if shift:
        mask |= MODIFIER_SHIFT
    return mask


def box_center(model: Optional[dict[str, Any]]) -> Optional[tuple[float, float]]:
    """Center of a DOM.getBoxModel content quad, or None for an empty box."""
    if not model:
        return None
    quad = model.get("content") or []
    if len(quad) < 8:
        return None
    if not model.get("width") or not model.get("height"):
        return None
    return (quad[0] + quad[2]) / 2, (quad[1] + quad[5]) / 2


class TabSession:
    """Session bound to one page tab of a browser.

    Only ``page``-typed tabs are addressable. ``connect`` clamps an
    out-of-range tab index to the last tab; ``switch_tab`` does not.

    Example:
        session = TabSession(ConnectionOptions(port=9222))
        await session.connect(0)
        await session.navigate("https://example.com")
        result = await session.type("#search", "hello")
        await session.disconnect()
    """

    def __init__(
        self,
        options: Optional[ConnectionOptions] = None,
        *,
        wait_options: Optional[WaitOptions] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        discovery: Optional[DiscoveryClient] = None,
    ) -> None:
        """Initialize the session.

        Args:
            options: Endpoint address and timeouts.
            wait_options: Defaults for condition waits and page reads.
            connection_factory: Builds a connection for a WebSocket URL.
            discovery: Client for the HTTP discovery endpoints.
        """
        self._options = options or ConnectionOptions()
        self._wait = wait_options or WaitOptions()
        self._connection_factory = connection_factory or self._default_connection
        self._discovery = discovery or DiscoveryClient(
            self._options.host,
            self._options.port,
            timeout=self._options.discovery_timeout,
        )
        self._state = ConnectionState.DISCONNECTED
        self._connection: Optional[CDPConnection] = None
        self._frames: Optional[FrameContextTracker] = None
        self._tab: Optional[TabInfo] = None
        self._browser: Optional[str] = None

    def _default_connection(self, ws_url: str) -> CDPConnection:
        return CDPConnection(
            ws_url,
            timeout=self._options.command_timeout,
            transport_factory=functools.partial(
                WebSocketTransport, open_timeout=self._options.open_timeout
            ),
        )

    @property
    def host(self) -> str:
        return self._options.host

    @property
    def port(self) -> int:
        return self._options.port

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return (
            self._state == ConnectionState.CONNECTED
            and self._connection is not None
            and self._connection.is_connected
        )

    @property
    def connection(self) -> Optional[CDPConnection]:
        return self._connection

    @property
    def frames(self) -> Optional[FrameContextTracker]:
        return self._frames

    @property
    def tab(self) -> Optional[TabInfo]:
        return self._tab

    @property
    def browser(self) -> Optional[str]:
        return self._browser

    @property
    def discovery(self) -> DiscoveryClient:
        return self._discovery

    # Lifecycle

    async def version(self) -> BrowserVersion:
        return await self._discovery.version()

    async def list_tabs(self) -> list[TabInfo]:
        """List the page tabs, in browser order."""
        return await self._discovery.list_tabs()

    async def connect(self, tab_index: int = 0) -> ConnectResult:
        """Attach to a page tab.

        An index past the end selects the last tab.

        Raises:
            ConnectStepError: Naming the step that failed. The session is
                left disconnected.
        """
        await self.disconnect()
        self._state = ConnectionState.CONNECTING

        try:
            try:
                version = await self._discovery.version()
                tabs = await self._discovery.list_tabs()
            except CDPError as e:
                raise ConnectStepError("discover", str(e)) from e

            if not tabs:
                raise ConnectStepError("select_tab", "No page tabs available")

            index = min(max(tab_index, 0), len(tabs) - 1)
            if index != tab_index:
                logger.info(f"Tab index {tab_index} clamped to {index} ({len(tabs)} tabs)")

            await self._attach(tabs[index])
        except Exception:
            await self._teardown()
            raise

        self._browser = version.browser
        logger.debug(f"Connected to tab {index}: {self._tab.url if self._tab else ''}")
        return ConnectResult(
            connected=True,
            browser=version.browser,
            tabs=len(tabs),
            tab_index=index,
            tab_id=tabs[index].id,
            url=tabs[index].url,
            title=tabs[index].title,
        )

    async def switch_tab(self, index: int) -> bool:
        """Move the session to another tab.

        Returns:
            False when ``index`` is out of range or the tab is not
            debuggable. The current channel is kept in that case.
        """
        tabs = await self.list_tabs()
        if index < 0 or index >= len(tabs):
            return False

        tab = tabs[index]
        if not tab.web_socket_debugger_url:
            return False

        await self._close_connection()
        self._state = ConnectionState.CONNECTING
        try:
            await self._attach(tab)
        except CDPError:
            await self._teardown()
            raise
        return True

    async def disconnect(self) -> None:
        """Close the channel. Pending commands are rejected."""
        await self._teardown()

    async def _attach(self, tab: TabInfo) -> None:
        if not tab.web_socket_debugger_url:
            raise ConnectStepError("select_tab", "Tab does not have WebSocket debugger URL")

        connection = self._connection_factory(tab.web_socket_debugger_url)
        try:
            await connection.connect()
        except CDPError as e:
            raise ConnectStepError("open_channel", str(e)) from e

        self._connection = connection
        connection.add_close_listener(functools.partial(self._on_channel_closed, connection))

        tracker = FrameContextTracker(connection, grace_interval=self._options.context_grace)
        tracker.attach()
        self._frames = tracker

        try:
            for domain in REQUIRED_DOMAINS:
                await connection.execute(EnableDomain(domain))
        except CDPError as e:
            raise ConnectStepError("enable_domains", str(e)) from e

        try:
            await tracker.refresh_frame_tree()
        except CDPError as e:
            raise ConnectStepError("frame_tracking", str(e)) from e

        self._tab = tab
        self._state = ConnectionState.CONNECTED

    async def _close_connection(self) -> None:
        connection = self._connection
        if connection is not None:
            await connection.disconnect()
        self._connection = None
        if self._frames is not None:
            self._frames.detach()
        self._frames = None

    async def _teardown(self) -> None:
        await self._close_connection()
        self._tab = None
        self._state = ConnectionState.DISCONNECTED

    def _on_channel_closed(self, connection: CDPConnection, reason: str) -> None:
        if connection is not self._connection:
            return
        if self._state == ConnectionState.CONNECTED:
            logger.warning(f"CDP channel to {self._tab.url if self._tab else 'tab'} {reason}")
        self._connection = None
        self._frames = None
        self._tab = None
        self._state = ConnectionState.DISCONNECTED

    def _require(self) -> CDPConnection:
        if self._connection is None or not self._connection.is_connected:
            raise NotConnectedError()
        return self._connection

    def _require_frames(self) -> FrameContextTracker:
        self._require()
        if self._frames is None:
            raise NotConnectedError()
        return self._frames

    # Raw access

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        return await self._require().send(method, params, timeout=timeout)

    async def evaluate(self, expression: str) -> Any:
        """Evaluate in the main frame's default context.

        Returns:
            The by-value result; promises are awaited.

        Raises:
            ScriptExecutionError: If the script throws.
        """
        result = await self._require().execute(Evaluate(expression=expression))
        return evaluation_value(result)

    # Navigation

    async def navigate(self, url: str) -> NavigationResult:
        """Navigate and wait for the load event.

        A load event that does not arrive within the navigation timeout is
        not an error; ``loaded`` is False in that case.
        """
        connection = self._require()
        waiter = connection.expect_event(LoadEventFired.METHOD)
        loaded = False
        error = None

        try:
            result = await connection.execute(Navigate(url=url))
            error = result.get("errorText")
            if not error:
                try:
                    await waiter.wait(self._options.navigation_timeout)
                    loaded = True
                except asyncio.TimeoutError:
                    logger.debug(f"No load event for {url} within {self._options.navigation_timeout}s")
        finally:
            waiter.cancel()

        info = await self.evaluate(scripts.PAGE_LOCATION) or {}
        return NavigationResult(
            url=info.get("url", ""),
            title=info.get("title", ""),
            loaded=loaded,
            error=error,
        )

    async def go_back(self) -> ActionResult:
        await self.evaluate(scripts.HISTORY_BACK)
        return ActionResult(success=True, action="back")

    async def go_forward(self) -> ActionResult:
        await self.evaluate(scripts.HISTORY_FORWARD)
        return ActionResult(success=True, action="forward")

    async def reload(self) -> ActionResult:
        await self.evaluate(scripts.RELOAD)
        return ActionResult(success=True, action="refresh")

    # DOM

    async def get_document(self) -> dict[str, Any]:
        result = await self._require().execute(GetDocument())
        return result.get("root") or {}

    async def query_selector(self, selector: str) -> Optional[int]:
        """Resolve a selector to a DOM node id, or None."""
        root = await self.get_document()
        try:
            result = await self._require().execute(
                QuerySelector(node_id=root.get("nodeId", 0), selector=selector)
            )
        except RemoteProtocolError as e:
            logger.debug(f"querySelector({selector!r}) failed: {e}")
            return None
        return result.get("nodeId") or None

    async def query_selector_all(self, selector: str) -> list[int]:
        root = await self.get_document()
        try:
            result = await self._require().execute(
                QuerySelectorAll(node_id=root.get("nodeId", 0), selector=selector)
            )
        except RemoteProtocolError as e:
            logger.debug(f"querySelectorAll({selector!r}) failed: {e}")
            return []
        return list(result.get("nodeIds") or [])

    async def get_box_model(self, node_id: int) -> Optional[dict[str, Any]]:
        try:
            result = await self._require().execute(GetBoxModel(node_id=node_id))
        except RemoteProtocolError as e:
            logger.debug(f"getBoxModel({node_id}) failed: {e}")
            return None
        return result.get("model")

    async def _element_center(self, selector: str) -> tuple[Optional[tuple[float, float]], Optional[str]]:
        node_id = await self.query_selector(selector)
        if not node_id:
            return None, "Element not found"
        center = box_center(await self.get_box_model(node_id))
        if center is None:
            return None, "Element has no visible box"
        return center, None

    # Input

    async def click_at(
        self,
        x: float,
        y: float,
        *,
        button: str = "left",
        click_count: int = 1,
    ) -> ActionResult:
        """Dispatch a mouse press and release at viewport coordinates."""
        connection = self._require()
        for event_type in ("mousePressed", "mouseReleased"):
            await connection.execute(
                DispatchMouseEvent(
                    type=event_type, x=x, y=y, button=button, click_count=click_count
                )
            )
        return ActionResult(success=True, action="click_at", details={"x": x, "y": y})

    async def click(self, selector: str, *, scroll: bool = True) -> ActionResult:
        """Click the center of an element's box.

        A missing element or an empty box is reported with
        ``success=False``.
        """
        if scroll:
            await self.evaluate(scripts.scroll_into_view(selector))

        center, error = await self._element_center(selector)
        if center is None:
            return ActionResult(success=False, action="click", selector=selector, error=error)

        x, y = center
        await self.click_at(x, y)
        return ActionResult(
            success=True, action="click", selector=selector, details={"x": x, "y": y}
        )

    async def double_click(self, selector: str) -> ActionResult:
        await self.evaluate(scripts.scroll_into_view(selector))
        center, error = await self._element_center(selector)
        if center is None:
            return ActionResult(success=False, action="dblclick", selector=selector, error=error)

        x, y = center
        await self.click_at(x, y, click_count=1)
        await self.click_at(x, y, click_count=2)
        return ActionResult(
            success=True, action="dblclick", selector=selector, details={"x": x, "y": y}
        )

    async def press_key(
        self,
        key: str,
        *,
        ctrl: bool = False,
        shift: bool = False,
        alt: bool = False,
    ) -> ActionResult:
        connection = self._require()
        modifiers = modifier_mask(ctrl=ctrl, shift=shift, alt=alt)
        for event_type in ("keyDown", "keyUp"):
            await connection.execute(
                DispatchKeyEvent(type=event_type, key=key, modifiers=modifiers)
            )
        return ActionResult(success=True, action="press", details={"key": key})

    async def insert_text(self, text: str) -> ActionResult:
        """Insert text at the caret as if typed from an IME."""
        await self._require().execute(InsertText(text=text))
        return ActionResult(success=True, action="insert_text")

    async def type_text(self, text: str, delay: float = 0.0) -> ActionResult:
        """Insert text one character at a time, pausing ``delay`` seconds."""
        connection = self._require()
        for char in text:
            await connection.execute(InsertText(text=char))
            if delay > 0:
                await asyncio.sleep(delay)
        return ActionResult(success=True, action="type_text", details={"length": len(text)})

    async def type(
        self,
        selector: str,
        text: str,
        *,
        delay: float = 0.0,
        clear: bool = True,
    ) -> ActionResult:
        """Set an input's value and verify it by reading it back.

        The value is assigned through the native setter so controlled inputs
        see it. With ``delay`` > 0 a keyDown/keyUp pair is also sent per
        character, ``delay`` seconds apart. ``success`` is True only when the
        read-back value equals the intended one.
        """
        expected = text
        if not clear:
            prior = await self.evaluate(scripts.read_value(selector))
            expected = (prior or "") + text

        try:
            result = await self.evaluate(scripts.set_input_value(selector, text, clear=clear))
        except ScriptExecutionError as e:
            result = {"success": False, "error": str(e)}
        if not result or not result.get("success"):
            return ActionResult(
                success=False,
                action="type",
                selector=selector,
                error=(result or {}).get("error", "Element not found"),
                expected=expected,
                verified=False,
            )

        if delay > 0:
            connection = self._require()
            for char in text:
                await connection.execute(DispatchKeyEvent(type="keyDown", key=char))
                await connection.execute(DispatchKeyEvent(type="keyUp", key=char))
                await asyncio.sleep(delay)

        actual = await self.evaluate(scripts.read_value(selector))
        verified = actual == expected
        return ActionResult(
            success=verified,
            action="type",
            selector=selector,
            error=None if verified else "Value mismatch after typing",
            expected=expected,
            actual=actual,
            verified=verified,
        )

    async def _run_action(self, action: str, selector: str, script: str) -> ActionResult:
        try:
            result = await self.evaluate(script) or {}
        except ScriptExecutionError as e:
            result = {"success": False, "error": str(e)}
        success = bool(result.get("success"))
        return ActionResult(
            success=success,
            action=action,
            selector=selector,
            error=None if success else result.get("error", "Action failed"),
        )

    async def clear(self, selector: str) -> ActionResult:
        result = await self._run_action("clear", selector, scripts.clear_value(selector))
        if not result.success:
            return result
        actual = await self.evaluate(scripts.read_value(selector))
        verified = actual == ""
        return ActionResult(
            success=verified,
            action="clear",
            selector=selector,
            error=None if verified else "Value not cleared",
            expected="",
            actual=actual,
            verified=verified,
        )

    async def select_option(self, selector: str, value: str) -> ActionResult:
        result = await self._run_action("select", selector, scripts.select_option(selector, value))
        if not result.success:
            return result
        actual = await self.evaluate(scripts.read_value(selector))
        verified = actual == value
        return ActionResult(
            success=verified,
            action="select",
            selector=selector,
            error=None if verified else "Option not selected",
            expected=value,
            actual=actual,
            verified=verified,
        )

    async def set_checked(self, selector: str, checked: bool) -> ActionResult:
        action = "check" if checked else "uncheck"
        result = await self._run_action(action, selector, scripts.set_checked(selector, checked))
        if not result.success:
            return result
        state = await self.evaluate(scripts.read_checked(selector))
        success = state is checked
        return ActionResult(
            success=success,
            action=action,
            selector=selector,
            error=None if success else "Checked state did not change",
            details={"checked": state},
        )

    async def check(self, selector: str) -> ActionResult:
        return await self.set_checked(selector, True)

    async def uncheck(self, selector: str) -> ActionResult:
        return await self.set_checked(selector, False)

    async def focus(self, selector: str) -> ActionResult:
        return await self._run_action("focus", selector, scripts.focus(selector))

    async def blur(self, selector: str) -> ActionResult:
        return await self._run_action("blur", selector, scripts.blur(selector))

    async def hover(self, selector: str) -> ActionResult:
        return await self._run_action("hover", selector, scripts.hover(selector))

    async def submit(self, selector: str) -> ActionResult:
        return await self._run_action("submit", selector, scripts.submit(selector))

    # Uploads

    async def upload_file(self, selector: str, file_path: str) -> ActionResult:
        """Attach a file to an ``<input type=file>`` and verify it took."""
        node_id = await self.query_selector(selector)
        if not node_id:
            return ActionResult(
                success=False, action="upload", selector=selector, error="Element not found"
            )

        try:
            await self._require().execute(SetFileInputFiles(files=(file_path,), node_id=node_id))
        except RemoteProtocolError as e:
            return ActionResult(success=False, action="upload", selector=selector, error=str(e))

        names = await self.evaluate(scripts.input_file_names(selector)) or []
        success = len(names) > 0
        return ActionResult(
            success=success,
            action="upload",
            selector=selector,
            error=None if success else "No files attached",
            details={"file_path": file_path, "uploaded_files": names},
        )

    async def upload_file_to_shadow_element(self, file_path: str) -> ActionResult:
        """Attach a file to the input the page stored in ``window.__fileInput``.

        Lets callers reach inputs inside closed shadow roots that selectors
        cannot address.
        """
        connection = self._require()

        def failed(error: str) -> ActionResult:
            return ActionResult(success=False, action="upload_shadow", error=error)

        try:
            result = await connection.execute(
                Evaluate(
                    expression=scripts.SHADOW_FILE_INPUT,
                    return_by_value=False,
                    await_promise=False,
                )
            )
            object_id = (result.get("result") or {}).get("objectId")
            if not object_id:
                return failed("window.__fileInput is not set")

            described = await connection.execute(DescribeNode(object_id=object_id))
            backend_node_id = (described.get("node") or {}).get("backendNodeId")
            if not backend_node_id:
                return failed("window.__fileInput is not a DOM node")

            await connection.execute(
                SetFileInputFiles(files=(file_path,), backend_node_id=backend_node_id)
            )
        except RemoteProtocolError as e:
            return failed(str(e))

        return ActionResult(
            success=True, action="upload_shadow", details={"file_path": file_path}
        )

    # Reads

    async def read_page(self) -> dict[str, Any]:
        """URL, title and the first characters of the body text."""
        return await self.evaluate(scripts.page_info(self._wait.page_text_limit)) or {}

    async def read_text(self, selector: str) -> Optional[str]:
        return await self.evaluate(scripts.element_text(selector))

    async def read_attribute(self, selector: str, attribute: str) -> Optional[str]:
        return await self.evaluate(scripts.element_attribute(selector, attribute))

    async def read_value(self, selector: str) -> Optional[str]:
        return await self.evaluate(scripts.read_value(selector))

    # Screenshots

    @asynccontextmanager
    async def _full_page_viewport(self, connection: CDPConnection) -> AsyncIterator[None]:
        metrics = await connection.execute(GetLayoutMetrics())
        size = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
        await connection.execute(
            SetDeviceMetricsOverride(
                width=math.ceil(size.get("width", 0)),
                height=math.ceil(size.get("height", 0)),
            )
        )
        try:
            yield
        finally:
            if connection.is_connected:
                await connection.execute(ClearDeviceMetricsOverride())
            else:
                logger.warning("Channel closed during full-page capture; viewport override not cleared")

    async def screenshot(
        self,
        *,
        format: str = "png",
        quality: Optional[int] = None,
        full_page: bool = False,
    ) -> str:
        """Capture the page as base64 image data.

        With ``full_page`` the viewport is temporarily resized to the content
        size; the override is always cleared, even if capturing fails.
        """
        connection = self._require()
        if format in ("jpeg", "webp"):
            quality = 80 if quality is None else quality
        else:
            quality = None

        scope = self._full_page_viewport(connection) if full_page else nullcontext()
        async with scope:
            result = await connection.execute(CaptureScreenshot(format=format, quality=quality))
        return result.get("data", "")

    # Waiting

    def _condition_script(
        self,
        condition: str,
        selector: Optional[str],
        value: Optional[str],
    ) -> tuple[Optional[str], Optional[str]]:
        if condition in ("element_visible", "element_hidden", "element_exists"):
            if not selector:
                return None, "selector required"
            build = getattr(scripts, condition)
            return build(selector), None
        if condition == "text_contains":
            if not value:
                return None, "value required"
            return scripts.text_contains(value, selector or "body"), None
        if condition == "value_equals":
            if not selector or value is None:
                return None, "selector and value required"
            return scripts.value_equals(selector, value), None
        return None, f"Unknown condition: {condition}"

    async def wait_for(
        self,
        condition: str,
        *,
        selector: Optional[str] = None,
        value: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> WaitResult:
        """Poll a page condition until it holds or ``timeout`` seconds pass.

        Conditions: element_visible, element_hidden, element_exists,
        text_contains, value_equals, navigation.
        """
        connection = self._require()
        timeout = self._wait.timeout if timeout is None else timeout
        poll_interval = self._wait.poll_interval if poll_interval is None else poll_interval

        loop = asyncio.get_running_loop()
        start = loop.time()

        def elapsed_ms() -> int:
            return int((loop.time() - start) * 1000)

        if condition == "navigation":
            waiter = connection.expect_event(LoadEventFired.METHOD)
            try:
                await waiter.wait(min(self._wait.navigation_settle, timeout))
            except asyncio.TimeoutError:
                pass
            return WaitResult(success=True, condition=condition, waited_ms=elapsed_ms())

        script, error = self._condition_script(condition, selector, value)
        if script is None:
            return WaitResult(success=False, condition=condition, waited_ms=0, error=error)

        while True:
            try:
                met = await self.evaluate(script)
            except (ScriptExecutionError, RemoteProtocolError) as e:
                # the page may be between documents
                logger.debug(f"Condition {condition} check failed: {e}")
                met = False

            if met:
                return WaitResult(success=True, condition=condition, waited_ms=elapsed_ms())
            if loop.time() - start >= timeout:
                return WaitResult(
                    success=False,
                    condition=condition,
                    waited_ms=int(timeout * 1000),
                    error="Timeout",
                )
            await asyncio.sleep(poll_interval)

    # Monaco

    async def monaco(
        self,
        action: str,
        value: Optional[str] = None,
        editor_index: int = 0,
    ) -> dict[str, Any]:
        """Run a Monaco editor action: detect, get_value, set_value or clear.

        A page without Monaco, or an index past the last editor, yields a
        result with ``found``/``success`` False and an ``error``.

        Raises:
            ValueError: For an unknown action or set_value without a value.
        """
        normalized = MONACO_ACTIONS.get(action)
        if normalized is None:
            raise ValueError(f"Unknown Monaco action: {action}")

        if normalized == "detect":
            script = scripts.monaco_detect()
        elif normalized == "get_value":
            script = scripts.monaco_get_value(editor_index)
        elif normalized == "set_value":
            if value is None:
                raise ValueError("value parameter required for set_value action")
            script = scripts.monaco_set_value(editor_index, value)
        else:
            script = scripts.monaco_clear(editor_index)

        result = await self.evaluate(script)
        if not isinstance(result, dict):
            return {"found": False, "success": False, "error": "No result from page"}
        return result

    # Frames

    async def list_frames(self) -> list[FrameInfo]:
        return await self._require_frames().list_frames()

    async def find_element_in_frames(self, selector: str) -> Optional[FrameMatch]:
        return await self._require_frames().find_element_in_frames(selector)

    async def evaluate_in_frame(self, frame_id: str, expression: str) -> Any:
        return await self._require_frames().evaluate_in_frame(frame_id, expression)

    async def click_in_frame(self, frame_id: str, selector: str) -> ActionResult:
        success = await self._require_frames().click_in_frame(frame_id, selector)
        return ActionResult(
            success=success,
            action="click_in_frame",
            selector=selector,
            error=None if success else "Element not found in frame",
            details={"frame_id": frame_id},
        )

    async def type_in_frame(self, frame_id: str, selector: str, value: str) -> ActionResult:
        success = await self._require_frames().type_in_frame(frame_id, selector, value)
        return ActionResult(
            success=success,
            action="type_in_frame",
            selector=selector,
            error=None if success else "Element not found in frame",
            details={"frame_id": frame_id},
        )
