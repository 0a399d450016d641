"""
MCP Server implementation for cdp-mcp.

Provides a Model Context Protocol server over stdio that exposes one
Chromium-family browser tab to AI agents: launch or attach, navigate,
interact with verification, read, wait, run scripts and work inside frames.
"""

import asyncio
import base64
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import ImageContent, TextContent, Tool

from cdp_mcp.cdp.errors import (
    ConnectStepError,
    NoExecutionContextError,
    NotConnectedError,
    ScriptExecutionError,
)
from cdp_mcp.cdp.launcher import BrowserLauncher
from cdp_mcp.cdp.manager import NOT_CONNECTED_MESSAGE, ConnectionManager
from cdp_mcp.cdp.session import TabSession
from cdp_mcp.config import BridgeConfig, LaunchOptions, load_config
from cdp_mcp.mcp.tools import ALL_TOOLS, TOOLS
from cdp_mcp.models import ConnectResult

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

SessionFactory = Callable[[str, int], TabSession]

LAUNCH_ARGS = ("port", "headless", "browser", "profile", "width", "height", "start_url")


def configure_logging(level: str = "WARNING") -> None:
    """Send package logs to stderr; stdout carries the protocol."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger("cdp_mcp")
    package_logger.handlers = [handler]
    package_logger.setLevel(level)
    package_logger.propagate = False


def _ms(value: Optional[float]) -> Optional[float]:
    return None if value is None else value / 1000


class CDPMCPServer:
    """MCP Server for CDP browser automation.

    Owns a ConnectionManager holding the current tab session and a
    BrowserLauncher for browsers it starts itself. Tool calls are routed to
    ``_tool_<name>`` methods.

    Example:
        >>> server = CDPMCPServer()
        >>> await server.start()
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        manager: Optional[ConnectionManager] = None,
        launcher: Optional[BrowserLauncher] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        """Initialize the MCP server.

        Args:
            config: Loaded configuration; defaults when omitted.
            manager: Holder of the current session.
            launcher: Starts and stops browser processes.
            session_factory: Builds a TabSession for ``(host, port)``.
        """
        self.config = config or BridgeConfig()
        self.name = self.config.server.name
        self.server = Server(self.name)
        self.manager = manager or ConnectionManager()
        self.launcher = launcher or BrowserLauncher()
        self._session_factory = session_factory or self._default_session
        self._setup_tools()

    def _setup_tools(self) -> None:
        """Register tool handlers with the server."""
        self.server.list_tools()(self._list_tools)
        self.server.call_tool()(self._call_tool)

    def _default_session(self, host: str, port: int) -> TabSession:
        options = self.config.connection.model_copy(update={"host": host, "port": port})
        return TabSession(options, wait_options=self.config.wait)

    async def _list_tools(self) -> list[Tool]:
        return list(TOOLS)

    async def _call_tool(
        self, name: str, arguments: Optional[dict[str, Any]]
    ) -> list[TextContent | ImageContent]:
        """Handle tool calls.

        Unexpected exceptions are logged and re-raised; the SDK reports them
        to the client as an error result.
        """
        arguments = arguments or {}
        try:
            result = await self.handle_tool(name, arguments)
        except Exception:
            logger.exception(f"Tool {name} failed")
            raise

        if isinstance(result, bytes):
            return [
                ImageContent(
                    type="image",
                    data=base64.b64encode(result).decode(),
                    mimeType=f"image/{arguments.get('format', 'png')}",
                )
            ]
        if isinstance(result, (dict, list)):
            return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
        return [TextContent(type="text", text=str(result))]

    async def handle_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Run one tool and return its raw result.

        Expected failures come back as ``{"error": ...}`` dicts.
        """
        handler = getattr(self, f"_tool_{name}", None)
        if name not in ALL_TOOLS or handler is None:
            return {"error": f"Unknown tool: {name}"}

        try:
            return await handler(arguments)
        except NotConnectedError:
            return {"error": NOT_CONNECTED_MESSAGE}
        except ValueError as e:
            return {"error": str(e)}

    def _session(self) -> TabSession:
        session = self.manager.require()
        if not session.is_connected:
            raise NotConnectedError(NOT_CONNECTED_MESSAGE)
        return session

    async def _connect(self, host: str, port: int, tab: int = 0) -> ConnectResult:
        session = self._session_factory(host, port)
        await self.manager.replace(session)
        try:
            return await session.connect(tab)
        except ConnectStepError as e:
            logger.warning(f"Connect to {host}:{port} failed at {e.step}: {e}")
            await self.manager.close()
            return ConnectResult(connected=False, error=str(e), step=e.step)

    # Lifecycle

    async def _tool_cdp_launch(self, args: dict) -> dict:
        """Launch a browser, then connect to its first tab."""
        update = {key: args[key] for key in LAUNCH_ARGS if args.get(key) is not None}
        options = LaunchOptions(**{**self.config.launch.model_dump(), **update})

        if self.launcher.is_running:
            await self.manager.close()
            await self.launcher.close()

        result = await self.launcher.launch(options)
        data = result.model_dump(exclude_none=True)
        if not result.launched:
            return data

        connected = await self._connect("localhost", options.port)
        data["connected"] = connected.connected
        if connected.connected:
            data["tab"] = {"url": connected.url, "title": connected.title}
        else:
            data["connect_error"] = connected.error
        return data

    async def _tool_cdp_connect(self, args: dict) -> dict:
        host = args.get("host") or self.config.connection.host
        port = args.get("port") or self.config.connection.port
        tab = args.get("tab")
        if tab is None:
            tab = self.config.connection.tab_index
        result = await self._connect(host, port, tab)
        return result.model_dump(exclude_none=True)

    async def _tool_cdp_list_tabs(self, args: dict) -> dict:
        session = self._session()
        tabs = await session.list_tabs()
        current = session.tab.id if session.tab else None
        return {
            "tabs": [
                {
                    "index": index,
                    "id": tab.id,
                    "title": tab.title,
                    "url": tab.url,
                    "active": tab.id == current,
                }
                for index, tab in enumerate(tabs)
            ]
        }

    async def _tool_cdp_switch_tab(self, args: dict) -> dict:
        session = self._session()
        index = args["tab"]
        if not await session.switch_tab(index):
            return {"success": False, "error": f"Tab index {index} is not available"}
        tab = session.tab
        return {
            "success": True,
            "tab": index,
            "url": tab.url if tab else "",
            "title": tab.title if tab else "",
        }

    async def _tool_cdp_close(self, args: dict) -> dict:
        closed = await self.manager.close()
        browser_closed = False
        if args.get("close_browser"):
            browser_closed = await self.launcher.close()
        return {"disconnected": closed, "browser_closed": browser_closed}

    # Navigation

    async def _tool_cdp_navigate(self, args: dict) -> dict:
        session = self._session()
        action = args.get("action")
        if action == "back":
            return (await session.go_back()).to_dict()
        if action == "forward":
            return (await session.go_forward()).to_dict()
        if action == "refresh":
            return (await session.reload()).to_dict()
        if action:
            raise ValueError(f"Unknown navigation action: {action}")

        url = args.get("url")
        if not url:
            raise ValueError("url or action required")
        result = await session.navigate(url)
        return result.model_dump(exclude_none=True)

    # Interaction

    async def _tool_cdp_interact(self, args: dict) -> dict:
        session = self._session()
        action = args["action"]
        selector = args.get("selector")
        value = args.get("value")
        delay = _ms(args.get("delay")) or 0.0

        def need(name: str, given: Any) -> Any:
            if given is None or given == "":
                raise ValueError(f"{name} required for {action}")
            return given

        if action == "click":
            result = await session.click(need("selector", selector))
        elif action == "dblclick":
            result = await session.double_click(need("selector", selector))
        elif action == "type":
            result = await session.type(need("selector", selector), value or "", delay=delay)
        elif action == "clear":
            result = await session.clear(need("selector", selector))
        elif action == "select":
            result = await session.select_option(need("selector", selector), need("value", value))
        elif action == "check":
            result = await session.check(need("selector", selector))
        elif action == "uncheck":
            result = await session.uncheck(need("selector", selector))
        elif action == "upload":
            path = self._existing_file(need("file_path", args.get("file_path")))
            result = await session.upload_file(need("selector", selector), path)
        elif action == "upload_shadow":
            path = self._existing_file(need("file_path", args.get("file_path")))
            result = await session.upload_file_to_shadow_element(path)
        elif action == "focus":
            result = await session.focus(need("selector", selector))
        elif action == "blur":
            result = await session.blur(need("selector", selector))
        elif action == "hover":
            result = await session.hover(need("selector", selector))
        elif action == "submit":
            result = await session.submit(need("selector", selector))
        elif action == "press":
            result = await session.press_key(
                need("key", args.get("key")),
                ctrl=bool(args.get("ctrl")),
                shift=bool(args.get("shift")),
                alt=bool(args.get("alt")),
            )
        elif action == "insert_text":
            result = await session.insert_text(need("value", value))
        elif action == "type_text":
            result = await session.type_text(need("value", value), delay)
        elif action == "click_at":
            result = await session.click_at(
                need("x", args.get("x")),
                need("y", args.get("y")),
                button=args.get("button") or "left",
                click_count=args.get("click_count") or 1,
            )
        else:
            raise ValueError(f"Unknown action: {action}")

        return result.to_dict()

    @staticmethod
    def _existing_file(file_path: str) -> str:
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ValueError(f"File not found: {file_path}")
        return str(path.resolve())

    # Reading

    async def _tool_cdp_read(self, args: dict) -> dict:
        session = self._session()
        target = args.get("target") or "page"
        selector = args.get("selector")

        if target == "page":
            return await session.read_page()
        if not selector:
            raise ValueError(f"selector required for {target}")

        if target == "element":
            text = await session.read_text(selector)
            if text is None:
                return {"selector": selector, "error": "Element not found"}
            return {"selector": selector, "text": text}
        if target == "attribute":
            attribute = args.get("attribute")
            if not attribute:
                raise ValueError("attribute required for attribute")
            return {
                "selector": selector,
                "attribute": attribute,
                "value": await session.read_attribute(selector, attribute),
            }
        if target == "value":
            return {"selector": selector, "value": await session.read_value(selector)}
        raise ValueError(f"Unknown read target: {target}")

    async def _tool_cdp_screenshot(self, args: dict) -> Any:
        """Capture a screenshot, returned as an image or saved to ``path``."""
        session = self._session()
        fmt = args.get("format") or "png"
        data = await session.screenshot(
            format=fmt,
            quality=args.get("quality"),
            full_page=bool(args.get("full_page")),
        )
        image = base64.b64decode(data)

        path = args.get("path")
        if not path:
            return image

        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(image)
        return {"saved": str(target), "format": fmt, "bytes": len(image)}

    # Waiting

    async def _tool_cdp_wait(self, args: dict) -> dict:
        session = self._session()
        result = await session.wait_for(
            args["condition"],
            selector=args.get("selector"),
            value=args.get("value"),
            timeout=_ms(args.get("timeout")),
        )
        return result.model_dump(exclude_none=True)

    # Scripting

    async def _tool_cdp_execute(self, args: dict) -> dict:
        session = self._session()
        try:
            value = await session.evaluate(args["script"])
        except ScriptExecutionError as e:
            return {"success": False, "error": e.text, "details": e.to_dict()}
        return {"success": True, "result": value}

    async def _tool_cdp_frames(self, args: dict) -> dict:
        session = self._session()
        action = args["action"]
        frame_id = args.get("frame_id")
        selector = args.get("selector")

        if action == "list":
            frames = await session.list_frames()
            return {"frames": [frame.model_dump() for frame in frames]}

        if action == "find":
            if not selector:
                raise ValueError("selector required for find")
            match = await session.find_element_in_frames(selector)
            if match is None:
                return {"found": False, "selector": selector}
            return match.model_dump()

        if not frame_id:
            raise ValueError(f"frame_id required for {action}")

        try:
            if action == "click":
                if not selector:
                    raise ValueError("selector required for click")
                return (await session.click_in_frame(frame_id, selector)).to_dict()
            if action == "type":
                if not selector:
                    raise ValueError("selector required for type")
                value = args.get("value") or ""
                return (await session.type_in_frame(frame_id, selector, value)).to_dict()
            if action == "evaluate":
                script = args.get("script")
                if not script:
                    raise ValueError("script required for evaluate")
                result = await session.evaluate_in_frame(frame_id, script)
                return {"success": True, "frame_id": frame_id, "result": result}
        except NoExecutionContextError as e:
            return {"success": False, "frame_id": frame_id, "error": str(e)}
        except ScriptExecutionError as e:
            return {
                "success": False,
                "frame_id": frame_id,
                "error": e.text,
                "details": e.to_dict(),
            }

        raise ValueError(f"Unknown frame action: {action}")

    async def _tool_cdp_monaco(self, args: dict) -> dict:
        session = self._session()
        return await session.monaco(
            args["action"],
            args.get("value"),
            args.get("editor_index") or 0,
        )

    async def start(self) -> None:
        """Start the MCP server on stdio."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

    async def shutdown(self) -> None:
        """Disconnect the current session. A launched browser keeps running."""
        await self.manager.close()


async def main(config: Optional[BridgeConfig] = None) -> None:
    """Run the MCP server."""
    config = config or load_config()
    configure_logging(config.server.log_level)
    server = CDPMCPServer(config)
    logger.info(f"Starting {server.name} MCP server")
    try:
        await server.start()
    finally:
        await server.shutdown()


def run() -> None:
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
