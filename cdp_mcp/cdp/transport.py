"""
WebSocket transport for a single CDP target.

Owns exactly one duplex channel. Every inbound frame is decoded and routed to
exactly one callback: responses (frames with ``id``) or events (frames with
``method``). Frames with neither are dropped.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from cdp_mcp.cdp.errors import CDPConnectionError, NotConnectedError
from cdp_mcp.cdp.protocol import EventFrame, Response, classify_frame

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[Response], None]
EventCallback = Callable[[EventFrame], None]
CloseCallback = Callable[[str], None]

MAX_MESSAGE_SIZE = 100 * 1024 * 1024  # screenshots of long pages get large


class TransportState(str, Enum):
    """Lifecycle of a transport channel."""

    IDLE = "idle"
    OPEN = "open"
    CLOSED = "closed"


class WebSocketTransport:
    """Duplex JSON message channel to a browser debugging endpoint.

    Example:
        transport = WebSocketTransport(on_response, on_event, on_close)
        await transport.connect("ws://localhost:9222/devtools/page/ABC")
        await transport.send({"id": 1, "method": "Page.enable", "params": {}})
        await transport.close()
    """

    def __init__(
        self,
        on_response: ResponseCallback,
        on_event: EventCallback,
        on_close: Optional[CloseCallback] = None,
        *,
        open_timeout: float = 10.0,
        max_size: int = MAX_MESSAGE_SIZE,
    ) -> None:
        self._on_response = on_response
        self._on_event = on_event
        self._on_close = on_close
        self._open_timeout = open_timeout
        self._max_size = max_size
        self._ws: Any = None
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._state = TransportState.IDLE
        self._ws_url: Optional[str] = None

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == TransportState.OPEN and self._ws is not None

    @property
    def ws_url(self) -> Optional[str]:
        return self._ws_url

    async def connect(self, ws_url: str) -> None:
        """Open the channel.

        Raises:
            CDPConnectionError: If the endpoint refuses or errors before opening.
        """
        if self._state != TransportState.IDLE:
            raise CDPConnectionError(
                f"Transport is {self._state.value} and cannot be reopened"
            )

        logger.debug(f"Connecting to CDP: {ws_url}")
        try:
            self._ws = await websockets.connect(
                ws_url,
                max_size=self._max_size,
                open_timeout=self._open_timeout,
                ping_interval=None,
            )
        except (OSError, InvalidURI, InvalidHandshake, asyncio.TimeoutError) as e:
            self._state = TransportState.CLOSED
            raise CDPConnectionError(f"Could not open CDP channel {ws_url}: {e}") from e

        self._ws_url = ws_url
        self._state = TransportState.OPEN
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.debug("CDP channel open")

    async def send(self, message: dict[str, Any]) -> None:
        """Serialize and hand a message to the channel.

        Raises:
            NotConnectedError: If the channel is not open.
            CDPConnectionError: If the channel drops while sending.
        """
        if not self.is_open:
            raise NotConnectedError()

        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed as e:
            self._mark_closed(f"closed during send: {e}")
            raise CDPConnectionError(f"CDP channel closed: {e}") from e

    def dispatch(self, raw: Any) -> None:
        """Decode one inbound frame and route it."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Invalid JSON from CDP: {str(raw)[:100]}")
            return

        frame = classify_frame(data)
        if isinstance(frame, Response):
            self._on_response(frame)
        elif isinstance(frame, EventFrame):
            self._on_event(frame)
        else:
            logger.warning(f"Dropping CDP frame with neither id nor method: {str(raw)[:100]}")

    async def close(self) -> None:
        """Close the channel locally."""
        if self._state == TransportState.CLOSED and self._ws is None:
            return

        task = self._receive_task
        self._receive_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        ws = self._ws
        self._ws = None
        if ws is not None:
            try:
                await ws.close()
            except (OSError, ConnectionClosed) as e:
                logger.debug(f"Ignoring error while closing CDP channel: {e}")

        self._mark_closed("closed locally")

    async def _receive_loop(self) -> None:
        reason = "closed by peer"
        try:
            async for raw in self._ws:
                try:
                    self.dispatch(raw)
                except Exception as e:
                    logger.exception(f"Error handling CDP message: {e}")
        except ConnectionClosed as e:
            reason = f"closed by peer: {e}"
        except asyncio.CancelledError:
            reason = "closed locally"
            raise
        finally:
            self._mark_closed(reason)

    def _mark_closed(self, reason: str) -> None:
        if self._state == TransportState.CLOSED:
            return
        self._state = TransportState.CLOSED
        logger.debug(f"CDP channel {reason}")
        if self._on_close is not None:
            try:
                self._on_close(reason)
            except Exception as e:
                logger.exception(f"Error in CDP close callback: {e}")
