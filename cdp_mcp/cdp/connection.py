"""
CDP command dispatcher.

Adds request/response semantics on top of the transport's fire-and-forget
send: monotonically increasing ids, an id-keyed table of pending commands,
out-of-order resolution and a per-command timeout backstop.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from cdp_mcp.cdp.errors import (
    CDPConnectionError,
    CommandTimeoutError,
    NotConnectedError,
    RemoteProtocolError,
)
from cdp_mcp.cdp.events import EventBus, EventHandler, EventPredicate, EventWaiter, Subscription
from cdp_mcp.cdp.protocol import Command, EventFrame, Response
from cdp_mcp.cdp.transport import WebSocketTransport

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 30.0

TransportFactory = Callable[..., Any]


@dataclass
class PendingCommand:
    """A command awaiting its response."""

    id: int
    method: str
    future: asyncio.Future[dict[str, Any]]
    created_at: float = field(default_factory=time.monotonic)


class CDPConnection:
    """Request/response and event plumbing for one CDP target.

    Example:
        connection = CDPConnection("ws://localhost:9222/devtools/page/ABC")
        await connection.connect()
        result = await connection.send("Runtime.evaluate", {"expression": "1 + 1"})
        await connection.disconnect()
    """

    def __init__(
        self,
        ws_url: str,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        """Initialize the connection.

        Args:
            ws_url: WebSocket debugger URL of the target.
            timeout: Default per-command timeout in seconds.
            transport_factory: Builds the transport from
                ``(on_response, on_event, on_close)``. Defaults to
                ``WebSocketTransport``.
        """
        self._ws_url = ws_url
        self._timeout = timeout
        self._ids = itertools.count(1)
        self._pending: dict[int, PendingCommand] = {}
        self._events = EventBus()
        self._close_listeners: list[Callable[[str], None]] = []

        factory = transport_factory or WebSocketTransport
        self._transport = factory(self._handle_response, self._handle_event, self._handle_close)

    @property
    def ws_url(self) -> str:
        return self._ws_url

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def is_connected(self) -> bool:
        return self._transport.is_open

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def has_pending(self, message_id: int) -> bool:
        return message_id in self._pending

    async def connect(self) -> None:
        """Open the channel to the target.

        Raises:
            CDPConnectionError: If the channel cannot be opened.
        """
        await self._transport.connect(self._ws_url)

    async def disconnect(self) -> None:
        """Close the channel, rejecting every pending command."""
        await self._transport.close()

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Send a command and wait for its response.

        Args:
            method: CDP method name (e.g. "Page.navigate").
            params: Method parameters.
            timeout: Override of the default timeout in seconds.

        Returns:
            The ``result`` object of the response.

        Raises:
            NotConnectedError: If the channel is not open. Nothing is registered.
            RemoteProtocolError: If the browser answered with an error.
            CommandTimeoutError: If no response arrived in time.
            CDPConnectionError: If the channel dropped while waiting.
        """
        if not self.is_connected:
            raise NotConnectedError()

        message_id = next(self._ids)
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[message_id] = PendingCommand(id=message_id, method=method, future=future)

        message = {"id": message_id, "method": method, "params": params or {}}
        wait = timeout if timeout is not None else self._timeout

        try:
            await self._transport.send(message)
            logger.debug(f"CDP send: {method} (id={message_id})")
            return await asyncio.wait_for(future, timeout=wait)
        except asyncio.TimeoutError:
            raise CommandTimeoutError(method, message_id, wait) from None
        finally:
            self._pending.pop(message_id, None)

    async def execute(self, command: Command, *, timeout: Optional[float] = None) -> dict[str, Any]:
        """Send a typed command."""
        return await self.send(command.method, command.params(), timeout=timeout)

    def on(self, event: str, handler: EventHandler) -> Subscription:
        """Register an event handler."""
        return self._events.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> Subscription:
        return self._events.once(event, handler)

    def expect_event(
        self,
        event: str,
        *,
        predicate: Optional[EventPredicate] = None,
    ) -> EventWaiter:
        """Subscribe to the next occurrence of an event before triggering it."""
        return self._events.expect(event, predicate=predicate)

    async def wait_for_event(
        self,
        event: str,
        *,
        timeout: Optional[float] = None,
        predicate: Optional[EventPredicate] = None,
    ) -> dict[str, Any]:
        return await self._events.wait_for(event, timeout=timeout, predicate=predicate)

    def add_close_listener(self, listener: Callable[[str], None]) -> None:
        """Call ``listener(reason)`` once the channel closes."""
        self._close_listeners.append(listener)

    def _handle_response(self, response: Response) -> None:
        pending = self._pending.pop(response.id, None)
        if pending is None:
            logger.debug(f"Ignoring response for unknown or expired id={response.id}")
            return
        if pending.future.done():
            return

        if response.error is not None:
            error = response.error
            pending.future.set_exception(
                RemoteProtocolError(
                    error.get("code", -1),
                    error.get("message", "Unknown error"),
                    error.get("data"),
                )
            )
        else:
            pending.future.set_result(response.result)

    def _handle_event(self, frame: EventFrame) -> None:
        self._events.emit(frame.method, frame.params)

    def _handle_close(self, reason: str) -> None:
        pending = list(self._pending.values())
        self._pending.clear()
        for command in pending:
            if not command.future.done():
                command.future.set_exception(
                    CDPConnectionError(
                        f"CDP disconnected before {command.method} (id={command.id}) completed"
                    )
                )
        if pending:
            logger.warning(f"CDP channel {reason}; rejected {len(pending)} pending command(s)")

        listeners = list(self._close_listeners)
        self._close_listeners.clear()
        for listener in listeners:
            try:
                listener(reason)
            except Exception as e:
                logger.exception(f"Error in CDP close listener: {e}")

        self._events.clear()

    async def __aenter__(self) -> "CDPConnection":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()
