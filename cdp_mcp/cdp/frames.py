"""
Frame and execution-context tracking.

Keeps a bidirectional frame id <-> execution context id map current from
Runtime lifecycle events, and builds frame-scoped evaluation and cross-frame
search on top of it. The frame tree itself is always re-fetched from the
browser.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from cdp_mcp.cdp import scripts
from cdp_mcp.cdp.connection import CDPConnection
from cdp_mcp.cdp.errors import (
    NoExecutionContextError,
    RemoteProtocolError,
    ScriptExecutionError,
)
from cdp_mcp.cdp.events import Subscription
from cdp_mcp.cdp.protocol import (
    DisableDomain,
    EnableDomain,
    Evaluate,
    ExecutionContextCreated,
    ExecutionContextDestroyed,
    ExecutionContextsCleared,
    GetFrameTree,
    evaluation_value,
    parse_event,
)
from cdp_mcp.models import FrameInfo, FrameMatch

logger = logging.getLogger(__name__)

# A frame that raises one of these is cross-origin or its context is gone.
# Channel loss and timeouts propagate.
FRAME_UNAVAILABLE = (NoExecutionContextError, RemoteProtocolError, ScriptExecutionError)

DEFAULT_CONTEXT_GRACE = 0.1


class FrameContextMap:
    """Bidirectional frame id <-> execution context id mapping.

    A frame has at most one current context. Both directions are always
    updated together.
    """

    def __init__(self) -> None:
        self._frame_to_context: dict[str, int] = {}
        self._context_to_frame: dict[int, str] = {}

    def bind(self, frame_id: str, context_id: int) -> None:
        previous = self._frame_to_context.get(frame_id)
        if previous is not None:
            self._context_to_frame.pop(previous, None)
        stale_frame = self._context_to_frame.get(context_id)
        if stale_frame is not None:
            self._frame_to_context.pop(stale_frame, None)
        self._frame_to_context[frame_id] = context_id
        self._context_to_frame[context_id] = frame_id

    def unbind_context(self, context_id: int) -> Optional[str]:
        frame_id = self._context_to_frame.pop(context_id, None)
        if frame_id is not None:
            self._frame_to_context.pop(frame_id, None)
        return frame_id

    def lookup(self, frame_id: str) -> Optional[int]:
        return self._frame_to_context.get(frame_id)

    def frame_for(self, context_id: int) -> Optional[str]:
        return self._context_to_frame.get(context_id)

    def clear(self) -> None:
        self._frame_to_context.clear()
        self._context_to_frame.clear()

    def __len__(self) -> int:
        return len(self._frame_to_context)

    def __contains__(self, frame_id: object) -> bool:
        return frame_id in self._frame_to_context


class FrameContextTracker:
    """Tracks execution contexts per frame for one connection.

    Example:
        tracker = FrameContextTracker(connection)
        tracker.attach()
        await tracker.refresh_frame_tree()
        frames = await tracker.list_frames()
        title = await tracker.evaluate_in_frame(frames[1].id, "document.title")
    """

    def __init__(
        self,
        connection: CDPConnection,
        *,
        grace_interval: float = DEFAULT_CONTEXT_GRACE,
    ) -> None:
        self._connection = connection
        self._grace_interval = grace_interval
        self._contexts = FrameContextMap()
        self._main_frame_id: Optional[str] = None
        self._subscriptions: list[Subscription] = []

    @property
    def contexts(self) -> FrameContextMap:
        return self._contexts

    @property
    def main_frame_id(self) -> Optional[str]:
        return self._main_frame_id

    def attach(self) -> None:
        """Subscribe to the Runtime context lifecycle events."""
        if self._subscriptions:
            return
        self._subscriptions = [
            self._connection.on(ExecutionContextCreated.METHOD, self._on_context_created),
            self._connection.on(ExecutionContextDestroyed.METHOD, self._on_context_destroyed),
            self._connection.on(ExecutionContextsCleared.METHOD, self._on_contexts_cleared),
        ]
        self._connection.add_close_listener(self._on_connection_closed)

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.reset()

    def reset(self) -> None:
        self._contexts.clear()
        self._main_frame_id = None

    def _on_context_created(self, params: dict[str, Any]) -> None:
        event = parse_event(ExecutionContextCreated.METHOD, params)
        if not isinstance(event, ExecutionContextCreated):
            return
        if event.frame_id is None or event.context_id is None or not event.is_default:
            return
        self._contexts.bind(event.frame_id, event.context_id)
        logger.debug(f"Context {event.context_id} bound to frame {event.frame_id}")

    def _on_context_destroyed(self, params: dict[str, Any]) -> None:
        event = parse_event(ExecutionContextDestroyed.METHOD, params)
        if isinstance(event, ExecutionContextDestroyed):
            self._contexts.unbind_context(event.context_id)

    def _on_contexts_cleared(self, params: dict[str, Any]) -> None:
        self._contexts.clear()

    def _on_connection_closed(self, reason: str) -> None:
        self._subscriptions = []
        self.reset()

    async def refresh_frame_tree(self) -> None:
        """Record the main frame and have the browser replay live contexts.

        Re-arming the Runtime domain makes the browser emit
        executionContextCreated for every existing context.
        """
        result = await self._connection.execute(GetFrameTree())
        self._main_frame_id = result.get("frameTree", {}).get("frame", {}).get("id")

        self._contexts.clear()
        await self._connection.execute(DisableDomain("Runtime"))
        await self._connection.execute(EnableDomain("Runtime"))

    async def list_frames(self) -> list[FrameInfo]:
        """Fetch and flatten the frame tree depth-first.

        Only the root is tagged as the main frame.
        """
        result = await self._connection.execute(GetFrameTree())
        tree = result.get("frameTree", {})
        frames: list[FrameInfo] = []

        def walk(node: dict[str, Any], parent_id: Optional[str]) -> None:
            frame = node.get("frame", {})
            frames.append(
                FrameInfo(
                    id=frame.get("id", ""),
                    url=frame.get("url", ""),
                    name=frame.get("name") or "",
                    is_main=parent_id is None,
                    parent_id=parent_id,
                )
            )
            for child in node.get("childFrames") or []:
                walk(child, frame.get("id", ""))

        if tree:
            walk(tree, None)
            self._main_frame_id = frames[0].id
        return frames

    async def context_for_frame(self, frame_id: str) -> int:
        """Resolve a frame's execution context, refreshing once if unknown.

        Raises:
            NoExecutionContextError: If the context is still unknown.
        """
        context_id = self._contexts.lookup(frame_id)
        if context_id is not None:
            return context_id

        await self.refresh_frame_tree()
        await asyncio.sleep(self._grace_interval)

        context_id = self._contexts.lookup(frame_id)
        if context_id is None:
            raise NoExecutionContextError(frame_id)
        return context_id

    async def evaluate_in_frame(self, frame_id: str, expression: str) -> Any:
        """Evaluate an expression inside a frame's default context.

        Raises:
            NoExecutionContextError: If the frame has no known context.
            ScriptExecutionError: If the script throws in the page.
        """
        context_id = await self.context_for_frame(frame_id)
        return await self.evaluate_in_context(context_id, expression)

    async def evaluate_in_context(self, context_id: int, expression: str) -> Any:
        result = await self._connection.execute(
            Evaluate(expression=expression, context_id=context_id)
        )
        return evaluation_value(result)

    async def find_element_in_frames(self, selector: str) -> Optional[FrameMatch]:
        """Return the first frame, depth-first, containing ``selector``.

        Frames that cannot be evaluated (cross-origin, destroyed context) are
        skipped.
        """
        expression = f"!!document.querySelector({json.dumps(selector)})"

        for frame in await self.list_frames():
            try:
                found = await self.evaluate_in_frame(frame.id, expression)
            except FRAME_UNAVAILABLE as e:
                logger.debug(f"Skipping frame {frame.id} in search for {selector!r}: {e}")
                continue
            if found:
                return FrameMatch(frame_id=frame.id, url=frame.url)

        return None

    async def click_in_frame(self, frame_id: str, selector: str) -> bool:
        try:
            result = await self.evaluate_in_frame(frame_id, scripts.click_element(selector))
        except FRAME_UNAVAILABLE as e:
            logger.debug(f"Click in frame {frame_id} failed: {e}")
            return False
        return bool(result and result.get("success"))

    async def type_in_frame(self, frame_id: str, selector: str, value: str) -> bool:
        try:
            result = await self.evaluate_in_frame(
                frame_id, scripts.set_input_value(selector, value, clear=True)
            )
        except FRAME_UNAVAILABLE as e:
            logger.debug(f"Type in frame {frame_id} failed: {e}")
            return False
        return bool(result and result.get("success"))
