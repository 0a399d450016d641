"""
Chrome DevTools Protocol core for cdp-mcp.

This module provides the session/transport core:
- WebSocketTransport: one duplex channel to a tab's debugging endpoint
- CDPConnection: command ids, pending responses, timeouts, events
- EventBus: ordered fan-out of protocol events
- FrameContextTracker: frame id <-> execution context id tracking
- TabSession: connect/switch lifecycle and composite actions
- ConnectionManager: the single active session slot
- BrowserLauncher: finds and starts a debuggable browser

Example usage:
    ```python
    from cdp_mcp.cdp import TabSession
    from cdp_mcp.config import ConnectionOptions

    session = TabSession(ConnectionOptions(port=9222))
    await session.connect(0)
    await session.navigate("https://example.com")

    frames = await session.list_frames()
    match = await session.find_element_in_frames("#login")
    if match:
        await session.click_in_frame(match.frame_id, "#login")

    await session.disconnect()
    ```
"""

from cdp_mcp.cdp.connection import CDPConnection, PendingCommand
from cdp_mcp.cdp.discovery import DiscoveryClient
from cdp_mcp.cdp.errors import (
    CDPConnectionError,
    CDPError,
    CommandTimeoutError,
    ConnectStepError,
    NoExecutionContextError,
    NotConnectedError,
    RemoteProtocolError,
    ScriptExecutionError,
)
from cdp_mcp.cdp.events import EventBus, EventWaiter, Subscription
from cdp_mcp.cdp.frames import FrameContextMap, FrameContextTracker
from cdp_mcp.cdp.launcher import BrowserInfo, BrowserLauncher, find_browser
from cdp_mcp.cdp.manager import ConnectionManager
from cdp_mcp.cdp.session import ConnectionState, TabSession
from cdp_mcp.cdp.transport import TransportState, WebSocketTransport

__all__ = [
    # Errors
    "CDPError",
    "CDPConnectionError",
    "ConnectStepError",
    "NotConnectedError",
    "CommandTimeoutError",
    "RemoteProtocolError",
    "ScriptExecutionError",
    "NoExecutionContextError",
    # Transport and dispatch
    "WebSocketTransport",
    "TransportState",
    "CDPConnection",
    "PendingCommand",
    # Events
    "EventBus",
    "EventWaiter",
    "Subscription",
    # Frames
    "FrameContextMap",
    "FrameContextTracker",
    # Session
    "TabSession",
    "ConnectionState",
    "ConnectionManager",
    "DiscoveryClient",
    # Launcher
    "BrowserInfo",
    "BrowserLauncher",
    "find_browser",
]
