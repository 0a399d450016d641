"""
cdp-mcp: browser automation for AI agents over the Chrome DevTools Protocol.

Exposes a running Chromium-family browser to an agent through an MCP stdio
server. Agent intents (click this, read that, wait until) become CDP calls
over a WebSocket, and raw responses come back as verified, structured
results.

Basic usage:
    from cdp_mcp import TabSession, ConnectionOptions

    session = TabSession(ConnectionOptions(port=9222))
    await session.connect()
    result = await session.type("input[name=q]", "hello")
    assert result.verified

Running the server:
    cdp-mcp
    python -m cdp_mcp.mcp
"""

__version__ = "0.1.0"
__license__ = "MIT"

from cdp_mcp.cdp import (
    CDPConnection,
    CDPConnectionError,
    CDPError,
    ConnectionManager,
    NotConnectedError,
    ScriptExecutionError,
    TabSession,
)
from cdp_mcp.config import BridgeConfig, ConnectionOptions, LaunchOptions, load_config
from cdp_mcp.models import (
    ActionResult,
    ConnectResult,
    FrameInfo,
    LaunchResult,
    NavigationResult,
    TabInfo,
    WaitResult,
)

__all__ = [
    "__version__",
    # Core
    "TabSession",
    "CDPConnection",
    "ConnectionManager",
    # Errors
    "CDPError",
    "CDPConnectionError",
    "NotConnectedError",
    "ScriptExecutionError",
    # Config
    "BridgeConfig",
    "ConnectionOptions",
    "LaunchOptions",
    "load_config",
    # Models
    "ActionResult",
    "ConnectResult",
    "FrameInfo",
    "LaunchResult",
    "NavigationResult",
    "TabInfo",
    "WaitResult",
]
