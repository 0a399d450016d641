"""
MCP (Model Context Protocol) server for cdp-mcp.

Exposes one browser tab to AI agents over stdio.

Usage:
    # Run as standalone server
    cdp-mcp
    python -m cdp_mcp.mcp

    # Or embed it
    from cdp_mcp.mcp import CDPMCPServer
    server = CDPMCPServer()
    await server.start()

Tools Available:
    - Lifecycle: cdp_launch, cdp_connect, cdp_list_tabs, cdp_switch_tab, cdp_close
    - Page: cdp_navigate, cdp_interact, cdp_read, cdp_screenshot, cdp_wait
    - Scripts: cdp_execute, cdp_frames, cdp_monaco

Example MCP Configuration:
    ```json
    {
        "mcpServers": {
            "cdp": {
                "command": "python",
                "args": ["-m", "cdp_mcp.mcp"]
            }
        }
    }
    ```
"""

from cdp_mcp.mcp.server import CDPMCPServer, configure_logging, main, run
from cdp_mcp.mcp.tools import (
    ALL_TOOL_GROUPS,
    ALL_TOOLS,
    TOOLS,
    LifecycleTools,
    PageTools,
    ScriptTools,
)

__all__ = [
    "CDPMCPServer",
    "configure_logging",
    "main",
    "run",
    "LifecycleTools",
    "PageTools",
    "ScriptTools",
    "TOOLS",
    "ALL_TOOLS",
    "ALL_TOOL_GROUPS",
]
