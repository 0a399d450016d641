"""
Default configuration values for cdp-mcp.

This module contains all default values used throughout the configuration system.
"""

from typing import Any

# Connection defaults
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9222
DEFAULT_TAB_INDEX = 0
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_OPEN_TIMEOUT = 10.0
DEFAULT_DISCOVERY_TIMEOUT = 5.0
DEFAULT_NAVIGATION_TIMEOUT = 10.0
DEFAULT_CONTEXT_GRACE = 0.1

# Launch defaults
DEFAULT_BROWSER = "auto"
DEFAULT_HEADLESS = False
DEFAULT_PROFILE = "cdp-mcp-default"
DEFAULT_WINDOW_WIDTH = 1280
DEFAULT_WINDOW_HEIGHT = 900
DEFAULT_START_URL = "about:blank"
DEFAULT_READY_TIMEOUT = 10.0
DEFAULT_READY_INTERVAL = 0.2
DEFAULT_HOME_DIR = "~/.cdp-mcp"

# Wait defaults
DEFAULT_WAIT_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.2
DEFAULT_NAVIGATION_SETTLE = 1.0

# Read defaults
DEFAULT_PAGE_TEXT_LIMIT = 10000

# Server defaults
DEFAULT_SERVER_NAME = "cdp-mcp"
DEFAULT_LOG_LEVEL = "WARNING"

# Flags passed to every launched browser
DEFAULT_CHROMIUM_FLAGS: list[str] = [
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-background-networking",
    "--disable-client-side-phishing-detection",
    "--disable-default-apps",
    "--disable-hang-monitor",
    "--disable-popup-blocking",
    "--disable-prompt-on-repost",
    "--disable-sync",
    "--disable-translate",
    "--metrics-recording-only",
    "--safebrowsing-disable-auto-update",
    "--password-store=basic",
]

HEADLESS_CHROMIUM_FLAGS: list[str] = [
    "--headless=new",
    "--disable-gpu",
    "--hide-scrollbars",
    "--mute-audio",
]

# File config defaults
DEFAULT_CONFIG_FILENAME = "cdp-mcp.config"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".yaml", ".yml", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [
    ".",
    "~/.config/cdp-mcp",
    "~",
]

# Environment variable prefix
ENV_PREFIX = "CDP_MCP_"


def get_default_connection_config() -> dict[str, Any]:
    """Get default connection configuration as a dictionary."""
    return {
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
        "tab_index": DEFAULT_TAB_INDEX,
        "command_timeout": DEFAULT_COMMAND_TIMEOUT,
        "open_timeout": DEFAULT_OPEN_TIMEOUT,
        "discovery_timeout": DEFAULT_DISCOVERY_TIMEOUT,
        "navigation_timeout": DEFAULT_NAVIGATION_TIMEOUT,
        "context_grace": DEFAULT_CONTEXT_GRACE,
    }


def get_default_launch_config() -> dict[str, Any]:
    """Get default launch configuration as a dictionary."""
    return {
        "browser": DEFAULT_BROWSER,
        "headless": DEFAULT_HEADLESS,
        "profile": DEFAULT_PROFILE,
        "width": DEFAULT_WINDOW_WIDTH,
        "height": DEFAULT_WINDOW_HEIGHT,
        "start_url": DEFAULT_START_URL,
        "ready_timeout": DEFAULT_READY_TIMEOUT,
        "ready_interval": DEFAULT_READY_INTERVAL,
        "args": [],
    }
