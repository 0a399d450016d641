"""
Configuration options classes for cdp-mcp.

This module provides strongly-typed option classes for the CDP connection,
browser launching, condition waits and the MCP server.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .defaults import (
    DEFAULT_BROWSER,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONTEXT_GRACE,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_HEADLESS,
    DEFAULT_HOME_DIR,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NAVIGATION_SETTLE,
    DEFAULT_NAVIGATION_TIMEOUT,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_PAGE_TEXT_LIMIT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_PROFILE,
    DEFAULT_READY_INTERVAL,
    DEFAULT_READY_TIMEOUT,
    DEFAULT_SERVER_NAME,
    DEFAULT_START_URL,
    DEFAULT_TAB_INDEX,
    DEFAULT_WAIT_TIMEOUT,
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
)


class ConnectionOptions(BaseModel):
    """Options for the CDP connection to a tab.

    Timeouts are in seconds.
    """

    host: str = Field(DEFAULT_HOST, description="Debugging endpoint host")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535, description="Debugging endpoint port")
    tab_index: int = Field(DEFAULT_TAB_INDEX, ge=0, description="Tab to attach to")
    command_timeout: float = Field(
        DEFAULT_COMMAND_TIMEOUT, gt=0, description="Per-command response timeout"
    )
    open_timeout: float = Field(
        DEFAULT_OPEN_TIMEOUT, gt=0, description="WebSocket opening handshake timeout"
    )
    discovery_timeout: float = Field(
        DEFAULT_DISCOVERY_TIMEOUT, gt=0, description="HTTP discovery request timeout"
    )
    navigation_timeout: float = Field(
        DEFAULT_NAVIGATION_TIMEOUT, ge=0, description="Max wait for the load event"
    )
    context_grace: float = Field(
        DEFAULT_CONTEXT_GRACE, ge=0, description="Wait after a frame tree refresh"
    )


class LaunchOptions(BaseModel):
    """Browser launch options."""

    browser: str = Field(
        DEFAULT_BROWSER, description="Preferred browser: chrome, chromium, edge, brave, auto"
    )
    headless: bool = Field(DEFAULT_HEADLESS, description="Run without a visible window")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535, description="Remote debugging port")
    profile: str = Field(DEFAULT_PROFILE, min_length=1, description="Profile name")
    width: int = Field(DEFAULT_WINDOW_WIDTH, ge=100, description="Window width")
    height: int = Field(DEFAULT_WINDOW_HEIGHT, ge=100, description="Window height")
    start_url: str = Field(DEFAULT_START_URL, description="URL opened on launch")
    executable_path: Optional[str] = Field(
        None, description="Browser executable, skips discovery"
    )
    home_dir: str = Field(DEFAULT_HOME_DIR, description="Directory holding profiles")
    ready_timeout: float = Field(
        DEFAULT_READY_TIMEOUT, gt=0, description="Max wait for the endpoint to answer"
    )
    ready_interval: float = Field(
        DEFAULT_READY_INTERVAL, gt=0, description="Endpoint poll interval"
    )
    args: list[str] = Field(default_factory=list, description="Extra browser flags")

    @field_validator("browser")
    @classmethod
    def normalize_browser(cls, v: str) -> str:
        return v.strip().lower() or DEFAULT_BROWSER

    @property
    def preferred_browser(self) -> Optional[str]:
        """Preferred browser name, or None for auto-detection."""
        return None if self.browser == "auto" else self.browser


class WaitOptions(BaseModel):
    """Condition wait options. Times are in seconds."""

    timeout: float = Field(DEFAULT_WAIT_TIMEOUT, ge=0, description="Total wait budget")
    poll_interval: float = Field(
        DEFAULT_POLL_INTERVAL, gt=0, description="Delay between condition checks"
    )
    navigation_settle: float = Field(
        DEFAULT_NAVIGATION_SETTLE, ge=0, description="Pause for the navigation condition"
    )
    page_text_limit: int = Field(
        DEFAULT_PAGE_TEXT_LIMIT, ge=0, description="Max characters of page text read"
    )


class ServerOptions(BaseModel):
    """MCP server options."""

    name: str = Field(DEFAULT_SERVER_NAME, description="Server name announced to clients")
    log_level: str = Field(DEFAULT_LOG_LEVEL, description="stderr logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class BridgeConfig(BaseModel):
    """Main configuration class combining all options."""

    connection: ConnectionOptions = Field(
        default_factory=ConnectionOptions, description="Connection options"
    )
    launch: LaunchOptions = Field(
        default_factory=LaunchOptions, description="Launch options"
    )
    wait: WaitOptions = Field(default_factory=WaitOptions, description="Wait options")
    server: ServerOptions = Field(
        default_factory=ServerOptions, description="Server options"
    )
    profile: Optional[str] = Field(None, description="Configuration profile name")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BridgeConfig":
        """Create configuration from dictionary."""
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(exclude_none=True)
