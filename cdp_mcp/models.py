"""
Data models for cdp-mcp.

Records read from the browser (tabs, frames, version) and the structured
results returned by composite operations. Results are plain pydantic models
so the request shell can serialize them directly.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BrowserVersion(BaseModel):
    """Payload of the ``/json/version`` endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    browser: str = Field(default="unknown", alias="Browser")
    protocol_version: Optional[str] = Field(default=None, alias="Protocol-Version")
    user_agent: Optional[str] = Field(default=None, alias="User-Agent")
    web_socket_debugger_url: Optional[str] = Field(default=None, alias="webSocketDebuggerUrl")


class TabInfo(BaseModel):
    """One entry of the ``/json`` tab list. Owned by the browser."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    url: str = ""
    type: str = "page"
    web_socket_debugger_url: Optional[str] = Field(default=None, alias="webSocketDebuggerUrl")

    @property
    def is_page(self) -> bool:
        return self.type == "page"


class FrameInfo(BaseModel):
    """A flattened node of the page's frame tree."""

    id: str
    url: str = ""
    name: str = ""
    is_main: bool = False
    parent_id: Optional[str] = None


class FrameMatch(BaseModel):
    """Result of a cross-frame element search."""

    frame_id: str
    url: str = ""
    found: bool = True


class ConnectResult(BaseModel):
    """Outcome of connecting to a tab."""

    connected: bool
    browser: Optional[str] = None
    tabs: Optional[int] = None
    tab_index: Optional[int] = None
    tab_id: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    error: Optional[str] = None
    step: Optional[str] = None


class NavigationResult(BaseModel):
    url: str = ""
    title: str = ""
    loaded: bool = True
    error: Optional[str] = None


class ActionResult(BaseModel):
    """Result of an interactive action.

    ``success`` is False for expected failures (missing element, failed
    verification); callers branch on it instead of catching exceptions.
    """

    success: bool
    action: str
    selector: Optional[str] = None
    error: Optional[str] = None
    expected: Optional[Any] = None
    actual: Optional[Any] = None
    verified: Optional[bool] = None
    details: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True, exclude={"details"})
        data.update(self.details)
        return data


class WaitResult(BaseModel):
    success: bool
    condition: str
    waited_ms: int
    error: Optional[str] = None


class LaunchResult(BaseModel):
    """Outcome of launching a browser process."""

    launched: bool
    browser: Optional[str] = None
    version: Optional[str] = None
    port: Optional[int] = None
    pid: Optional[int] = None
    profile: Optional[str] = None
    profile_path: Optional[str] = None
    flags: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None
    suggestion: Optional[str] = None
    searched: list[str] = Field(default_factory=list)
