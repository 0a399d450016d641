"""
Typed shapes for the handful of CDP messages the bridge issues and listens to.

Anything else travels as an opaque method string with a params dict
(``CDPConnection.send``) or as an ``UnknownEvent``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Optional, Union

from cdp_mcp.cdp.errors import ScriptExecutionError

# Wire frames


@dataclass(frozen=True)
class Response:
    """A command response frame: ``{id, result}`` or ``{id, error}``."""

    id: int
    result: dict[str, Any] = field(default_factory=dict)
    error: Optional[dict[str, Any]] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class EventFrame:
    """An unsolicited event frame: ``{method, params}`` with no id."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None


Frame = Union[Response, EventFrame]


def classify_frame(data: Any) -> Optional[Frame]:
    """Classify a decoded frame as a response or an event.

    Returns None for frames carrying neither ``id`` nor ``method``.
    """
    if not isinstance(data, dict):
        return None

    if "id" in data:
        return Response(
            id=data["id"],
            result=data.get("result") or {},
            error=data.get("error"),
        )

    if "method" in data:
        return EventFrame(
            method=data["method"],
            params=data.get("params") or {},
            session_id=data.get("sessionId"),
        )

    return None


# Events


@dataclass(frozen=True)
class ExecutionContextCreated:
    METHOD: ClassVar[str] = "Runtime.executionContextCreated"

    context_id: int
    frame_id: Optional[str] = None
    is_default: bool = True
    origin: str = ""
    name: str = ""


@dataclass(frozen=True)
class ExecutionContextDestroyed:
    METHOD: ClassVar[str] = "Runtime.executionContextDestroyed"

    context_id: int


@dataclass(frozen=True)
class ExecutionContextsCleared:
    METHOD: ClassVar[str] = "Runtime.executionContextsCleared"


@dataclass(frozen=True)
class LoadEventFired:
    METHOD: ClassVar[str] = "Page.loadEventFired"

    timestamp: Optional[float] = None


@dataclass(frozen=True)
class UnknownEvent:
    """Passthrough for events the bridge does not model."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)


ProtocolEvent = Union[
    ExecutionContextCreated,
    ExecutionContextDestroyed,
    ExecutionContextsCleared,
    LoadEventFired,
    UnknownEvent,
]


def parse_event(method: str, params: dict[str, Any]) -> ProtocolEvent:
    """Turn an event method and its params into a typed variant."""
    if method == ExecutionContextCreated.METHOD:
        context = params.get("context", {})
        aux = context.get("auxData") or {}
        return ExecutionContextCreated(
            context_id=context.get("id"),
            frame_id=aux.get("frameId"),
            is_default=aux.get("isDefault", True),
            origin=context.get("origin", ""),
            name=context.get("name", ""),
        )
    if method == ExecutionContextDestroyed.METHOD:
        return ExecutionContextDestroyed(context_id=params.get("executionContextId"))
    if method == ExecutionContextsCleared.METHOD:
        return ExecutionContextsCleared()
    if method == LoadEventFired.METHOD:
        return LoadEventFired(timestamp=params.get("timestamp"))
    return UnknownEvent(method=method, params=params)


# Commands

_CAMEL_RE = re.compile(r"_([a-z])")


def _camel(name: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


@dataclass(frozen=True)
class Command:
    """Base for typed commands.

    Field names map to camelCase wire names. Fields set to None are omitted.
    """

    METHOD: ClassVar[str] = ""

    @property
    def method(self) -> str:
        return self.METHOD

    def params(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[_camel(f.name)] = value
        return out


@dataclass(frozen=True)
class EnableDomain(Command):
    domain: str = "Page"

    @property
    def method(self) -> str:
        return f"{self.domain}.enable"

    def params(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class DisableDomain(EnableDomain):
    @property
    def method(self) -> str:
        return f"{self.domain}.disable"


@dataclass(frozen=True)
class Evaluate(Command):
    METHOD: ClassVar[str] = "Runtime.evaluate"

    expression: str = ""
    context_id: Optional[int] = None
    return_by_value: bool = True
    await_promise: bool = True


@dataclass(frozen=True)
class GetFrameTree(Command):
    METHOD: ClassVar[str] = "Page.getFrameTree"


@dataclass(frozen=True)
class Navigate(Command):
    METHOD: ClassVar[str] = "Page.navigate"

    url: str = ""


@dataclass(frozen=True)
class GetLayoutMetrics(Command):
    METHOD: ClassVar[str] = "Page.getLayoutMetrics"


@dataclass(frozen=True)
class CaptureScreenshot(Command):
    METHOD: ClassVar[str] = "Page.captureScreenshot"

    format: str = "png"
    quality: Optional[int] = None


@dataclass(frozen=True)
class SetDeviceMetricsOverride(Command):
    METHOD: ClassVar[str] = "Emulation.setDeviceMetricsOverride"

    width: int = 0
    height: int = 0
    device_scale_factor: float = 1
    mobile: bool = False


@dataclass(frozen=True)
class ClearDeviceMetricsOverride(Command):
    METHOD: ClassVar[str] = "Emulation.clearDeviceMetricsOverride"


@dataclass(frozen=True)
class GetDocument(Command):
    METHOD: ClassVar[str] = "DOM.getDocument"

    depth: int = -1
    pierce: bool = True


@dataclass(frozen=True)
class QuerySelector(Command):
    METHOD: ClassVar[str] = "DOM.querySelector"

    node_id: int = 0
    selector: str = ""


@dataclass(frozen=True)
class QuerySelectorAll(QuerySelector):
    METHOD: ClassVar[str] = "DOM.querySelectorAll"


@dataclass(frozen=True)
class GetBoxModel(Command):
    METHOD: ClassVar[str] = "DOM.getBoxModel"

    node_id: int = 0


@dataclass(frozen=True)
class DescribeNode(Command):
    METHOD: ClassVar[str] = "DOM.describeNode"

    object_id: str = ""


@dataclass(frozen=True)
class SetFileInputFiles(Command):
    METHOD: ClassVar[str] = "DOM.setFileInputFiles"

    files: tuple[str, ...] = ()
    node_id: Optional[int] = None
    backend_node_id: Optional[int] = None

    def params(self) -> dict[str, Any]:
        out = super().params()
        out["files"] = list(self.files)
        return out


@dataclass(frozen=True)
class DispatchMouseEvent(Command):
    METHOD: ClassVar[str] = "Input.dispatchMouseEvent"

    type: str = "mousePressed"
    x: float = 0
    y: float = 0
    button: str = "left"
    click_count: int = 1


@dataclass(frozen=True)
class DispatchKeyEvent(Command):
    METHOD: ClassVar[str] = "Input.dispatchKeyEvent"

    type: str = "keyDown"
    key: str = ""
    modifiers: Optional[int] = None


@dataclass(frozen=True)
class InsertText(Command):
    METHOD: ClassVar[str] = "Input.insertText"

    text: str = ""


def evaluation_value(result: dict[str, Any]) -> Any:
    """Extract the by-value result of Runtime.evaluate.

    Raises:
        ScriptExecutionError: If the page raised while evaluating.
    """
    details = result.get("exceptionDetails")
    if details:
        raise ScriptExecutionError.from_exception_details(details)
    return (result.get("result") or {}).get("value")
