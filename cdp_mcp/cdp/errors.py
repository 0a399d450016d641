"""
Error taxonomy for the CDP bridge.

Connection-level errors always propagate to the caller. Script and frame
errors carry enough structure for an agent to adjust and retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

MAX_STACK_FRAMES = 3


class CDPError(Exception):
    """Base class for all bridge errors."""


class CDPConnectionError(CDPError, ConnectionError):
    """The channel could not be opened or was lost."""


class ConnectStepError(CDPConnectionError):
    """A step of the connect sequence failed.

    Attributes:
        step: Name of the failing step (discover, select_tab, open_channel,
            enable_domains, frame_tracking).
    """

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")


class NotConnectedError(CDPError):
    """A command was attempted with no open channel."""

    def __init__(self, message: str = "Not connected to CDP") -> None:
        super().__init__(message)


class CommandTimeoutError(CDPError, TimeoutError):
    """No response arrived for a command within the timeout window.

    The remote effect of the command is unknown.
    """

    def __init__(self, method: str, message_id: int, timeout: float) -> None:
        self.method = method
        self.message_id = message_id
        self.timeout = timeout
        super().__init__(
            f"CDP command {method} (id={message_id}) timed out after {timeout}s"
        )


class RemoteProtocolError(CDPError):
    """The browser answered a command with an explicit error."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"CDP Error {code}: {message}")


@dataclass(frozen=True)
class StackFrame:
    """One call frame of a page-side exception (1-based positions)."""

    function_name: str
    url: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"at {self.function_name} ({self.url}:{self.line}:{self.column})"


class ScriptExecutionError(CDPError):
    """A script evaluated in the page raised an exception."""

    def __init__(
        self,
        text: str,
        *,
        description: Optional[str] = None,
        class_name: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        stack: Optional[list[StackFrame]] = None,
    ) -> None:
        self.text = text
        self.description = description
        self.class_name = class_name
        self.line = line
        self.column = column
        self.stack = stack or []
        super().__init__(self._format())

    @classmethod
    def from_exception_details(cls, details: dict[str, Any]) -> "ScriptExecutionError":
        """Build from a Runtime.evaluate ``exceptionDetails`` payload."""
        exception = details.get("exception") or {}

        line = details.get("lineNumber")
        column = details.get("columnNumber")

        call_frames = (details.get("stackTrace") or {}).get("callFrames") or []
        stack = [
            StackFrame(
                function_name=frame.get("functionName") or "(anonymous)",
                url=frame.get("url", ""),
                line=frame.get("lineNumber", 0) + 1,
                column=frame.get("columnNumber", 0) + 1,
            )
            for frame in call_frames[:MAX_STACK_FRAMES]
        ]

        return cls(
            details.get("text") or "Evaluation error",
            description=exception.get("description"),
            class_name=exception.get("className"),
            line=line + 1 if line is not None else None,
            column=column + 1 if column is not None else None,
            stack=stack,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "description": self.description,
            "type": self.class_name,
            "line": self.line,
            "column": self.column,
            "stack": [str(frame) for frame in self.stack],
        }

    def _format(self) -> str:
        parts = [self.text]
        if self.description:
            parts.append(f"Description: {self.description}")
        if self.class_name:
            parts.append(f"Type: {self.class_name}")
        if self.line is not None:
            parts.append(f"Line: {self.line}")
        if self.column is not None:
            parts.append(f"Column: {self.column}")
        if self.stack:
            lines = "\n".join(f"  {frame}" for frame in self.stack)
            parts.append(f"Stack:\n{lines}")
        return "\n".join(parts)


class NoExecutionContextError(CDPError):
    """No execution context is known for a frame.

    Callers usually treat the frame as inaccessible (e.g. cross-origin).
    """

    def __init__(self, frame_id: str) -> None:
        self.frame_id = frame_id
        super().__init__(f"No execution context for frame: {frame_id}")
