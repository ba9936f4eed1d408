"""Pydantic models for the capture layer.

Covers the injected script, the session lifecycle states, and the closed set
of browser events the event bridge understands.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    """Lifecycle of a browser session."""
    UNNAVIGATED = "unnavigated"
    READY = "ready"
    CLOSED = "closed"


class InjectedScript(BaseModel):
    """JavaScript evaluated once after navigation and the rendering delay."""

    source: str = Field(description="Raw script text")

    @property
    def is_async(self) -> bool:
        """Whether the script needs an async wrapper.

        Plain substring test: case-sensitive, no word boundary, so a comment or
        string literal mentioning await also counts.
        """
        return "await" in self.source

    @property
    def expression(self) -> str:
        """Expression sent to the browser."""
        if self.is_async:
            return "(async () => { " + self.source + " })();"
        return self.source


class StackFrame(BaseModel):
    """One frame of a JavaScript stack trace."""

    function_name: str = ""
    url: str = ""
    line_number: int = 0
    column_number: int = 0


def _remote_object_value(arg: Dict[str, Any]) -> str:
    # JSON-encoded value, as the protocol would put it on the wire
    if "value" in arg:
        raw = json.dumps(arg["value"], ensure_ascii=False)
    elif "unserializableValue" in arg:
        raw = str(arg["unserializableValue"])
    else:
        raw = str(arg.get("description", ""))

    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        raw = raw[1:-1]
    return raw


class ConsoleMessage(BaseModel):
    """A console API call (console.log, console.warn, ...) made by the page."""

    kind: Literal["console"] = "console"
    type: str = Field(default="log", description="Console method name")
    values: List[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.values)

    @classmethod
    def from_cdp(cls, params: Dict[str, Any]) -> "ConsoleMessage":
        """Build from a Runtime.consoleAPICalled payload."""
        return cls(
            type=params.get("type", "log"),
            values=[_remote_object_value(arg) for arg in params.get("args", [])]
        )


class PageException(BaseModel):
    """An uncaught exception thrown by page script."""

    kind: Literal["exception"] = "exception"
    text: str
    frames: List[StackFrame] = Field(default_factory=list)

    @classmethod
    def from_cdp(cls, params: Dict[str, Any]) -> "PageException":
        """Build from a Runtime.exceptionThrown payload."""
        details = params.get("exceptionDetails", {})
        exception = details.get("exception") or {}
        text = exception.get("description") or details.get("text", "")

        frames = []
        stack_trace = details.get("stackTrace")
        if stack_trace:
            for frame in stack_trace.get("callFrames", []):
                frames.append(StackFrame(
                    function_name=frame.get("functionName", ""),
                    url=frame.get("url", ""),
                    line_number=frame.get("lineNumber", 0),
                    column_number=frame.get("columnNumber", 0),
                ))

        return cls(text=text, frames=frames)


class DialogOpened(BaseModel):
    """A native alert/confirm/prompt/beforeunload dialog."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["dialog"] = "dialog"
    dialog_type: str
    message: str = ""
    dialog: Optional[Any] = Field(default=None, exclude=True, description="Playwright Dialog handle")

    @classmethod
    def from_playwright(cls, dialog) -> "DialogOpened":
        return cls(dialog_type=dialog.type, message=dialog.message, dialog=dialog)


BrowserEvent = Union[ConsoleMessage, PageException, DialogOpened]
