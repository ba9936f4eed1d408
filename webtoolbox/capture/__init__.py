"""Browser session orchestration for web-toolbox.

This package establishes a controllable browser session (a local headless
Chromium or an already running Chrome with remote debugging), prepares it by
navigating, waiting a fixed delay and injecting an optional script, bridges
console/exception/dialog events into logging, and runs the capture actions.

Usage:
    from webtoolbox.capture import SessionEstablisher, NavigationPipeline, ActionExecutor

    session = await SessionEstablisher().establish("https://example.com", timeout=12, delay=2)
    async with session:
        await NavigationPipeline().prepare(session)
        text = await ActionExecutor(session).body_text()
"""

__all__ = [
    # Session
    "Session",
    "SessionEstablisher",
    "RemoteEndpoint",
    "parse_remote_endpoint",

    # Pipeline and actions
    "NavigationPipeline",
    "ActionExecutor",
    "EventBridge",

    # Models
    "InjectedScript",
    "SessionState",
    "ConsoleMessage",
    "PageException",
    "DialogOpened",
    "StackFrame",
    "BrowserEvent",

    # Errors
    "ToolboxError",
    "ConfigurationError",
    "RemoteEndpointFormatError",
    "RemoteConnectionError",
    "RemoteStatusError",
    "BrowserLaunchError",
    "SessionClosedError",
    "SessionStateError",
    "DeadlineExceededError",
    "NavigationError",
    "ScriptEvaluationError",
    "ActionError",
    "ArtifactWriteError",
]

from .errors import (
    ToolboxError,
    ConfigurationError,
    RemoteEndpointFormatError,
    RemoteConnectionError,
    RemoteStatusError,
    BrowserLaunchError,
    SessionClosedError,
    SessionStateError,
    DeadlineExceededError,
    NavigationError,
    ScriptEvaluationError,
    ActionError,
    ArtifactWriteError,
)

from .models import (
    InjectedScript,
    SessionState,
    ConsoleMessage,
    PageException,
    DialogOpened,
    StackFrame,
    BrowserEvent,
)

from .session import (
    Session,
    SessionEstablisher,
    RemoteEndpoint,
    parse_remote_endpoint,
)

from .event_bridge import EventBridge
from .pipeline import NavigationPipeline
from .actions import ActionExecutor
