"""Exceptions raised by the capture layer.

Every failure the core reports derives from ToolboxError and carries a
machine-readable error code plus a details dict, so the CLI can render a
one-line message and pick an exit code without string matching.
"""

from typing import Any, Dict, Optional


class ToolboxError(Exception):
    """Base error for all web-toolbox failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "toolbox_error",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ToolboxError):
    """Raised for invalid user-supplied configuration."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(
            message=message,
            error_code="configuration_error",
            details={"value": value} if value is not None else {}
        )


class RemoteEndpointFormatError(ConfigurationError):
    """Raised when a remote debugging endpoint is not host:port."""

    def __init__(self, endpoint: str, expected: str = "host:port"):
        self.endpoint = endpoint
        super().__init__(
            f"invalid remote debugging port format: {endpoint} "
            f"(expected format: {expected}, e.g. localhost:9222)",
            value=endpoint
        )


class RemoteConnectionError(ToolboxError):
    """Raised when the remote debugging endpoint cannot be reached."""

    def __init__(self, endpoint: str, port: str, cause: Optional[BaseException] = None):
        self.endpoint = endpoint
        message = f"failed to connect to remote debugging port {endpoint}"
        if cause is not None:
            message += f": {cause}"
        message += f" (ensure Chrome is running with --remote-debugging-port={port})"
        super().__init__(
            message=message,
            error_code="remote_connection_failed",
            details={"endpoint": endpoint, "port": port}
        )


class RemoteStatusError(RemoteConnectionError):
    """Raised when the remote probe answers with a non-200 status."""

    def __init__(self, endpoint: str, status_code: int, probe_url: str):
        self.endpoint = endpoint
        self.status_code = status_code
        ToolboxError.__init__(
            self,
            message=(
                f"remote debugging endpoint returned status {status_code} at {probe_url} "
                "(ensure Chrome is running with remote debugging enabled)"
            ),
            error_code="remote_status",
            details={"endpoint": endpoint, "status_code": status_code, "probe_url": probe_url}
        )


class BrowserLaunchError(ToolboxError):
    """Raised when a browser session cannot be established."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=f"{message}: {cause}" if cause is not None else message,
            error_code="browser_launch_failed"
        )


class SessionClosedError(ToolboxError):
    """Raised for any operation against a closed session."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message=f"cannot {operation}: browser session is closed",
            error_code="session_closed",
            details={"operation": operation}
        )


class SessionStateError(ToolboxError):
    """Raised when an operation runs against a session in the wrong state."""

    def __init__(self, operation: str, state: str, expected: str):
        self.operation = operation
        super().__init__(
            message=f"cannot {operation}: session is {state}, expected {expected}",
            error_code="session_state",
            details={"operation": operation, "state": state, "expected": expected}
        )


class DeadlineExceededError(ToolboxError):
    """Raised when the session deadline elapses during an operation."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            message=f"{operation} did not complete before the {timeout:g}s session timeout",
            error_code="deadline_exceeded",
            details={"operation": operation, "timeout": timeout}
        )


class NavigationError(ToolboxError):
    """Raised when the target cannot be loaded."""

    def __init__(self, target: str, cause: BaseException):
        self.target = target
        super().__init__(
            message=f"failed to navigate to {target}: {cause}",
            error_code="navigation_failed",
            details={"target": target}
        )


class ScriptEvaluationError(ToolboxError):
    """Raised when the injected script throws or its promise rejects."""

    def __init__(self, script_error: str):
        self.script_error = script_error
        super().__init__(
            message=f"JavaScript exception: {script_error}",
            error_code="script_failed",
            details={"script_error": script_error}
        )


class ActionError(ToolboxError):
    """Raised when a capture or extraction action fails."""

    def __init__(self, action: str, cause: BaseException):
        self.action = action
        super().__init__(
            message=f"failed to {action}: {cause}",
            error_code="action_failed",
            details={"action": action}
        )


class ArtifactWriteError(ToolboxError):
    """Raised when a captured artifact cannot be written to disk."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        super().__init__(
            message=f"failed to save {path}: {cause}",
            error_code="artifact_write_failed",
            details={"path": path}
        )
