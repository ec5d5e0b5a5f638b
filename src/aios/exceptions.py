"""
aios Custom Exceptions

Structured exception hierarchy for the assistant core.
All aios-specific exceptions inherit from AiosError.

Exception hierarchy:
    AiosError
    +-- UnresolvedIntentError       (no tool matched the utterance)
    +-- InvalidParameterError       (schema violation, re-prompt for fields)
    +-- StaleToolReferenceError     (registry changed between routing and execution)
    +-- ToolTimeoutError            (bounded wait exceeded)
    +-- ToolExecutionError          (backend reported an error)
    |   +-- BackendProtocolError    (malformed or unreachable backend)
    +-- ConfirmationDeclinedError   (operator said no, not a failure)
    +-- CommandCancelledError       (session cancellation between tools)
    +-- ToolRegistrationError       (duplicate or unknown registry entry)

Every subclass can describe itself as an ErrorInfo so failures can be
captured into an ExecutionResult instead of escaping to the session loop.
"""

from __future__ import annotations

from collections.abc import Sequence

from aios.core.models import ErrorInfo, ErrorKind


class AiosError(Exception):
    """Base exception for all aios errors."""

    kind: ErrorKind = ErrorKind.TOOL_EXECUTION
    recoverable: bool = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def tool_name(self) -> str | None:
        return self.details.get("tool_name")

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            message=self.message,
            tool_name=self.tool_name,
            recoverable=self.recoverable,
        )


class UnresolvedIntentError(AiosError):
    """Raised when no registered tool plausibly matches an utterance.

    Surfaced to the user with a suggestion to rephrase.
    """

    kind = ErrorKind.UNRESOLVED_INTENT
    recoverable = True

    def __init__(self, utterance: str, suggestion: str = "", details: dict | None = None):
        suggestion = suggestion or "Try rephrasing, e.g. 'install nginx' or 'check requirements for docker'."
        super().__init__(
            f"Could not resolve '{utterance}' to a known operation. {suggestion}",
            details={"utterance": utterance, "suggestion": suggestion, **(details or {})},
        )
        self.utterance = utterance
        self.suggestion = suggestion


class InvalidParameterError(AiosError):
    """Raised when tool parameters violate the declared schema.

    Local and recoverable: the session can re-prompt for the fields.
    """

    kind = ErrorKind.INVALID_PARAMETER
    recoverable = True

    def __init__(self, tool_name: str, violations: Sequence[str], details: dict | None = None):
        self.violations = list(violations)
        super().__init__(
            f"Invalid parameters for '{tool_name}': " + "; ".join(self.violations),
            details={"tool_name": tool_name, "violations": self.violations, **(details or {})},
        )


class StaleToolReferenceError(AiosError):
    """Raised when a command references a tool no longer in the registry.

    The utterance must be routed again.
    """

    kind = ErrorKind.STALE_TOOL_REFERENCE
    recoverable = True

    def __init__(self, tool_names: Sequence[str], details: dict | None = None):
        self.tool_names = list(tool_names)
        super().__init__(
            "Tool(s) no longer registered: " + ", ".join(self.tool_names) + "; re-route the request",
            details={
                "tool_name": self.tool_names[0] if self.tool_names else None,
                "tool_names": self.tool_names,
                **(details or {}),
            },
        )


class ToolTimeoutError(AiosError):
    """Raised when a tool invocation exceeds its bounded wait."""

    kind = ErrorKind.TOOL_TIMEOUT

    def __init__(self, tool_name: str, timeout_seconds: float, details: dict | None = None):
        super().__init__(
            f"Tool '{tool_name}' timed out after {timeout_seconds:g}s",
            details={"tool_name": tool_name, "timeout_seconds": timeout_seconds, **(details or {})},
        )
        self.timeout_seconds = timeout_seconds


class ToolExecutionError(AiosError):
    """Raised when a backend reports isError for an invocation.

    Wraps the backend's own message.
    """

    kind = ErrorKind.TOOL_EXECUTION

    def __init__(self, tool_name: str, message: str, details: dict | None = None):
        super().__init__(
            f"Tool '{tool_name}' execution failed: {message}",
            details={"tool_name": tool_name, **(details or {})},
        )
        self.backend_message = message


class BackendProtocolError(ToolExecutionError):
    """Raised when an out-of-process backend cannot be reached or misbehaves."""

    def __init__(self, backend: str, message: str, tool_name: str = "", details: dict | None = None):
        super().__init__(tool_name or backend, message, details={"backend": backend, **(details or {})})
        self.backend = backend


class ConfirmationDeclinedError(AiosError):
    """The operator declined a confirmation prompt.

    A normal cancellation path, kept distinct from execution failures.
    """

    kind = ErrorKind.CONFIRMATION_DECLINED
    recoverable = True

    def __init__(self, command_id: str, details: dict | None = None):
        super().__init__(
            f"Command '{command_id}' was not confirmed; nothing was changed",
            details={"command_id": command_id, **(details or {})},
        )
        self.command_id = command_id


class CommandCancelledError(AiosError):
    """The session was cancelled between tool invocations."""

    kind = ErrorKind.CANCELLED
    recoverable = True

    def __init__(self, command_id: str, completed: Sequence[str] = (), details: dict | None = None):
        done = ", ".join(completed) if completed else "none"
        super().__init__(
            f"Command '{command_id}' cancelled; completed tools: {done}",
            details={"command_id": command_id, "completed": list(completed), **(details or {})},
        )


class ToolRegistrationError(AiosError):
    """Raised for invalid registry mutations."""

    def __init__(self, tool_name: str, message: str, details: dict | None = None):
        super().__init__(
            f"Tool '{tool_name}': {message}",
            details={"tool_name": tool_name, **(details or {})},
        )
