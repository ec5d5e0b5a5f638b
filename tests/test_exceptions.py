"""Tests for the aios exception hierarchy."""

import pytest

from aios.core.models import ErrorKind
from aios.exceptions import (
    AiosError,
    BackendProtocolError,
    CommandCancelledError,
    ConfirmationDeclinedError,
    InvalidParameterError,
    StaleToolReferenceError,
    ToolExecutionError,
    ToolRegistrationError,
    ToolTimeoutError,
    UnresolvedIntentError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            UnresolvedIntentError("make coffee"),
            InvalidParameterError("install_package", ["package: required"]),
            StaleToolReferenceError(["gone"]),
            ToolTimeoutError("slow", 5),
            ToolExecutionError("broken", "exit 1"),
            BackendProtocolError("http:remote", "connection refused"),
            ConfirmationDeclinedError("cmd-1"),
            CommandCancelledError("cmd-1"),
            ToolRegistrationError("dup", "already registered"),
        ],
    )
    def test_all_inherit_from_base(self, error):
        assert isinstance(error, AiosError)
        assert isinstance(error, Exception)
        assert error.message == str(error)

    def test_backend_protocol_is_execution_error(self):
        error = BackendProtocolError("subprocess:tools", "malformed reply", tool_name="install_package")
        assert isinstance(error, ToolExecutionError)
        assert error.kind == ErrorKind.TOOL_EXECUTION
        assert error.tool_name == "install_package"
        assert error.backend == "subprocess:tools"

    def test_catch_by_base(self):
        with pytest.raises(AiosError):
            raise ToolTimeoutError("slow", 1.5)


class TestErrorInfo:
    def test_unresolved_intent_suggests_rephrasing(self):
        info = UnresolvedIntentError("make coffee").to_error_info()
        assert info.kind == ErrorKind.UNRESOLVED_INTENT
        assert info.recoverable is True
        assert "make coffee" in info.message
        assert "rephrasing" in info.message

    def test_custom_suggestion(self):
        error = UnresolvedIntentError("drop db", "be more specific")
        assert error.suggestion == "be more specific"
        assert error.details["utterance"] == "drop db"

    def test_invalid_parameter_lists_violations(self):
        error = InvalidParameterError("install_package", ["package: required", "manager: not allowed"])
        info = error.to_error_info()
        assert info.kind == ErrorKind.INVALID_PARAMETER
        assert info.tool_name == "install_package"
        assert info.recoverable is True
        assert "package: required; manager: not allowed" in info.message
        assert error.violations == ["package: required", "manager: not allowed"]

    def test_stale_reference_names_first_tool(self):
        error = StaleToolReferenceError(["a", "b"])
        assert error.tool_name == "a"
        assert error.tool_names == ["a", "b"]
        assert error.to_error_info().kind == ErrorKind.STALE_TOOL_REFERENCE
        assert "re-route" in error.message

    def test_timeout(self):
        error = ToolTimeoutError("install_oracle_database", 3600.0)
        assert error.timeout_seconds == 3600.0
        assert "3600s" in error.message
        assert error.to_error_info().recoverable is False

    def test_execution_error_wraps_backend_message(self):
        error = ToolExecutionError("install_package", "E: Unable to locate package nginxx")
        assert error.backend_message == "E: Unable to locate package nginxx"
        assert "Unable to locate" in error.message

    def test_declined_is_distinct_from_failure(self):
        info = ConfirmationDeclinedError("cmd-42").to_error_info()
        assert info.kind == ErrorKind.CONFIRMATION_DECLINED
        assert info.kind != ErrorKind.TOOL_EXECUTION
        assert info.recoverable is True

    def test_cancelled_lists_completed_tools(self):
        error = CommandCancelledError("cmd-1", ["install_package"])
        assert "install_package" in error.message
        assert error.details["completed"] == ["install_package"]
        assert "none" in CommandCancelledError("cmd-2").message

    def test_details_are_merged(self):
        error = ToolRegistrationError("dup", "already registered", details={"backend": "x"})
        assert error.details == {"tool_name": "dup", "backend": "x"}
