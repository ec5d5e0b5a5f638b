"""Tests for aios structured logging."""

import json
import logging
import sys

from aios.logging import CONTEXT_KEYS, AiosFormatter, configure_logging, get_logger


def _record(name="aios.engine", level=logging.INFO, msg="Command routed", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestAiosFormatter:
    def test_human_readable_format(self):
        output = AiosFormatter(json_output=False).format(_record())
        assert "aios.engine" in output
        assert "Command routed" in output
        assert "INFO" in output

    def test_json_format(self):
        output = AiosFormatter(json_output=True).format(_record(name="aios.tools", level=logging.WARNING))
        data = json.loads(output)
        assert data["logger"] == "aios.tools"
        assert data["message"] == "Command routed"
        assert data["level"] == "WARNING"
        assert "timestamp" in data

    def test_context_fields(self):
        record = _record()
        record.command_id = "cmd-1234"  # type: ignore[attr-defined]
        record.tool_name = "install_package"  # type: ignore[attr-defined]
        record.state = "EXECUTING"  # type: ignore[attr-defined]
        output = AiosFormatter().format(record)
        assert "command_id=cmd-1234" in output
        assert "tool_name=install_package" in output
        assert "state=EXECUTING" in output

    def test_context_fields_in_json(self):
        record = _record()
        record.risk_level = "destructive"  # type: ignore[attr-defined]
        record.duration_ms = 12.5  # type: ignore[attr-defined]
        data = json.loads(AiosFormatter(json_output=True).format(record))
        assert data["risk_level"] == "destructive"
        assert data["duration_ms"] == 12.5

    def test_unknown_extras_are_ignored(self):
        record = _record()
        record.password = "hunter2"  # type: ignore[attr-defined]
        assert "hunter2" not in AiosFormatter().format(record)

    def test_exception_included(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        output = AiosFormatter(json_output=True).format(record)
        data = json.loads(output)
        assert "ValueError: bad value" in data["exception"]

    def test_context_keys(self):
        assert "command_id" in CONTEXT_KEYS
        assert "mode" in CONTEXT_KEYS


class TestGetLogger:
    def test_returns_logger(self):
        logger = get_logger("aios.test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "aios.test"

    def test_default_name(self):
        assert get_logger().name == "aios"


class TestConfigureLogging:
    def teardown_method(self):
        configure_logging()

    def test_configure_level(self):
        configure_logging(level="DEBUG")
        assert get_logger("aios").level == logging.DEBUG

    def test_invalid_level_falls_back_to_info(self):
        configure_logging(level="LOUD")
        assert get_logger("aios").level == logging.INFO

    def test_single_handler(self):
        configure_logging()
        configure_logging()
        logger = get_logger("aios")
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_json_handler(self):
        configure_logging(json_output=True)
        handler = get_logger("aios").handlers[0]
        assert isinstance(handler.formatter, AiosFormatter)
        assert handler.formatter._json_output is True
