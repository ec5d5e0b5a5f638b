"""
aios Structured Logging

Provides a configured logger for the assistant core using stdlib logging
with structured context.

Usage:
    from aios.logging import get_logger

    logger = get_logger("aios.engine")
    logger.info("Tool finished", extra={"tool_name": "install_package", "duration_ms": 812})

For production, configure with JSON output:
    from aios.logging import configure_logging
    configure_logging(json_output=True, level="INFO")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Context keys lifted from `extra=` into the formatted record
CONTEXT_KEYS = (
    "command_id",
    "intent",
    "tool_name",
    "risk_level",
    "mode",
    "state",
    "event_type",
    "duration_ms",
)


class AiosFormatter(logging.Formatter):
    """Structured log formatter.

    Outputs either human-readable lines or JSON objects, one per record.
    """

    def __init__(self, json_output: bool = False):
        super().__init__()
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self._json_output:
            return json.dumps(log_data, default=str)

        context = {
            k: v for k, v in log_data.items()
            if k not in ("timestamp", "level", "logger", "message", "exception")
        }
        line = f"[{log_data['timestamp']}] {record.levelname:8s} {record.name}: {log_data['message']}"
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        if "exception" in log_data:
            line += "\n" + log_data["exception"]
        return line


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """Configure the `aios` logger namespace.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: If True, emit JSON lines.
    """
    root_logger = logging.getLogger("aios")
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(AiosFormatter(json_output=json_output))
    root_logger.addHandler(handler)
    root_logger.propagate = False


def get_logger(name: str = "aios") -> logging.Logger:
    """Get an aios logger (usually the module path, like "aios.engine")."""
    return logging.getLogger(name)


configure_logging()
