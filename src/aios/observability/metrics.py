"""OpenTelemetry metrics for aios.

Counters and histograms for routed commands, tool calls, results and
confirmation decisions. All functions are fire-and-forget no-ops if
opentelemetry is not installed or not configured.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from aios.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator

logger = get_logger("aios.observability")

_meter = None
_commands_total = None
_tool_calls_total = None
_tool_call_latency = None
_results_total = None
_confirmations_total = None
_initialized = False


def _ensure_meter() -> bool:
    """Lazily initialize the meter and instruments."""
    global _meter, _commands_total, _tool_calls_total, _tool_call_latency
    global _results_total, _confirmations_total, _initialized

    if _initialized:
        return _meter is not None

    _initialized = True

    try:
        from opentelemetry import metrics

        _meter = metrics.get_meter("aios", "0.3.0")

        _commands_total = _meter.create_counter(
            "aios.commands.total",
            description="Routed commands by intent",
            unit="1",
        )
        _tool_calls_total = _meter.create_counter(
            "aios.tool_calls.total",
            description="Backend tool invocations",
            unit="1",
        )
        _tool_call_latency = _meter.create_histogram(
            "aios.tool_call.latency_ms",
            description="Backend tool invocation latency",
            unit="ms",
        )
        _results_total = _meter.create_counter(
            "aios.results.total",
            description="Execution results by success",
            unit="1",
        )
        _confirmations_total = _meter.create_counter(
            "aios.confirmations.total",
            description="Confirmation prompts by decision",
            unit="1",
        )
        return True
    except ImportError:
        return False


def _emit(instrument, value: float, attributes: dict) -> None:
    # telemetry must never affect the command being run
    try:
        if hasattr(instrument, "add"):
            instrument.add(value, attributes)
        else:
            instrument.record(value, attributes)
    except Exception:
        logger.debug("Metric emission failed", exc_info=True)


def record_command(*, intent: str) -> None:
    """Record a routed command."""
    if not _ensure_meter() or _commands_total is None:
        return
    _emit(_commands_total, 1, {"aios.intent": intent})


def record_tool_call(*, tool_name: str, success: bool, mode: str, latency_ms: float) -> None:
    """Record one backend tool invocation and its latency."""
    if not _ensure_meter() or _tool_calls_total is None:
        return
    _emit(
        _tool_calls_total,
        1,
        {"aios.tool_name": tool_name, "aios.success": str(success), "aios.mode": mode},
    )
    if _tool_call_latency is not None:
        _emit(_tool_call_latency, latency_ms, {"aios.tool_name": tool_name})


def record_result(*, success: bool) -> None:
    """Record a final execution result."""
    if not _ensure_meter() or _results_total is None:
        return
    _emit(_results_total, 1, {"aios.success": str(success)})


def record_confirmation(*, accepted: bool) -> None:
    """Record an operator decision on a confirmation prompt."""
    if not _ensure_meter() or _confirmations_total is None:
        return
    _emit(_confirmations_total, 1, {"aios.decision": "accepted" if accepted else "cancelled"})


@contextmanager
def measure_tool_call(tool_name: str, mode: str) -> Generator[dict, None, None]:
    """Time a tool call; set outcome["success"] inside the block."""
    outcome = {"success": False}
    start = time.monotonic()
    try:
        yield outcome
    finally:
        latency_ms = (time.monotonic() - start) * 1000
        record_tool_call(tool_name=tool_name, success=outcome["success"], mode=mode, latency_ms=latency_ms)
