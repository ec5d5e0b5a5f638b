"""aios Observability: OpenTelemetry tracing and metrics.

Opt-in via the OTEL_EXPORTER_OTLP_ENDPOINT env var and the `otel` extra.
Without them, all tracing/metrics calls are no-ops.
"""

from aios.observability.metrics import (
    measure_tool_call,
    record_command,
    record_confirmation,
    record_result,
    record_tool_call,
)
from aios.observability.tracing import command_span, get_tracer, init_tracing, shutdown

__all__ = [
    "command_span",
    "init_tracing",
    "get_tracer",
    "measure_tool_call",
    "record_command",
    "record_confirmation",
    "record_result",
    "record_tool_call",
    "shutdown",
]
