"""OpenTelemetry tracing for aios command execution.

Spans are exported over OTLP once init_tracing() has an endpoint
(argument or OTEL_EXPORTER_OTLP_ENDPOINT). Until then, and whenever
opentelemetry is not installed, spans are no-ops.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

    from aios.core.models import Command

TRACER_NAME = "aios"
TRACER_VERSION = "0.3.0"

_tracer: Tracer | None = None
_initialized = False


def init_tracing(endpoint: str | None = None, service_name: str | None = None) -> bool:
    """Install an OTLP-exporting tracer provider.

    Returns True when spans will be exported, False when skipped because
    there is no endpoint or the otel extra is not installed. Safe to call
    more than once; only the first call does anything.
    """
    global _tracer, _initialized
    if _initialized:
        return _tracer is not None
    _initialized = True

    endpoint = endpoint or os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        return False

    service = service_name or os.environ.get("OTEL_SERVICE_NAME", TRACER_NAME)
    provider = TracerProvider(resource=Resource.create({"service.name": service}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(TRACER_NAME, TRACER_VERSION)
    return True


def get_tracer() -> Tracer:
    if _tracer is not None:
        return _tracer
    try:
        from opentelemetry import trace
    except ImportError:
        return _NoOpTracer()
    # API default provider: no-op until one is installed
    return trace.get_tracer(TRACER_NAME, TRACER_VERSION)


@contextmanager
def command_span(command: Command) -> Iterator[Any]:
    """Span around one command execution, tagged with what was routed."""
    with get_tracer().start_as_current_span("aios.execute") as span:
        span.set_attribute("aios.command_id", command.id)
        span.set_attribute("aios.intent", command.intent)
        span.set_attribute("aios.tool_count", len(command.tools))
        span.set_attribute("aios.risk_level", command.risk_level.value)
        yield span


def shutdown() -> None:
    """Flush pending spans and forget the configured tracer."""
    global _tracer, _initialized
    try:
        from opentelemetry import trace
    except ImportError:
        trace = None
    if trace is not None:
        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
    _tracer = None
    _initialized = False


class _NoOpSpan:
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def set_attribute(self, key: str, value: object) -> None:
        return None

    def set_status(self, status: object) -> None:
        return None

    def record_exception(self, exception: BaseException) -> None:
        return None

    def add_event(self, name: str, attributes: dict | None = None) -> None:
        return None


class _NoOpTracer:
    def start_as_current_span(self, name: str, **kwargs) -> _NoOpSpan:
        return _NoOpSpan()
