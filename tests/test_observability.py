"""Tests for aios observability (OpenTelemetry tracing + metrics)."""

from unittest.mock import MagicMock, patch

import aios.observability.metrics as metrics
from aios.core.models import Command, RiskLevel
import aios.observability.tracing as tracing
from aios.observability.tracing import _NoOpSpan, _NoOpTracer, get_tracer, init_tracing, shutdown


class TestNoOpTracer:
    def test_noop_span_context_manager(self):
        span = _NoOpSpan()
        with span as s:
            assert s is span

    def test_noop_span_methods(self):
        span = _NoOpSpan()
        span.set_attribute("key", "value")
        span.set_status("ok")
        span.record_exception(RuntimeError("test"))
        span.add_event("event", {"key": "value"})

    def test_noop_tracer_returns_noop_span(self):
        assert isinstance(_NoOpTracer().start_as_current_span("aios.execute"), _NoOpSpan)


class TestInitTracing:
    def setup_method(self):
        tracing._tracer = None
        tracing._initialized = False

    def teardown_method(self):
        tracing._tracer = None
        tracing._initialized = False

    def test_no_endpoint_returns_false(self):
        with patch.dict("os.environ", {}, clear=True):
            assert init_tracing(endpoint=None) is False

    def test_endpoint_without_otel_installed(self):
        with patch.dict("sys.modules", {"opentelemetry": None}):
            assert init_tracing(endpoint="http://localhost:4317") is False

    def test_idempotent(self):
        tracing._initialized = True
        assert init_tracing(endpoint="http://localhost:4317") is False


class TestGetTracer:
    def setup_method(self):
        tracing._tracer = None
        tracing._initialized = False

    def test_noop_when_not_installed(self):
        with patch.dict("sys.modules", {"opentelemetry": None, "opentelemetry.trace": None}):
            assert isinstance(get_tracer(), _NoOpTracer)

    def test_returns_configured_tracer(self):
        mock_tracer = MagicMock()
        tracing._tracer = mock_tracer
        try:
            assert get_tracer() is mock_tracer
        finally:
            tracing._tracer = None


class TestCommandSpan:
    def teardown_method(self):
        tracing._tracer = None

    def test_tags_command(self):
        mock_tracer = MagicMock()
        span = mock_tracer.start_as_current_span.return_value.__enter__.return_value
        tracing._tracer = mock_tracer
        command = Command(intent="install_package", tools=["install_package"], risk_level=RiskLevel.MODERATE)
        with tracing.command_span(command) as active:
            assert active is span
        mock_tracer.start_as_current_span.assert_called_once_with("aios.execute")
        span.set_attribute.assert_any_call("aios.intent", "install_package")
        span.set_attribute.assert_any_call("aios.risk_level", "moderate")
        span.set_attribute.assert_any_call("aios.tool_count", 1)

    def test_noop_without_otel(self):
        command = Command(intent="x", tools=["x"])
        with patch.dict("sys.modules", {"opentelemetry": None, "opentelemetry.trace": None}):
            with tracing.command_span(command) as span:
                assert isinstance(span, _NoOpSpan)


class TestShutdown:
    def test_resets_state(self):
        tracing._initialized = True
        tracing._tracer = MagicMock()
        shutdown()
        assert tracing._tracer is None
        assert tracing._initialized is False


class TestMetrics:
    def setup_method(self):
        metrics._initialized = False
        metrics._meter = None
        metrics._commands_total = None
        metrics._tool_calls_total = None
        metrics._tool_call_latency = None
        metrics._results_total = None
        metrics._confirmations_total = None

    teardown_method = setup_method

    def _install_mocks(self):
        metrics._initialized = True
        metrics._meter = MagicMock()
        metrics._commands_total = MagicMock(spec=["add"])
        metrics._tool_calls_total = MagicMock(spec=["add"])
        metrics._tool_call_latency = MagicMock(spec=["record"])
        metrics._results_total = MagicMock(spec=["add"])
        metrics._confirmations_total = MagicMock(spec=["add"])

    def test_noop_without_otel(self):
        with patch.dict("sys.modules", {"opentelemetry": None, "opentelemetry.metrics": None}):
            metrics.record_command(intent="install_package")
            metrics.record_tool_call(tool_name="t", success=True, mode="execute", latency_ms=1.0)
            metrics.record_result(success=True)
            metrics.record_confirmation(accepted=False)
            assert metrics._ensure_meter() is False

    def test_record_command(self):
        self._install_mocks()
        metrics.record_command(intent="install_package")
        metrics._commands_total.add.assert_called_once_with(1, {"aios.intent": "install_package"})

    def test_record_tool_call_with_latency(self):
        self._install_mocks()
        metrics.record_tool_call(tool_name="install_package", success=False, mode="execute", latency_ms=42.0)
        metrics._tool_calls_total.add.assert_called_once_with(
            1,
            {"aios.tool_name": "install_package", "aios.success": "False", "aios.mode": "execute"},
        )
        metrics._tool_call_latency.record.assert_called_once_with(42.0, {"aios.tool_name": "install_package"})

    def test_record_result_and_confirmation(self):
        self._install_mocks()
        metrics.record_result(success=True)
        metrics.record_confirmation(accepted=False)
        metrics._results_total.add.assert_called_once_with(1, {"aios.success": "True"})
        metrics._confirmations_total.add.assert_called_once_with(1, {"aios.decision": "cancelled"})

    def test_instrument_failure_does_not_propagate(self):
        self._install_mocks()
        metrics._results_total.add.side_effect = RuntimeError("exporter down")
        metrics.record_result(success=True)

    def test_measure_tool_call(self):
        self._install_mocks()
        with metrics.measure_tool_call("read_status", "dry_run") as outcome:
            outcome["success"] = True
        args = metrics._tool_calls_total.add.call_args[0]
        assert args[1]["aios.success"] == "True"
        assert args[1]["aios.mode"] == "dry_run"
        assert metrics._tool_call_latency.record.call_args[0][0] >= 0

    def test_measure_tool_call_records_failure_on_exception(self):
        self._install_mocks()
        try:
            with metrics.measure_tool_call("read_status", "execute"):
                raise ValueError("boom")
        except ValueError:
            pass
        assert metrics._tool_calls_total.add.call_args[0][1]["aios.success"] == "False"
