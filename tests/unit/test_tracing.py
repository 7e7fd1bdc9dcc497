"""
Unit tests for OpenTelemetry tracing module.

Tests the tracing setup and the traced_handler decorator.

Note: OpenTelemetry has global state that can only be set once per process.
Tests that need to capture spans use a module-scoped tracer provider,
while tests that mock the setup use patches to avoid global state issues.
"""

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode

from sftpgo_operator.observability.tracing import (
    get_tracer,
    is_tracing_enabled,
    setup_tracing,
    shutdown_tracing,
    traced_handler,
)


@pytest.fixture(scope="module")
def module_in_memory_exporter():
    return InMemorySpanExporter()


@pytest.fixture(scope="module")
def module_tracer_provider(module_in_memory_exporter):
    """Module-scoped tracer provider - set once for all tests in this module."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(module_in_memory_exporter))
    trace.set_tracer_provider(provider)
    return provider


@pytest.fixture(autouse=True)
def reset_tracing_state():
    """Reset tracing module state before and after each test."""
    import sftpgo_operator.observability.tracing as tracing_module

    tracing_module._initialized = False
    tracing_module._tracer_provider = None
    yield
    tracing_module._initialized = False
    tracing_module._tracer_provider = None


@pytest.fixture
def clear_spans(module_in_memory_exporter):
    module_in_memory_exporter.clear()
    yield module_in_memory_exporter
    module_in_memory_exporter.clear()


class TestSetupTracing:
    """Test setup_tracing function."""

    def test_setup_tracing_disabled(self):
        result = setup_tracing(enabled=False)
        assert result is None
        assert not is_tracing_enabled()

    @patch("sftpgo_operator.observability.tracing.OTLPSpanExporter")
    @patch("sftpgo_operator.observability.tracing.HTTPXClientInstrumentor")
    @patch("sftpgo_operator.observability.tracing.trace.set_tracer_provider")
    def test_setup_tracing_enabled(self, mock_set_provider, mock_httpx_instr, mock_exporter):
        """Test setup_tracing with enabled=True creates TracerProvider."""
        mock_exporter.return_value = MagicMock()

        result = setup_tracing(
            enabled=True,
            endpoint="http://collector:4317",
            service_name="test-service",
            headers={"x-token": "abc"},
        )

        assert isinstance(result, TracerProvider)
        assert is_tracing_enabled()
        mock_exporter.assert_called_once_with(
            endpoint="http://collector:4317",
            insecure=True,
            headers={"x-token": "abc"},
        )
        mock_httpx_instr.return_value.instrument.assert_called_once()
        mock_set_provider.assert_called_once_with(result)

    @patch("sftpgo_operator.observability.tracing.OTLPSpanExporter")
    @patch("sftpgo_operator.observability.tracing.HTTPXClientInstrumentor")
    @patch("sftpgo_operator.observability.tracing.trace.set_tracer_provider")
    def test_setup_tracing_idempotent(self, mock_set_provider, mock_httpx_instr, mock_exporter):
        first = setup_tracing(enabled=True)
        second = setup_tracing(enabled=True)

        assert first is second
        mock_exporter.assert_called_once()

    @patch("sftpgo_operator.observability.tracing.trace.set_tracer_provider")
    @patch("sftpgo_operator.observability.tracing.HTTPXClientInstrumentor")
    def test_setup_tracing_handles_instrumentation_failure(
        self, mock_httpx_instr, mock_set_provider
    ):
        """Test that instrumentation failures are handled gracefully."""
        mock_httpx_instr.return_value.instrument.side_effect = Exception("Mock error")

        with patch("sftpgo_operator.observability.tracing.OTLPSpanExporter"):
            result = setup_tracing(enabled=True)

        assert result is not None


class TestShutdownTracing:
    @patch("sftpgo_operator.observability.tracing.OTLPSpanExporter")
    @patch("sftpgo_operator.observability.tracing.HTTPXClientInstrumentor")
    @patch("sftpgo_operator.observability.tracing.trace.set_tracer_provider")
    def test_shutdown_tracing(self, mock_set_provider, mock_httpx_instr, mock_exporter):
        setup_tracing(enabled=True)
        assert is_tracing_enabled()

        shutdown_tracing()

        assert not is_tracing_enabled()
        mock_httpx_instr.return_value.uninstrument.assert_called_once()

    def test_shutdown_tracing_when_not_initialized(self):
        shutdown_tracing()
        assert not is_tracing_enabled()

    def test_shutdown_tracing_handles_uninstrument_errors(self):
        with patch(
            "sftpgo_operator.observability.tracing.HTTPXClientInstrumentor"
        ) as mock_httpx:
            mock_httpx.return_value.uninstrument.side_effect = Exception("Mock error")

            # Should not raise
            shutdown_tracing()


def test_get_tracer_returns_tracer():
    # Even when tracing is disabled, get_tracer returns a no-op tracer
    assert get_tracer("test_module") is not None


class TestTracedHandler:
    """Test the traced_handler decorator."""

    @pytest.mark.asyncio
    async def test_span_attributes(self, module_tracer_provider, clear_spans):
        @traced_handler("create_sftpgousers", resource_type="sftpgousers")
        async def handler(spec, name, namespace, **kwargs):
            return "done"

        result = await handler(spec={}, name="alice", namespace="team-a")

        assert result == "done"
        spans = clear_spans.get_finished_spans()
        assert len(spans) == 1
        span = spans[0]
        assert span.name == "create_sftpgousers"
        assert span.kind == SpanKind.INTERNAL
        assert span.attributes["k8s.namespace"] == "team-a"
        assert span.attributes["k8s.resource.name"] == "alice"
        assert span.attributes["k8s.resource.type"] == "sftpgousers"
        assert span.attributes["kopf.handler"] == "handler"
        assert span.status.status_code == StatusCode.OK

    @pytest.mark.asyncio
    async def test_exception_is_recorded(self, module_tracer_provider, clear_spans):
        @traced_handler("delete_sftpgofolders")
        async def handler(**kwargs):
            raise ValueError("folder in use")

        with pytest.raises(ValueError, match="folder in use"):
            await handler(name="shared", namespace="default")

        span = clear_spans.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"
        assert span.attributes["k8s.resource.type"] == "unknown"

    @pytest.mark.asyncio
    async def test_missing_kwargs_use_defaults(self, module_tracer_provider, clear_spans):
        @traced_handler("resync_sftpgoroles", span_kind=SpanKind.CLIENT)
        async def handler(**kwargs):
            return None

        await handler()

        span = clear_spans.get_finished_spans()[0]
        assert span.kind == SpanKind.CLIENT
        assert span.attributes["k8s.namespace"] == "unknown"
        assert span.attributes["k8s.resource.name"] == "unknown"

    @pytest.mark.asyncio
    async def test_preserves_function_metadata(self):
        @traced_handler("op")
        async def documented_handler(**kwargs):
            """Handler docstring."""

        assert documented_handler.__name__ == "documented_handler"
        assert documented_handler.__doc__ == "Handler docstring."
