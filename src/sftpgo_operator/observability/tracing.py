"""
OpenTelemetry distributed tracing for the SFTPGo operator.

This module provides:
- Automatic instrumentation of the httpx client used for the SFTPGo API
- Kopf handler decorator for automatic span creation

Usage:
    from sftpgo_operator.observability.tracing import setup_tracing, traced_handler

    setup_tracing(enabled=True)

    @traced_handler("create_sftpgouser", resource_type="sftpgouser")
    async def handle_create(spec, name, namespace, **kwargs):
        ...
"""

import contextlib
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None
_initialized: bool = False

P = ParamSpec("P")
R = TypeVar("R")


def setup_tracing(
    enabled: bool = False,
    endpoint: str = "http://localhost:4317",
    service_name: str = "sftpgo-operator",
    sample_rate: float = 1.0,
    insecure: bool = True,
    headers: dict[str, str] | None = None,
    use_simple_processor: bool = False,
) -> TracerProvider | None:
    """
    Initialize OpenTelemetry tracing for the operator.

    Args:
        enabled: Enable tracing (if False, returns None and does nothing)
        endpoint: OTLP collector endpoint (gRPC)
        service_name: Service name for traces
        sample_rate: Sampling rate (0.0-1.0, 1.0 = 100% of traces)
        insecure: Use insecure connection (no TLS)
        headers: Additional headers for OTLP exporter
        use_simple_processor: Export spans immediately instead of batching

    Returns:
        TracerProvider if enabled, None otherwise
    """
    global _tracer_provider, _initialized

    if _initialized:
        logger.debug("Tracing already initialized, skipping")
        return _tracer_provider

    if not enabled:
        logger.info("OpenTelemetry tracing is disabled")
        _initialized = True
        return None

    logger.info(
        f"Initializing OpenTelemetry tracing: endpoint={endpoint}, "
        f"service={service_name}, sample_rate={sample_rate}"
    )

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "sftpgo-operator",
            "deployment.environment": "kubernetes",
        }
    )

    # Root spans are sampled by ratio; child spans follow their parent
    sampler = ParentBased(root=TraceIdRatioBased(sample_rate))
    _tracer_provider = TracerProvider(resource=resource, sampler=sampler)

    exporter = OTLPSpanExporter(
        endpoint=endpoint,
        insecure=insecure,
        headers=headers or {},
    )

    if use_simple_processor:
        processor = SimpleSpanProcessor(exporter)
    else:
        processor = BatchSpanProcessor(exporter)
    _tracer_provider.add_span_processor(processor)

    trace.set_tracer_provider(_tracer_provider)

    try:
        HTTPXClientInstrumentor().instrument()
        logger.debug("Instrumented httpx client")
    except Exception as e:
        logger.warning(f"Failed to instrument httpx: {e}")

    _initialized = True
    logger.info("OpenTelemetry tracing initialized successfully")

    return _tracer_provider


def shutdown_tracing() -> None:
    """Shutdown tracing and flush any pending spans."""
    global _tracer_provider, _initialized

    if _tracer_provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        _tracer_provider.shutdown()
        _tracer_provider = None

    with contextlib.suppress(Exception):
        HTTPXClientInstrumentor().uninstrument()

    _initialized = False


def get_tracer(name: str = __name__) -> Tracer:
    """Get a tracer instance (no-op if tracing is disabled)."""
    return trace.get_tracer(name)


def traced_handler(
    operation_name: str,
    resource_type: str = "unknown",
    span_kind: SpanKind = SpanKind.INTERNAL,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Decorator for async kopf handlers to automatically create spans.

    The span carries the namespace and name kopf passes to the handler,
    records raised exceptions and sets the status from the outcome.

    Args:
        operation_name: Name of the span (e.g., "create_sftpgouser")
        resource_type: Custom resource kind handled by the wrapped handler
        span_kind: Kind of span
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = get_tracer(func.__module__ or __name__)

            attributes = {
                "k8s.namespace": str(kwargs.get("namespace", "unknown")),
                "k8s.resource.name": str(kwargs.get("name", "unknown")),
                "k8s.resource.type": resource_type,
                "kopf.handler": getattr(func, "__name__", "unknown"),
            }

            with tracer.start_as_current_span(
                operation_name,
                kind=span_kind,
                attributes=attributes,
            ) as span:
                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        return wrapper

    return decorator


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled and initialized."""
    return _initialized and _tracer_provider is not None
