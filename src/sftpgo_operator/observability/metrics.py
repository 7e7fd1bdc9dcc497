"""
Prometheus metrics for the SFTPGo operator.

This module provides metrics for reconciliation of SFTPGo objects and for
the traffic the operator sends to the SFTPGo REST API.
"""

import logging
import time
from contextlib import asynccontextmanager

# aiohttp is provided transitively by kopf; the metrics server reuses it.
from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from sftpgo_operator.constants import ALL_PHASES

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

RECONCILIATION_TOTAL = Counter(
    "sftpgo_operator_reconciliation_total",
    "Total number of lifecycle operations",
    ["resource_type", "namespace", "operation", "result"],
    registry=None,  # Will be set during initialization
)

RECONCILIATION_DURATION = Histogram(
    "sftpgo_operator_reconciliation_duration_seconds",
    "Time spent on lifecycle operations",
    ["resource_type", "namespace", "operation"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "sftpgo_operator_reconciliation_errors_total",
    "Total number of lifecycle operation errors",
    ["resource_type", "namespace", "error_type", "retryable"],
    registry=None,
)

ACTIVE_RESOURCES = Gauge(
    "sftpgo_operator_active_resources",
    "Number of managed SFTPGo objects per phase",
    ["resource_type", "namespace", "phase"],
    registry=None,
)

API_REQUESTS_TOTAL = Counter(
    "sftpgo_operator_api_requests_total",
    "Total number of SFTPGo API requests",
    ["method", "status"],
    registry=None,
)

API_REQUEST_DURATION = Histogram(
    "sftpgo_operator_api_request_duration_seconds",
    "Latency of SFTPGo API requests",
    ["method"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0],
    registry=None,
)

API_DEADLOCK_RETRIES_TOTAL = Counter(
    "sftpgo_operator_api_deadlock_retries_total",
    "Requests retried because the SFTPGo data provider reported a deadlock",
    ["method"],
    registry=None,
)

RESOURCES_RECREATED_TOTAL = Counter(
    "sftpgo_operator_resources_recreated_total",
    "Objects re-created after they disappeared from SFTPGo",
    ["resource_type", "namespace"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            RECONCILIATION_TOTAL,
            RECONCILIATION_DURATION,
            RECONCILIATION_ERRORS,
            ACTIVE_RESOURCES,
            API_REQUESTS_TOTAL,
            API_REQUEST_DURATION,
            API_DEADLOCK_RETRIES_TOTAL,
            RESOURCES_RECREATED_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the SFTPGo operator."""

    def __init__(self):
        self.registry = get_metrics_registry()
        self._phases: dict[tuple[str, str, str], str] = {}

    @asynccontextmanager
    async def track_reconciliation(
        self,
        resource_type: str,
        namespace: str,
        operation: str = "reconcile",
    ):
        """
        Context manager to track lifecycle operations.

        Args:
            resource_type: Kind of SFTPGo object
            namespace: Namespace of the custom resource
            operation: Lifecycle operation being performed
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"

            error_type = type(e).__name__
            retryable = "true" if getattr(e, "retryable", False) else "false"

            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                namespace=namespace,
                error_type=error_type,
                retryable=retryable,
            ).inc()

            raise
        finally:
            duration = time.time() - start_time

            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type,
                namespace=namespace,
                operation=operation,
                result=result,
            ).inc()

            RECONCILIATION_DURATION.labels(
                resource_type=resource_type, namespace=namespace, operation=operation
            ).observe(duration)

    def update_resource_status(
        self, resource_type: str, namespace: str, name: str, phase: str
    ):
        """Record the phase of one resource and refresh the per-phase counts."""
        self._phases[(resource_type, namespace, name)] = phase
        self._refresh_phase_counts(resource_type, namespace)

    def forget_resource(self, resource_type: str, namespace: str, name: str):
        """Drop a deleted resource from the per-phase counts."""
        self._phases.pop((resource_type, namespace, name), None)
        self._refresh_phase_counts(resource_type, namespace)

    def _refresh_phase_counts(self, resource_type: str, namespace: str):
        counts = dict.fromkeys(ALL_PHASES, 0)
        for (kind, ns, _), phase in self._phases.items():
            if kind == resource_type and ns == namespace:
                counts[phase] = counts.get(phase, 0) + 1
        for phase, count in counts.items():
            ACTIVE_RESOURCES.labels(
                resource_type=resource_type, namespace=namespace, phase=phase
            ).set(count)

    def record_api_request(self, method: str, status: int | None, duration: float):
        """
        Record a single SFTPGo API request.

        Args:
            method: HTTP method
            status: HTTP status code, or None for transport failures
            duration: Request latency in seconds
        """
        API_REQUESTS_TOTAL.labels(
            method=method, status=str(status) if status else "error"
        ).inc()
        API_REQUEST_DURATION.labels(method=method).observe(duration)

    def record_deadlock_retry(self, method: str):
        API_DEADLOCK_RETRIES_TOTAL.labels(method=method).inc()

    def record_recreation(self, resource_type: str, namespace: str):
        RESOURCES_RECREATED_TOTAL.labels(
            resource_type=resource_type, namespace=namespace
        ).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
        """
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            registry = get_metrics_registry()
            metrics_data = generate_latest(registry)
            return Response(
                body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST}
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes liveness checks."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Metrics server stopped")
        except Exception as e:
            logger.error(f"Error stopping metrics server: {e}")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()


# Global metrics collector instance
metrics_collector = MetricsCollector()
