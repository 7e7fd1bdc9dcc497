"""
Unit tests for MetricsCollector methods in observability/metrics.py.

Tests the individual methods of MetricsCollector to verify they call the
correct Prometheus metric objects with the correct label values.
"""

from unittest.mock import MagicMock, patch

import pytest

from sftpgo_operator.errors import SFTPGoAPIError
from sftpgo_operator.observability.metrics import MetricsCollector


@pytest.fixture
def collector():
    """Create a MetricsCollector with the registry init patched out."""
    with patch(
        "sftpgo_operator.observability.metrics.get_metrics_registry",
        return_value=MagicMock(),
    ):
        return MetricsCollector()


class TestTrackReconciliation:
    @pytest.mark.asyncio
    @patch("sftpgo_operator.observability.metrics.RECONCILIATION_DURATION")
    @patch("sftpgo_operator.observability.metrics.RECONCILIATION_TOTAL")
    async def test_success(self, mock_total, mock_duration, collector):
        async with collector.track_reconciliation("user", "ns-a", "create"):
            pass

        mock_total.labels.assert_called_with(
            resource_type="user", namespace="ns-a", operation="create", result="success"
        )
        mock_total.labels().inc.assert_called_once()
        mock_duration.labels.assert_called_with(
            resource_type="user", namespace="ns-a", operation="create"
        )

    @pytest.mark.asyncio
    @patch("sftpgo_operator.observability.metrics.RECONCILIATION_ERRORS")
    @patch("sftpgo_operator.observability.metrics.RECONCILIATION_DURATION")
    @patch("sftpgo_operator.observability.metrics.RECONCILIATION_TOTAL")
    async def test_error_is_recorded_and_reraised(
        self, mock_total, mock_duration, mock_errors, collector
    ):
        with pytest.raises(SFTPGoAPIError):
            async with collector.track_reconciliation("folder", "ns-b", "delete"):
                raise SFTPGoAPIError("boom", status_code=503)

        mock_errors.labels.assert_called_with(
            resource_type="folder",
            namespace="ns-b",
            error_type="SFTPGoAPIError",
            retryable="true",
        )
        mock_errors.labels().inc.assert_called_once()
        mock_total.labels.assert_called_with(
            resource_type="folder", namespace="ns-b", operation="delete", result="error"
        )


class TestApiMetrics:
    @patch("sftpgo_operator.observability.metrics.API_REQUEST_DURATION")
    @patch("sftpgo_operator.observability.metrics.API_REQUESTS_TOTAL")
    def test_record_api_request(self, mock_total, mock_duration, collector):
        collector.record_api_request("GET", 200, 0.05)

        mock_total.labels.assert_called_with(method="GET", status="200")
        mock_duration.labels().observe.assert_called_with(0.05)

    @patch("sftpgo_operator.observability.metrics.API_REQUEST_DURATION")
    @patch("sftpgo_operator.observability.metrics.API_REQUESTS_TOTAL")
    def test_transport_failure_uses_error_status(self, mock_total, mock_duration, collector):
        collector.record_api_request("POST", None, 1.0)

        mock_total.labels.assert_called_with(method="POST", status="error")

    @patch("sftpgo_operator.observability.metrics.API_DEADLOCK_RETRIES_TOTAL")
    def test_record_deadlock_retry(self, mock_retries, collector):
        collector.record_deadlock_retry("PUT")

        mock_retries.labels.assert_called_with(method="PUT")
        mock_retries.labels().inc.assert_called_once()


@patch("sftpgo_operator.observability.metrics.RESOURCES_RECREATED_TOTAL")
def test_record_recreation(mock_recreated, collector):
    collector.record_recreation("role", "ns-c")

    mock_recreated.labels.assert_called_with(resource_type="role", namespace="ns-c")
    mock_recreated.labels().inc.assert_called_once()


class TestActiveResources:
    @patch("sftpgo_operator.observability.metrics.ACTIVE_RESOURCES")
    def test_counts_resources_per_phase(self, mock_active, collector):
        gauges = {}
        mock_active.labels.side_effect = lambda **labels: gauges.setdefault(
            tuple(labels.values()), MagicMock()
        )

        collector.update_resource_status("admin", "ns-d", "a1", "Ready")
        collector.update_resource_status("admin", "ns-d", "a2", "Ready")
        collector.update_resource_status("admin", "ns-d", "a3", "Degraded")

        gauges[("admin", "ns-d", "Ready")].set.assert_called_with(2)
        gauges[("admin", "ns-d", "Degraded")].set.assert_called_with(1)
        gauges[("admin", "ns-d", "Failed")].set.assert_called_with(0)

    @patch("sftpgo_operator.observability.metrics.ACTIVE_RESOURCES")
    def test_phase_change_moves_the_resource(self, mock_active, collector):
        gauges = {}
        mock_active.labels.side_effect = lambda **labels: gauges.setdefault(
            tuple(labels.values()), MagicMock()
        )

        collector.update_resource_status("user", "ns-e", "alice", "Reconciling")
        collector.update_resource_status("user", "ns-e", "alice", "Ready")

        gauges[("user", "ns-e", "Reconciling")].set.assert_called_with(0)
        gauges[("user", "ns-e", "Ready")].set.assert_called_with(1)

    @patch("sftpgo_operator.observability.metrics.ACTIVE_RESOURCES")
    def test_forget_resource(self, mock_active, collector):
        gauges = {}
        mock_active.labels.side_effect = lambda **labels: gauges.setdefault(
            tuple(labels.values()), MagicMock()
        )

        collector.update_resource_status("role", "ns-f", "r1", "Ready")
        collector.update_resource_status("role", "ns-g", "r1", "Ready")
        collector.forget_resource("role", "ns-f", "r1")

        gauges[("role", "ns-f", "Ready")].set.assert_called_with(0)
        gauges[("role", "ns-g", "Ready")].set.assert_called_with(1)
