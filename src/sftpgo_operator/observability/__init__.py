"""
Observability utilities for the SFTPGo operator.

This module provides metrics, tracing and structured logging
capabilities for production monitoring and troubleshooting.
"""

from .logging import OperatorLogger, setup_structured_logging
from .metrics import MetricsServer, get_metrics_registry, metrics_collector
from .tracing import setup_tracing, shutdown_tracing, traced_handler

__all__ = [
    "MetricsServer",
    "get_metrics_registry",
    "metrics_collector",
    "OperatorLogger",
    "setup_structured_logging",
    "setup_tracing",
    "shutdown_tracing",
    "traced_handler",
]
