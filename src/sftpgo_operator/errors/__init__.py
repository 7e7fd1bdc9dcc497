"""
Error handling module for the SFTPGo operator.

This module provides an error hierarchy that integrates with kopf and
separates local validation problems from SFTPGo API failures.
"""

from .operator_errors import (
    ConfigurationError,
    ExternalServiceError,
    KubernetesAPIError,
    OperatorError,
    PermanentError,
    SFTPGoAPIError,
    TemporaryError,
    ValidationError,
)

__all__ = [
    "OperatorError",
    "ValidationError",
    "TemporaryError",
    "PermanentError",
    "ExternalServiceError",
    "SFTPGoAPIError",
    "KubernetesAPIError",
    "ConfigurationError",
]
