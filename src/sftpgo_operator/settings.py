"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.

SFTPGo connection values loaded here are only fallbacks: an explicit
connection Secret takes precedence (see ``models.provider``).
"""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sftpgo_operator.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    MAX_HEADER_ENV_ENTRIES,
)


def _headers_from_env() -> dict[str, str]:
    """Collect SFTPGO_HEADERS__<n>__KEY / __VALUE pairs from the environment."""
    headers: dict[str, str] = {}
    for idx in range(MAX_HEADER_ENV_ENTRIES):
        key = os.getenv(f"SFTPGO_HEADERS__{idx}__KEY", "")
        value = os.getenv(f"SFTPGO_HEADERS__{idx}__VALUE", "")
        if key and value:
            headers[key] = value
    return headers


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Operator identification
    operator_namespace: str = Field(
        default="sftpgo-system",
        description="Namespace where the operator is deployed",
        validation_alias="OPERATOR_NAMESPACE",
    )
    operator_name: str = Field(
        default="sftpgo-operator",
        description="Name of the operator deployment",
        validation_alias="OPERATOR_NAME",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    # Namespace watching
    namespaces: str = Field(
        default="",
        validation_alias="SFTPGO_OPERATOR_NAMESPACES",
        description="Comma-separated list of namespaces to watch (empty = all namespaces)",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="OTEL_TRACING_ENABLED",
        description="Enable OpenTelemetry tracing",
    )
    tracing_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT",
        description="OTLP collector endpoint",
    )
    tracing_service_name: str = Field(
        default="sftpgo-operator",
        validation_alias="OTEL_SERVICE_NAME",
        description="Service name reported in traces",
    )
    tracing_sample_rate: float = Field(
        default=1.0,
        validation_alias="OTEL_SAMPLE_RATE",
        description="Trace sampling ratio between 0.0 and 1.0",
    )
    tracing_insecure: bool = Field(
        default=True,
        validation_alias="OTEL_EXPORTER_OTLP_INSECURE",
        description="Use an insecure connection to the OTLP collector",
    )

    # Reconciliation behavior
    resync_interval_seconds: int = Field(
        default=300,
        validation_alias="SFTPGO_RESYNC_INTERVAL_SECONDS",
        description="Interval in seconds between periodic reads of managed objects",
    )

    # SFTPGo connection
    connection_secret: str = Field(
        default="",
        validation_alias="SFTPGO_CONNECTION_SECRET",
        description="Name of the Secret holding SFTPGo connection settings (empty = env only)",
    )
    connection_secret_namespace: str = Field(
        default="",
        validation_alias="SFTPGO_CONNECTION_SECRET_NAMESPACE",
        description="Namespace of the connection Secret (defaults to the operator namespace)",
    )
    sftpgo_host: str = Field(
        default="",
        validation_alias="SFTPGO_HOST",
        description="Base URL of the SFTPGo instance",
    )
    sftpgo_username: str = Field(
        default="",
        validation_alias="SFTPGO_USERNAME",
        description="Admin username used to obtain API tokens",
    )
    sftpgo_password: str = Field(
        default="",
        validation_alias="SFTPGO_PASSWORD",
        description="Admin password used to obtain API tokens",
    )
    sftpgo_api_key: str = Field(
        default="",
        validation_alias="SFTPGO_API_KEY",
        description="API key sent in the X-SFTPGO-API-KEY header",
    )
    sftpgo_edition: int = Field(
        default=0,
        validation_alias="SFTPGO_EDITION",
        description="SFTPGo edition (0 = open source, 1 = enterprise)",
    )
    sftpgo_headers: dict[str, str] = Field(
        default_factory=_headers_from_env,
        description="Extra headers from SFTPGO_HEADERS__<n>__KEY/VALUE",
    )
    sftpgo_request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        validation_alias="SFTPGO_REQUEST_TIMEOUT",
        description="Timeout in seconds for SFTPGo API requests",
    )

    @property
    def watched_namespaces(self) -> list[str] | None:
        """Parse watched namespaces from comma-separated string.

        Returns:
            List of namespace names, or None to watch all namespaces
        """
        if self.namespaces:
            return [ns.strip() for ns in self.namespaces.split(",") if ns.strip()]
        return None


# Global settings instance - initialized once at module import
settings = Settings()
