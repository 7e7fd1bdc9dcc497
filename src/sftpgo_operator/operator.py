#!/usr/bin/env python3
"""
SFTPGo Operator - Main entry point for the Kopf-based SFTPGo operator.

The operator keeps SFTPGo objects (users, folders, groups, event actions
and rules, IP list entries, roles, admins and the license) in line with
their custom resources.

Usage:
    python -m sftpgo_operator.operator
    # Or with kopf directly:
    kopf run -m sftpgo_operator.operator --all-namespaces

Environment Variables:
    SFTPGO_OPERATOR_NAMESPACES: Comma-separated list of namespaces to watch
    SFTPGO_HOST, SFTPGO_USERNAME, SFTPGO_PASSWORD, SFTPGO_API_KEY: connection
    SFTPGO_CONNECTION_SECRET: Secret overriding the connection variables
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import logging
import random
import sys
from typing import Any

import kopf

# Import handler modules to register them with kopf
from sftpgo_operator.errors import SFTPGoAPIError
from sftpgo_operator.handlers import resources  # noqa: F401
from sftpgo_operator.models.provider import ProviderConfig, resolve_provider_config
from sftpgo_operator.observability.logging import setup_structured_logging
from sftpgo_operator.observability.metrics import MetricsServer
from sftpgo_operator.observability.tracing import setup_tracing, shutdown_tracing
from sftpgo_operator.services import collect_inventory
from sftpgo_operator.settings import Settings
from sftpgo_operator.settings import settings as operator_settings
from sftpgo_operator.utils.kubernetes import read_secret_data
from sftpgo_operator.utils.sftpgo_client import SFTPGoClient

# Global reference to metrics server for cleanup
_global_metrics_server: MetricsServer | None = None


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
    )


def get_watched_namespaces() -> list[str] | None:
    """
    Get the list of namespaces to watch from operator_settings.

    Returns:
        List of namespace names, or None to watch all namespaces
    """
    return operator_settings.watched_namespaces


def build_sftpgo_client(settings: Settings) -> SFTPGoClient:
    """
    Build the shared SFTPGo API client.

    Values found in the connection Secret, when one is configured, take
    precedence over the environment.

    Raises:
        ConfigurationError: If the resolved configuration is incomplete
        KubernetesAPIError: If the connection Secret cannot be read
    """
    explicit = None
    if settings.connection_secret:
        namespace = settings.connection_secret_namespace or settings.operator_namespace
        logging.info(
            f"Loading SFTPGo connection from secret {namespace}/{settings.connection_secret}"
        )
        explicit = ProviderConfig.from_secret_data(
            read_secret_data(settings.connection_secret, namespace)
        )

    provider = resolve_provider_config(explicit, settings)
    return SFTPGoClient(
        host=provider.host,
        username=provider.username,
        password=provider.password,
        api_key=provider.api_key,
        headers=provider.headers,
        edition=provider.edition or 0,
        timeout=provider.timeout,
    )


async def load_sftpgo_inventory(memo: kopf.Memo) -> None:
    """
    Count the objects already defined in SFTPGo and keep the result in ``memo``.

    An unreachable server or an undecodable object only logs a warning.
    """
    memo.sftpgo_inventory = None
    try:
        inventory = await collect_inventory(memo.sftpgo_client)
    except (SFTPGoAPIError, ValueError) as e:
        logging.warning(f"Could not list SFTPGo objects at startup: {e}")
        return

    memo.sftpgo_inventory = inventory
    summary = ", ".join(f"{kind}={count}" for kind, count in inventory.items())
    logging.info(f"SFTPGo objects found at startup: {summary}")


@kopf.on.startup()
async def startup_handler(
    settings: kopf.OperatorSettings, memo: kopf.Memo, **_
) -> None:
    """
    Operator startup configuration.

    This handler runs once when the operator starts up and configures
    the kopf settings, tracing, the metrics endpoint and the shared SFTPGo
    client stored in ``memo``, then counts the objects SFTPGo already holds.
    """
    logging.info("Starting SFTPGo Operator...")
    settings.watching.reconnect_backoff = 1.0

    # Each pod gets a unique priority to enable leader election
    settings.peering.name = operator_settings.operator_name
    settings.peering.priority = random.randint(0, 32767)
    logging.info(
        f"Peering priority set to {settings.peering.priority} for leader election"
    )

    settings.execution.max_workers = 20

    watched_namespaces = get_watched_namespaces()
    if watched_namespaces:
        logging.info(f"Watching namespaces: {', '.join(watched_namespaces)}")
    else:
        logging.info("Watching all namespaces (cluster-wide mode)")

    setup_tracing(
        enabled=operator_settings.tracing_enabled,
        endpoint=operator_settings.tracing_endpoint,
        service_name=operator_settings.tracing_service_name,
        sample_rate=operator_settings.tracing_sample_rate,
        insecure=operator_settings.tracing_insecure,
    )

    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port, host=operator_settings.metrics_host
        )
        await metrics_server.start()
        logging.info(
            f"Metrics and health endpoints available on {operator_settings.metrics_host}:{operator_settings.metrics_port}"
        )

        global _global_metrics_server
        _global_metrics_server = metrics_server

    except Exception as e:
        logging.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logging.warning("Continuing without metrics server")

    memo.sftpgo_client = build_sftpgo_client(operator_settings)
    await load_sftpgo_inventory(memo)
    logging.info(
        f"Resync interval set to {operator_settings.resync_interval_seconds} seconds"
    )


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **_) -> None:
    """
    Operator cleanup handler.

    Closes the SFTPGo client, stops the metrics server and flushes
    pending spans.
    """
    logging.info("Shutting down SFTPGo Operator...")

    sftpgo_client = getattr(memo, "sftpgo_client", None)
    if sftpgo_client is not None:
        await sftpgo_client.close()

    global _global_metrics_server
    if _global_metrics_server:
        try:
            await _global_metrics_server.stop()
            logging.info("Metrics server stopped")
        except Exception as e:
            logging.error(f"Error stopping metrics server: {e}")
        _global_metrics_server = None

    shutdown_tracing()


@kopf.on.probe(id="healthz")
async def health_check(memo: kopf.Memo, **_) -> dict[str, Any]:
    """
    Report operator health on the kopf liveness endpoint.

    Returns:
        Dictionary indicating operator health status
    """
    sftpgo_client = getattr(memo, "sftpgo_client", None)
    if sftpgo_client is None:
        return {"status": "starting", "operator": "sftpgo-operator"}
    result: dict[str, Any] = {
        "status": "healthy",
        "operator": "sftpgo-operator",
        "sftpgo_host": sftpgo_client.host,
    }
    inventory = getattr(memo, "sftpgo_inventory", None)
    if inventory is not None:
        result["sftpgo_objects"] = inventory
    return result


def main() -> None:
    """
    Main entry point for the operator.

    This function:
    1. Configures logging
    2. Determines namespace scope
    3. Runs the kopf operator with appropriate settings
    """
    configure_logging()

    watched_namespaces = get_watched_namespaces()

    settings_obj = kopf.OperatorSettings()
    settings_obj.admission.server = None
    settings_obj.admission.managed = None

    try:
        if watched_namespaces:
            kopf.run(
                namespaces=watched_namespaces,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
                settings=settings_obj,
            )
        else:
            kopf.run(
                clusterwide=True,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
                settings=settings_obj,
            )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
