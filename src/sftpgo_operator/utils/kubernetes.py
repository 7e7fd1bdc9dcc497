"""
Kubernetes utilities for the SFTPGo operator.

This module provides helper functions for interacting with the Kubernetes
API: client configuration and reading the SFTPGo connection Secret.
"""

import base64
import logging

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from sftpgo_operator.errors import KubernetesAPIError

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    Tries the in-cluster configuration first and falls back to the local
    kubeconfig for development.
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


def read_secret_data(name: str, namespace: str) -> dict[str, str]:
    """
    Read and decode every key of a Secret.

    Args:
        name: Secret name
        namespace: Secret namespace

    Returns:
        Mapping of Secret keys to their decoded string values

    Raises:
        KubernetesAPIError: If the Secret cannot be read
    """
    logger.debug(f"Reading secret {name} in {namespace}")

    try:
        k8s = get_kubernetes_client()
        core_api = client.CoreV1Api(k8s)
        secret = core_api.read_namespaced_secret(name=name, namespace=namespace)
    except ApiException as e:
        logger.error(f"Failed to read secret {name} in {namespace}: {e}")
        raise KubernetesAPIError(
            f"Failed to read secret {namespace}/{name}: {e.status}",
            reason=e.reason,
        ) from e

    return {
        key: base64.b64decode(value).decode()
        for key, value in (secret.data or {}).items()
    }
