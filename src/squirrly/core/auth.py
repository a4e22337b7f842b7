"""Authentication helpers for the Kubernetes API.

This module centralizes creation of a Kubernetes ApiClient. Explicit
kubeconfig settings win; otherwise the in-cluster service account is tried
first (the profiler normally runs as a Kubernetes Job) and the default
kubeconfig second.
"""

from __future__ import annotations

from kubernetes import client
from kubernetes import config as k8s_config

from squirrly.core.errors import ClusterAuthError


def _format_auth_error(message: str, context: str | None) -> str:
    """Return a user-friendly auth error message."""
    hint = "kubectl config current-context"
    if context:
        hint = f"kubectl config use-context {context}"
    return (
        f"Kubernetes configuration could not be loaded: {message}\n"
        f"Check your cluster access with:\n  $ {hint}"
    )


def get_api_client(
    kubeconfig: str | None = None,
    context: str | None = None,
) -> client.ApiClient:
    """
    Create and return a configured Kubernetes ApiClient.

    Args:
        kubeconfig: Optional path to a kubeconfig file.
        context: Optional kubeconfig context name.

    Raises:
        ClusterAuthError: If neither in-cluster nor kubeconfig settings work.
    """
    try:
        if kubeconfig or context:
            return k8s_config.new_client_from_config(
                config_file=kubeconfig, context=context
            )
        try:
            k8s_config.load_incluster_config()
        except k8s_config.ConfigException:
            # Not running in-cluster, fall back to the default kubeconfig
            return k8s_config.new_client_from_config()
        return client.ApiClient()
    except (k8s_config.ConfigException, OSError) as exc:
        raise ClusterAuthError(_format_auth_error(str(exc), context)) from exc
