"""Application context management for the CLI."""

from dataclasses import dataclass

from kubernetes import client

from squirrly.core.adapters.kubecluster import KubernetesClusterAdapter, KubernetesExecutor
from squirrly.core.auth import get_api_client


@dataclass
class ClusterOptions:
    """Global cluster access options collected by the app callback."""

    kubeconfig: str | None = None
    context: str | None = None


@dataclass
class ClusterAppContext:
    """Application context holding the Kubernetes client, adapter and executor."""

    options: ClusterOptions
    api_client: client.ApiClient
    cluster: KubernetesClusterAdapter
    executor: KubernetesExecutor


def build_cluster_context(options: ClusterOptions | None) -> ClusterAppContext:
    """Build and return the application context with Kubernetes client and adapters.

    Args:
        options: Kubeconfig path and context, both optional.

    Returns:
        ClusterAppContext: Application context with configured client and adapters.

    Raises:
        ClusterAuthError: If no Kubernetes configuration can be loaded.
    """
    options = options or ClusterOptions()
    api_client = get_api_client(options.kubeconfig, options.context)
    return ClusterAppContext(
        options=options,
        api_client=api_client,
        cluster=KubernetesClusterAdapter(api_client),
        executor=KubernetesExecutor(api_client),
    )
