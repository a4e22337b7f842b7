"""Target discovery for a FlinkDeployment.

Discovery walks from a deployment name to the concrete pieces a profiling
run needs: JobManager pod, REST service, running job, one of its vertices
and a TaskManager. Each step is a hard stop; an absent target is reported
immediately and never retried.

Selection policy: whenever a listing returns several candidates, the first
one in API order is used. This assumes single-job, single-TaskManager
topologies; when more than one candidate exists a warning names the one
that was picked.
"""

from __future__ import annotations

from typing import Callable, Mapping, Protocol, Sequence, TypeVar

from squirrly.core.controlplane import ControlPlaneClient
from squirrly.core.errors import (
    ControlAPIUnreachable,
    CoordinatorNotFound,
    DeploymentNotFound,
)
from squirrly.core.executor import RemoteExecutor
from squirrly.core.models import Deployment, PodTarget, Target
from squirrly.core.reporting import NullReporter, Reporter

COORDINATOR_COMPONENT = "jobmanager"
WORKER_COMPONENT = "taskmanager"

T = TypeVar("T")


class ClusterAdapter(Protocol):
    """Interface for the cluster queries discovery depends on."""

    def deployment_exists(self, deployment: Deployment) -> bool:
        """Return True if the FlinkDeployment exists."""
        ...

    def list_pods(self, namespace: str, labels: Mapping[str, str]) -> list[str]:
        """Return pod names matching all labels, in API order."""
        ...

    def service_exists(self, namespace: str, name: str) -> bool:
        """Return True if the service exists."""
        ...


def pick_first(
    items: Sequence[T],
    *,
    what: str,
    label: Callable[[T], str],
    reporter: Reporter,
) -> T:
    """
    Apply the first-element selection policy to a non-empty listing.

    Warns when the choice is ambiguous instead of silently generalizing.
    """
    chosen = items[0]
    if len(items) > 1:
        reporter.warn(
            f"{len(items)} {what}s found, using the first one: {label(chosen)}"
        )
    return chosen


def worker_pods(cluster: ClusterAdapter, deployment: Deployment) -> list[PodTarget]:
    """Return TaskManager pods of a deployment, in API order."""
    names = cluster.list_pods(
        deployment.namespace, deployment.pod_labels(WORKER_COMPONENT)
    )
    return [PodTarget(namespace=deployment.namespace, name=n) for n in names]


class Discoverer:
    """Resolve a deployment to a Target, failing hard on the first gap."""

    def __init__(
        self,
        cluster: ClusterAdapter,
        executor: RemoteExecutor,
        *,
        rest_url: str,
        reporter: Reporter | None = None,
    ):
        self.cluster = cluster
        self.executor = executor
        self.rest_url = rest_url
        self.reporter = reporter or NullReporter()

    def verify_deployment(self, deployment: Deployment) -> None:
        if not self.cluster.deployment_exists(deployment):
            raise DeploymentNotFound(deployment.namespace, deployment.name)

    def resolve_coordinator(self, deployment: Deployment) -> PodTarget:
        names = self.cluster.list_pods(
            deployment.namespace, deployment.pod_labels(COORDINATOR_COMPONENT)
        )
        if not names:
            raise CoordinatorNotFound(deployment.name)
        name = pick_first(
            names, what="JobManager pod", label=str, reporter=self.reporter
        )
        return PodTarget(namespace=deployment.namespace, name=name)

    def verify_control_api(self, deployment: Deployment) -> None:
        if not self.cluster.service_exists(
            deployment.namespace, deployment.rest_service
        ):
            raise ControlAPIUnreachable(deployment.rest_service)

    def control_plane(self, coordinator: PodTarget) -> ControlPlaneClient:
        return ControlPlaneClient(self.executor, coordinator, self.rest_url)

    def discover(self, deployment: Deployment) -> Target:
        """
        Run every discovery step in order.

        Raises:
            DeploymentNotFound, CoordinatorNotFound, ControlAPIUnreachable,
            ControlPlaneRequestFailed, NoJobsFound, VertexNotFound,
            NoWorkersFound: on the first step that finds nothing.
        """
        self.verify_deployment(deployment)

        coordinator = self.resolve_coordinator(deployment)
        self.reporter.success(f"JobManager Pod: {coordinator.name}")

        self.verify_control_api(deployment)

        api = self.control_plane(coordinator)

        self.reporter.info("Fetching job information...")
        job = pick_first(
            api.list_jobs(), what="job", label=lambda j: j.id, reporter=self.reporter
        )
        self.reporter.success(f"Found running job: {job.id}")

        self.reporter.info("Fetching job details to find vertices...")
        # Jobs normally have several vertices; any one confirms the graph exists.
        vertex = api.get_job_detail(job.id)[0]
        self.reporter.success(f"Vertex ID: {vertex.id}")

        worker = pick_first(
            api.list_workers(),
            what="TaskManager",
            label=lambda w: w.id,
            reporter=self.reporter,
        )
        self.reporter.success(f"TaskManager ID: {worker.id}")

        return Target(
            deployment=deployment,
            coordinator=coordinator,
            rest_url=self.rest_url,
            job=job,
            vertex=vertex,
            worker=worker,
        )
