"""Core domain models for a profiling run.

These models describe the Flink deployment being profiled, the profiling
run itself and what it produces. They are immutable and intentionally free
of Kubernetes client types and CLI concerns.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

ARTIFACT_TIMESTAMP_FORMAT = "%Y-%m-%d_%H_%M_%S"


class ProfilerMode(str, Enum):
    """
    Sampling modes supported by the Flink profiler endpoint.

    Values:
        CPU: CPU cycles via perf events.
        ITIMER: CPU time via interval timers (works without perf access).
        ALLOC: Heap allocation sampling.
    """

    CPU = "CPU"
    ITIMER = "ITIMER"
    ALLOC = "ALLOC"


@dataclass(frozen=True)
class Deployment:
    """
    A named FlinkDeployment.

    Attributes:
        namespace: Kubernetes namespace the deployment lives in.
        name: FlinkDeployment name, also used as the `app` pod label.
    """

    namespace: str
    name: str

    def pod_labels(self, component: str) -> dict[str, str]:
        """Return the label selector for one component of this deployment."""
        return {"app": self.name, "component": component}

    @property
    def rest_service(self) -> str:
        return f"{self.name}-rest"


@dataclass(frozen=True)
class PodTarget:
    """A pod that commands can be executed in."""

    namespace: str
    name: str
    container: str | None = None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Job:
    """A Flink job as listed by the REST API."""

    id: str
    status: str | None = None


@dataclass(frozen=True)
class Vertex:
    """A stage of a Flink job's execution graph."""

    id: str
    name: str | None = None


@dataclass(frozen=True)
class Worker:
    """A TaskManager as listed by the REST API."""

    id: str


@dataclass(frozen=True)
class Target:
    """Everything discovery resolved for one deployment."""

    deployment: Deployment
    coordinator: PodTarget
    rest_url: str
    job: Job
    vertex: Vertex
    worker: Worker


@dataclass(frozen=True)
class ProfilingRun:
    """
    A profiling run accepted by the control plane.

    Attributes:
        mode: Profiler sampling mode.
        duration_seconds: How long the profiler samples for.
        started_at: Local time captured just before the trigger request,
                    truncated to seconds. Used to correlate artifacts.
    """

    mode: ProfilerMode
    duration_seconds: int
    started_at: datetime

    @property
    def timestamp(self) -> str:
        return self.started_at.strftime(ARTIFACT_TIMESTAMP_FORMAT)

    @property
    def date(self) -> str:
        return self.started_at.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class Artifact:
    """
    A profiler output file found on a TaskManager pod.

    Attributes:
        path: Absolute path of the file inside the pod.
        host_worker: Pod that holds the file.
        size_bytes: Size reported by stat, None if stat failed.
        modified_at: Modification time as reported by stat.
        matches_run: True when the run's date is literally in the filename.
    """

    path: str
    host_worker: PodTarget
    size_bytes: int | None = None
    modified_at: str | None = None
    matches_run: bool = False


@dataclass(frozen=True)
class AnalysisResult:
    """Answer returned by an analysis provider."""

    provider_name: str
    request_payload: str
    response_text: str


class RunState(str, Enum):
    """Overall outcome of a profiling run that did not hard-fail."""

    COMPLETE = "COMPLETE"
    DEGRADED = "DEGRADED"


@dataclass(frozen=True)
class RunSummary:
    """
    Final report of a profiling run.

    Attributes:
        target: What discovery resolved.
        run: The accepted profiling run.
        artifact: The artifact found, or None when polling gave up.
        analysis: Provider answer, or None when analysis was skipped or failed.
        notes: Warnings collected along the way, in order.
    """

    target: Target
    run: ProfilingRun
    artifact: Artifact | None = None
    analysis: AnalysisResult | None = None
    notes: tuple[str, ...] = ()

    @property
    def state(self) -> RunState:
        if self.artifact is None:
            return RunState.DEGRADED
        return RunState.COMPLETE
