"""Log collection for the in-cluster profiler Job.

When the profiler itself runs as a Kubernetes Job, its pod log is the run
report. Streaming callers follow the log live; callers persisting to a file
wait until the Job is terminal and then read the complete log, since a
partial capture would be incomplete.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Iterator, Protocol

from squirrly.core.errors import ProfilerJobNotFound, ProfilerPodNotFound


class JobStatus(str, Enum):
    """
    Lifecycle of a Kubernetes Job as seen by squirrly.

    Values:
        PENDING: Created, no pod running yet.
        RUNNING: At least one pod is active.
        SUCCEEDED: Completed successfully.
        FAILED: Failed (backoff limit reached or deadline exceeded).
        UNKNOWN: Status could not be determined.
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED})


class JobLogsAdapter(Protocol):
    """Interface for reading Kubernetes Job state and pod logs."""

    def get_job_status(self, namespace: str, name: str) -> JobStatus | None:
        """Return the Job's status, or None if the Job does not exist."""
        ...

    def list_job_pods(self, namespace: str, job_name: str) -> list[str]:
        """Return names of pods created by the Job, in API order."""
        ...

    def read_pod_log(self, namespace: str, pod: str) -> str:
        """Return the complete log of a pod."""
        ...

    def follow_pod_log(self, namespace: str, pod: str) -> Iterator[str]:
        """Yield log lines as the pod produces them, until it exits."""
        ...


def require_job(adapter: JobLogsAdapter, namespace: str, name: str) -> JobStatus:
    status = adapter.get_job_status(namespace, name)
    if status is None:
        raise ProfilerJobNotFound(namespace, name)
    return status


def wait_for_job(
    adapter: JobLogsAdapter,
    namespace: str,
    name: str,
    poll_interval: float = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> JobStatus:
    """
    Block until the Job reaches a terminal state.

    Raises:
        ProfilerJobNotFound: If the Job does not exist (or disappears).
    """
    while True:
        status = require_job(adapter, namespace, name)
        if status in TERMINAL_STATUSES:
            return status
        sleep(poll_interval)


def wait_for_job_pod(
    adapter: JobLogsAdapter,
    namespace: str,
    job_name: str,
    poll_interval: float = 2,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Return the Job's first pod, waiting while the Job is still starting.

    Raises:
        ProfilerPodNotFound: If the Job is terminal and has no pod.
    """
    while True:
        pods = adapter.list_job_pods(namespace, job_name)
        if pods:
            return pods[0]
        if require_job(adapter, namespace, job_name) in TERMINAL_STATUSES:
            raise ProfilerPodNotFound(job_name)
        sleep(poll_interval)


def collect_job_log(
    adapter: JobLogsAdapter,
    namespace: str,
    job_name: str,
    poll_interval: float = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[JobStatus, str]:
    """Wait for the Job to finish and return (final status, complete log)."""
    status = wait_for_job(adapter, namespace, job_name, poll_interval, sleep)
    pods = adapter.list_job_pods(namespace, job_name)
    if not pods:
        raise ProfilerPodNotFound(job_name)
    return status, adapter.read_pod_log(namespace, pods[0])
