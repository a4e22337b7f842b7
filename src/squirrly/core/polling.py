"""Profiler triggering and artifact polling.

The Flink profiler gives no completion signal other than the HTML file
appearing on a TaskManager's disk. A run is therefore:

1. capture the correlation timestamp and POST the profiling request,
2. sleep for the profiling duration,
3. search every TaskManager pod for matching files under a bounded
   poll policy, first pod with a match wins.
"""

from __future__ import annotations

import shlex
import time
from dataclasses import dataclass
from datetime import datetime
from fnmatch import fnmatchcase
from posixpath import basename
from typing import Callable, Iterable, Sequence, TypeVar

from squirrly.core.controlplane import ControlPlaneClient
from squirrly.core.discovery import ClusterAdapter, worker_pods
from squirrly.core.errors import NoWorkerPodsFound, ProfilerTriggerFailed
from squirrly.core.executor import CommandResult, RemoteExecutor, shell
from squirrly.core.models import (
    Artifact,
    PodTarget,
    ProfilerMode,
    ProfilingRun,
    Target,
)
from squirrly.core.reporting import NullReporter, Reporter

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SECONDS = 5
DEFAULT_POLL_ATTEMPTS = 12
RESPONSE_HINTS = ("path", "file", "artifact")


def _found(result: object) -> bool:
    return result is not None


@dataclass(frozen=True)
class PollPolicy:
    """
    Bounded retry policy: up to `max_attempts` checks, `interval_seconds`
    apart. There is no sleep after the last attempt.
    """

    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_attempts: int = DEFAULT_POLL_ATTEMPTS
    is_match: Callable[[object], bool] = _found

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")

    def run(
        self,
        check: Callable[[int], T | None],
        *,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Callable[[int], None] | None = None,
    ) -> T | None:
        """
        Call `check(attempt)` until it returns a match or attempts run out.

        Args:
            check: Called with the 1-based attempt number.
            sleep: Used to wait between attempts.
            on_retry: Called with the attempt number before each wait.

        Returns:
            The first matching check result, or None.
        """
        for attempt in range(1, self.max_attempts + 1):
            result = check(attempt)
            if self.is_match(result):
                return result
            if attempt < self.max_attempts:
                if on_retry is not None:
                    on_retry(attempt)
                sleep(self.interval_seconds)
        return None


@dataclass(frozen=True)
class ArtifactPattern:
    """
    Filename patterns for one profiling run.

    `strict` only matches files named after the run's date; `loose` accepts
    any file of the same mode as a best-effort fallback.
    """

    mode: ProfilerMode
    date: str

    @classmethod
    def for_run(cls, run: ProfilingRun) -> ArtifactPattern:
        return cls(mode=run.mode, date=run.date)

    @property
    def strict(self) -> str:
        return f"*{self.mode.value}_{self.date}_*.html"

    @property
    def loose(self) -> str:
        return f"*{self.mode.value}*.html"

    def matches(self, path: str) -> bool:
        name = basename(path)
        return fnmatchcase(name, self.strict) or fnmatchcase(name, self.loose)

    def matches_run(self, path: str) -> bool:
        return self.date in basename(path)


def search_command(search_paths: Sequence[str], pattern: ArtifactPattern) -> list[str]:
    """Return the argv that lists candidate artifacts under `search_paths`."""
    dirs = " ".join(shlex.quote(p) for p in search_paths)
    return shell(
        f"find {dirs} -type f \\( -name {shlex.quote(pattern.strict)} "
        f"-o -name {shlex.quote(pattern.loose)} \\) 2>/dev/null; true"
    )


def stat_command(path: str) -> list[str]:
    """Return the argv that prints `<size>|<mtime>` (GNU stat, then BSD stat)."""
    p = shlex.quote(path)
    return shell(
        f"stat -c '%s|%y' {p} 2>/dev/null || stat -f '%z|%Sm' {p} 2>/dev/null "
        "|| echo 'unknown|unknown'"
    )


def parse_stat(result: CommandResult) -> tuple[int | None, str | None]:
    """Parse stat_command output into (size, mtime)."""
    if not result.ok:
        return None, None
    line = result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
    size_raw, _, mtime = line.partition("|")
    try:
        size = int(size_raw)
    except ValueError:
        size = None
    mtime = mtime.strip()
    return size, (mtime if mtime and mtime != "unknown" else None)


def select_candidate(lines: Iterable[str], pattern: ArtifactPattern) -> str | None:
    """
    Pick the artifact to use from one pod's search output.

    Matches are sorted descending; for these timestamp-named files the
    lexicographically greatest name is the most recent one.
    """
    paths = (line.strip() for line in lines)
    matches = sorted((p for p in paths if p and pattern.matches(p)), reverse=True)
    return matches[0] if matches else None


@dataclass(frozen=True)
class TriggerOutcome:
    """Result of triggering the profiler and polling for its artifact."""

    run: ProfilingRun
    artifact: Artifact | None
    attempts: int


class ProfilerTrigger:
    """Start a profiling run and poll TaskManager pods for its artifact."""

    def __init__(
        self,
        cluster: ClusterAdapter,
        executor: RemoteExecutor,
        *,
        policy: PollPolicy | None = None,
        reporter: Reporter | None = None,
        sleep: Callable[[float], None] = time.sleep,
        wait: Callable[[int], None] | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.cluster = cluster
        self.executor = executor
        self.policy = policy or PollPolicy()
        self.reporter = reporter or NullReporter()
        self.sleep = sleep
        self.wait = wait or sleep
        self.now = now

    def start(
        self,
        api: ControlPlaneClient,
        worker_id: str,
        mode: ProfilerMode,
        duration_seconds: int,
    ) -> ProfilingRun:
        """
        POST the profiling request and return the accepted run.

        The correlation timestamp is taken locally, before the request.

        Raises:
            ProfilerTriggerFailed: If the endpoint does not answer 200/202.
        """
        started_at = self.now().replace(microsecond=0)
        run = ProfilingRun(
            mode=mode, duration_seconds=duration_seconds, started_at=started_at
        )
        self.reporter.kv(
            {
                "Type": mode.value,
                "Duration": f"{duration_seconds} seconds",
                "Endpoint": api.profiler_endpoint(worker_id),
                "Profiler run timestamp": run.timestamp,
            }
        )

        reply = api.start_profiling(worker_id, mode, duration_seconds)
        if not reply.accepted:
            raise ProfilerTriggerFailed(reply.code, reply.body)

        self.reporter.success(f"Profiler triggered successfully (HTTP {reply.code})")
        if reply.body:
            self.reporter.raw(f"   Response: {reply.body}")
            if any(hint in reply.body.lower() for hint in RESPONSE_HINTS):
                self.reporter.info(f"Artifact location info in response: {reply.body}")
        return run

    def search_pod(
        self,
        pod: PodTarget,
        pattern: ArtifactPattern,
        search_paths: Sequence[str],
    ) -> str | None:
        """Return the best candidate path on one pod, or None."""
        result = self.executor.execute(pod, search_command(search_paths, pattern))
        if result.transport_failed:
            self.reporter.warn(f"Artifact search on {pod.name} failed: {result.describe()}")
            return None
        return select_candidate(result.stdout.splitlines(), pattern)

    def describe_artifact(
        self, pod: PodTarget, path: str, pattern: ArtifactPattern
    ) -> Artifact:
        size, mtime = parse_stat(self.executor.execute(pod, stat_command(path)))
        return Artifact(
            path=path,
            host_worker=pod,
            size_bytes=size,
            modified_at=mtime,
            matches_run=pattern.matches_run(path),
        )

    def find_artifact(
        self,
        pods: Sequence[PodTarget],
        run: ProfilingRun,
        search_paths: Sequence[str],
    ) -> tuple[Artifact | None, int]:
        """
        Poll `pods` for the run's artifact.

        Within one attempt pods are visited in order and the first pod with
        any match wins; remaining pods are not searched.

        Returns:
            (artifact or None, number of attempts made)
        """
        pattern = ArtifactPattern.for_run(run)
        attempts = 0

        def check(attempt: int) -> Artifact | None:
            nonlocal attempts
            attempts = attempt
            for pod in pods:
                path = self.search_pod(pod, pattern, search_paths)
                if path is not None:
                    return self.describe_artifact(pod, path, pattern)
            return None

        def on_retry(attempt: int) -> None:
            self.reporter.info(
                f"Artifacts not ready yet, retrying in "
                f"{self.policy.interval_seconds:g} seconds... "
                f"(attempt {attempt}/{self.policy.max_attempts})"
            )

        artifact = self.policy.run(check, sleep=self.sleep, on_retry=on_retry)
        return artifact, attempts

    def trigger_and_wait(
        self,
        target: Target,
        api: ControlPlaneClient,
        mode: ProfilerMode,
        duration_seconds: int,
        search_paths: Sequence[str],
    ) -> TriggerOutcome:
        """
        Trigger the profiler on the target's TaskManager and wait for output.

        Raises:
            ProfilerTriggerFailed: If the trigger is rejected.
            NoWorkerPodsFound: If the deployment has no TaskManager pods.
        """
        run = self.start(api, target.worker.id, mode, duration_seconds)

        self.reporter.info(
            f"Waiting {duration_seconds} seconds for profiler to complete..."
        )
        self.wait(duration_seconds)

        self.reporter.info("Checking for profiler artifacts on TaskManager pods...")
        pods = worker_pods(self.cluster, target.deployment)
        if not pods:
            raise NoWorkerPodsFound(target.deployment.name)

        artifact, attempts = self.find_artifact(pods, run, search_paths)
        return TriggerOutcome(run=run, artifact=artifact, attempts=attempts)
