"""Artifact relay from a TaskManager pod to the JobManager pod.

Only the JobManager pod can reach the analysis provider, so the artifact
has to be moved there first. The bytes travel through this process: the
TaskManager pod prints the file, this process captures the raw bytes and
pipes them unchanged into a writer command on the JobManager pod. The copy
is accepted only when its byte count equals the source's.

Staged files on the JobManager pod are named after a unix timestamp and are
removed by `cleanup` whether or not the request succeeded.
"""

from __future__ import annotations

import shlex
import time
from dataclasses import dataclass
from typing import Callable

from squirrly.core.analysis import ARTIFACT_MARKER, AnalysisProvider
from squirrly.core.errors import (
    ArtifactCopyFailed,
    ArtifactUnreadable,
    PayloadBuildFailed,
    PromptWriteFailed,
    SizeMismatch,
)
from squirrly.core.executor import (
    RemoteExecutor,
    byte_count_command,
    parse_byte_count,
    shell,
)
from squirrly.core.models import Artifact, PodTarget
from squirrly.core.reporting import NullReporter, Reporter

STAGING_DIR = "/tmp"


@dataclass(frozen=True)
class StagedFiles:
    """Paths of the files staged on the JobManager pod for one request."""

    artifact: str
    prompt: str
    payload: str

    @classmethod
    def for_timestamp(cls, stamp: int, directory: str = STAGING_DIR) -> StagedFiles:
        return cls(
            artifact=f"{directory}/profiler_artifact_{stamp}.html",
            prompt=f"{directory}/profiler_prompt_{stamp}.txt",
            payload=f"{directory}/profiler_api_{stamp}.json",
        )

    def paths(self) -> list[str]:
        return [self.artifact, self.prompt, self.payload]


@dataclass(frozen=True)
class RelayedPayload:
    """
    A request payload ready on the JobManager pod.

    Attributes:
        files: The staged files.
        artifact_bytes: Verified size of the relayed artifact.
        payload_bytes: Size of the payload file, None if it could not be read.
        marker_found: Whether the payload visibly embeds the artifact.
    """

    files: StagedFiles
    artifact_bytes: int
    payload_bytes: int | None
    marker_found: bool


def writer_command(dest: str, size: int) -> list[str]:
    """
    Return the argv that stores exactly `size` bytes of stdin at `dest`.

    Reading a fixed count lets the remote side finish without waiting for
    an end-of-file on the exec channel.
    """
    return shell(f"head -c {size} > {shlex.quote(dest)}")


def payload_command(files: StagedFiles, jq_filter: str) -> list[str]:
    """Return the argv that joins prompt, marker and artifact into a payload."""
    marker_line = shlex.quote(f"\\n\\n{ARTIFACT_MARKER}:\\n")
    return shell(
        f"{{ cat {shlex.quote(files.prompt)}; printf {marker_line}; "
        f"cat {shlex.quote(files.artifact)}; }} "
        f"| jq -Rs {shlex.quote(jq_filter)} > {shlex.quote(files.payload)}"
    )


def diagnostics_command(files: StagedFiles) -> list[str]:
    return shell(
        f"ls -lh {shlex.quote(files.prompt)} {shlex.quote(files.artifact)} 2>&1; "
        "command -v jq 2>&1; jq --version 2>&1"
    )


class ArtifactRelay:
    """Move an artifact to the JobManager pod and build the request payload."""

    def __init__(
        self,
        executor: RemoteExecutor,
        coordinator: PodTarget,
        *,
        reporter: Reporter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.executor = executor
        self.coordinator = coordinator
        self.reporter = reporter or NullReporter()
        self.clock = clock

    def staged_files(self) -> StagedFiles:
        return StagedFiles.for_timestamp(int(self.clock()))

    def remote_size(self, pod: PodTarget, path: str) -> int | None:
        return parse_byte_count(self.executor.execute(pod, byte_count_command(path)))

    def copy_artifact(self, artifact: Artifact, dest: str) -> int:
        """
        Copy the artifact to `dest` on the JobManager pod and verify it.

        Returns:
            The verified size in bytes.

        Raises:
            ArtifactUnreadable: If the source size is zero or unreadable.
            ArtifactCopyFailed: If reading or writing the bytes fails.
            SizeMismatch: If the copy's size differs from the source's.
        """
        worker = artifact.host_worker
        expected = self.remote_size(worker, artifact.path)
        if not expected:
            raise ArtifactUnreadable(worker.name, artifact.path)
        self.reporter.info(f"Artifact size: {expected} bytes")

        read = self.executor.execute(worker, ["cat", artifact.path])
        if not read.ok:
            raise ArtifactCopyFailed(f"reading {worker.name}: {read.describe()}")

        data = read.stdout_bytes
        write = self.executor.execute(
            self.coordinator, writer_command(dest, len(data)), stdin=data
        )
        if not write.ok:
            raise ArtifactCopyFailed(f"writing {self.coordinator.name}: {write.describe()}")

        actual = self.remote_size(self.coordinator, dest)
        if actual != expected:
            raise SizeMismatch(expected, actual)

        self.reporter.success(f"Artifact copied successfully ({actual} bytes verified)")
        return actual

    def write_prompt(self, prompt: str, dest: str) -> None:
        data = prompt.encode("utf-8")
        result = self.executor.execute(
            self.coordinator, writer_command(dest, len(data)), stdin=data
        )
        if not result.ok:
            raise PromptWriteFailed(result.describe())

    def build_payload(self, provider: AnalysisProvider, files: StagedFiles) -> None:
        self.reporter.info("Building JSON payload...")
        result = self.executor.execute(
            self.coordinator, payload_command(files, provider.payload_filter())
        )
        if result.ok:
            return
        diag = self.executor.execute(self.coordinator, diagnostics_command(files))
        raise PayloadBuildFailed(result.describe(), diag.stdout.strip())

    def verify_payload(self, files: StagedFiles) -> tuple[int | None, bool]:
        """Return (payload size, marker present). Never raises."""
        size = self.remote_size(self.coordinator, files.payload)
        grep = self.executor.execute(
            self.coordinator,
            ["grep", "-q", ARTIFACT_MARKER, files.payload],
        )
        found = grep.ok
        if found:
            self.reporter.success(
                f"JSON payload verified ({size} bytes, contains artifact marker)"
            )
        else:
            self.reporter.warn(
                "JSON payload may not contain artifact content (marker not found)"
            )
        return size, found

    def relay(
        self,
        artifact: Artifact,
        prompt: str,
        provider: AnalysisProvider,
        files: StagedFiles,
    ) -> RelayedPayload:
        """
        Stage artifact, prompt and request payload on the JobManager pod.

        Raises:
            RelayFailure: On the first step that fails. A missing marker is
                          only reported, not raised.
        """
        artifact_bytes = self.copy_artifact(artifact, files.artifact)
        self.write_prompt(prompt, files.prompt)
        self.build_payload(provider, files)
        payload_bytes, marker_found = self.verify_payload(files)
        return RelayedPayload(
            files=files,
            artifact_bytes=artifact_bytes,
            payload_bytes=payload_bytes,
            marker_found=marker_found,
        )

    def cleanup(self, files: StagedFiles) -> None:
        result = self.executor.execute(
            self.coordinator, ["rm", "-f", *files.paths()]
        )
        if not result.ok:
            self.reporter.warn(f"Could not remove staged files: {result.describe()}")
