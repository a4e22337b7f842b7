"""End-to-end profiling run.

Discovery -> trigger & poll -> relay -> analysis, strictly sequential.
Hard failures propagate as HardFailure exceptions; everything after a
successful trigger is best-effort and ends up as a note on the RunSummary.
"""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import Callable

from squirrly.core.analysis import AnalysisClient, get_provider
from squirrly.core.config import ProfilerSettings
from squirrly.core.discovery import ClusterAdapter, Discoverer
from squirrly.core.errors import AnalysisFailure, PayloadBuildFailed, RelayFailure
from squirrly.core.executor import RemoteExecutor
from squirrly.core.models import AnalysisResult, Artifact, RunState, RunSummary, Target
from squirrly.core.polling import PollPolicy, ProfilerTrigger
from squirrly.core.relay import ArtifactRelay
from squirrly.core.reporting import NullReporter, Reporter


def read_prompt_file(path: Path) -> str | None:
    """Return the prompt text, or None if the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


class ProfilerPipeline:
    """Run one profiling session against a FlinkDeployment."""

    def __init__(
        self,
        settings: ProfilerSettings,
        cluster: ClusterAdapter,
        executor: RemoteExecutor,
        *,
        reporter: Reporter | None = None,
        policy: PollPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        wait: Callable[[int], None] | None = None,
        now: Callable[[], datetime] = datetime.now,
        clock: Callable[[], float] = time.time,
        read_prompt: Callable[[Path], str | None] = read_prompt_file,
    ):
        self.settings = settings
        self.cluster = cluster
        self.executor = executor
        self.reporter = reporter or NullReporter()
        self.policy = policy or PollPolicy()
        self.sleep = sleep
        self.wait = wait
        self.now = now
        self.clock = clock
        self.read_prompt = read_prompt

    def run(self) -> RunSummary:
        """
        Execute the whole run and report a summary line.

        Raises:
            HardFailure: If discovery or the profiler trigger fails.
        """
        settings = self.settings
        deployment = settings.deployment
        self.reporter.header(f"Squirrly Profiler - {self.now():%Y-%m-%d %H:%M:%S}")
        self.reporter.kv({"Target FlinkDeployment": deployment.name})
        self.reporter.rule()

        discoverer = Discoverer(
            self.cluster,
            self.executor,
            rest_url=settings.rest_url,
            reporter=self.reporter,
        )
        target = discoverer.discover(deployment)

        self.reporter.info("Triggering Flink Profiler...")
        trigger = ProfilerTrigger(
            self.cluster,
            self.executor,
            policy=self.policy,
            reporter=self.reporter,
            sleep=self.sleep,
            wait=self.wait,
            now=self.now,
        )
        outcome = trigger.trigger_and_wait(
            target,
            discoverer.control_plane(target.coordinator),
            settings.mode,
            settings.duration_seconds,
            settings.search_paths,
        )

        notes: list[str] = []
        analysis = None
        if outcome.artifact is None:
            note = (
                f"No profiler artifacts found after {self.policy.max_attempts} "
                f"attempts ({self.policy.max_attempts} * "
                f"{self.policy.interval_seconds:g}s)"
            )
            self.reporter.warn(note)
            self.reporter.print(
                "   Note: Artifacts may be in a different location or not yet generated"
            )
            notes.append(note)
        else:
            self.report_artifact(outcome.artifact)
            analysis = self.analyze(target, outcome.artifact, notes)

        summary = RunSummary(
            target=target,
            run=outcome.run,
            artifact=outcome.artifact,
            analysis=analysis,
            notes=tuple(notes),
        )
        self.report_summary(summary)
        return summary

    def report_artifact(self, artifact: Artifact) -> None:
        marker = " ⭐ (matches this run)" if artifact.matches_run else ""
        size = artifact.size_bytes if artifact.size_bytes is not None else "unknown"
        self.reporter.success("Found profiler artifact!")
        self.reporter.kv(
            {
                "Path": f"{artifact.path}{marker}",
                "Pod": artifact.host_worker.name,
                "Size": f"{size} bytes",
                "Modified": artifact.modified_at or "unknown",
            }
        )

    def analyze(
        self, target: Target, artifact: Artifact, notes: list[str]
    ) -> AnalysisResult | None:
        """
        Relay the artifact and ask the provider for an analysis.

        Never raises for relay or provider problems; they are reported as
        warnings and appended to `notes`.
        """
        settings = self.settings
        self.reporter.info(f"Submitting artifact to {settings.provider} for analysis...")

        try:
            provider = get_provider(settings.provider)
        except AnalysisFailure as exc:
            return self._skip(str(exc), notes)

        prompt = self.read_prompt(settings.prompt_file)
        if prompt is None:
            return self._skip(f"Prompt file not found: {settings.prompt_file}", notes)

        relay = ArtifactRelay(
            self.executor, target.coordinator, reporter=self.reporter, clock=self.clock
        )
        files = relay.staged_files()
        try:
            payload = relay.relay(artifact, prompt, provider, files)
            if not payload.marker_found:
                notes.append("Payload marker not found")
            client = AnalysisClient(
                self.executor, target.coordinator, provider, reporter=self.reporter
            )
            result = client.submit(files.payload, settings.credential)
            if result is None:
                notes.append("Analysis skipped: no API key configured")
            return result
        except PayloadBuildFailed as exc:
            self._skip(str(exc), notes)
            if exc.diagnostics:
                self.reporter.print("   Diagnostics:")
                self.reporter.raw(exc.diagnostics)
            return None
        except (RelayFailure, AnalysisFailure) as exc:
            return self._skip(str(exc), notes)
        finally:
            relay.cleanup(files)

    def _skip(self, reason: str, notes: list[str]) -> None:
        self.reporter.warn(reason)
        notes.append(reason)
        return None

    def report_summary(self, summary: RunSummary) -> None:
        if summary.analysis is not None:
            self.reporter.header("Analysis Results:")
            self.reporter.raw(summary.analysis.response_text)

        stamp = f"{self.now():%Y-%m-%d %H:%M:%S}"
        self.reporter.rule()
        if summary.state == RunState.COMPLETE:
            self.reporter.success(f"Profiler run completed successfully at {stamp}")
            self.reporter.success("Profiling artifacts have been generated")
            if summary.analysis is None:
                self.reporter.warn("Analysis was skipped or failed")
        else:
            self.reporter.warn(f"Profiler run completed at {stamp}")
            self.reporter.warn(
                "No artifacts were found - profiler may have failed or "
                "artifacts are in a different location"
            )
        self.reporter.rule()
