"""Run configuration.

Settings come from CLI options, each of which can also be supplied through
an environment variable so the same image can be driven by a Kubernetes Job
spec. This module holds the defaults, the environment variable names and
the validation rules; it does not read the environment itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from squirrly.core.models import Deployment, ProfilerMode

NAMESPACE_ENV = "NAMESPACE"
DEPLOYMENT_ENV = "FLINK_DEPLOYMENT_NAME"
MODE_ENV = "PROFILER_TYPE"
DURATION_ENV = "PROFILER_DURATION"
SEARCH_PATHS_ENV = "PROFILER_OUTPUT_DIR"
PROVIDER_ENV = "API_PROVIDER"
CREDENTIAL_ENV = "OPENAI_API_KEY"
PROMPT_FILE_ENV = "ANALYSIS_PROMPT_FILE"
PROFILER_JOB_ENV = "PROFILER_JOB_NAME"

DEFAULT_NAMESPACE = "squirrly"
DEFAULT_DEPLOYMENT = "sample-job"
DEFAULT_MODE = ProfilerMode.ITIMER.value
DEFAULT_DURATION_SECONDS = 60
DEFAULT_SEARCH_PATHS = "/tmp /opt/flink/log /opt/flink"
DEFAULT_PROVIDER = "openai"
DEFAULT_PROMPT_FILE = "/scripts/prompt.md"
DEFAULT_PROFILER_JOB = "squirrly-profiler"
DEFAULT_REST_PORT = 8081


@dataclass(frozen=True)
class ProfilerSettings:
    """
    Validated configuration for one profiling run.

    Attributes:
        deployment: FlinkDeployment to profile.
        mode: Profiler sampling mode.
        duration_seconds: Profiling duration, strictly positive.
        search_paths: Directories searched on TaskManager pods for artifacts.
        provider: Analysis provider name (validated later, at analysis time).
        credential: Provider API key; None disables analysis.
        prompt_file: Local file holding the analysis prompt.
        rest_port: Port of the Flink REST service.
    """

    deployment: Deployment
    mode: ProfilerMode
    duration_seconds: int
    search_paths: tuple[str, ...]
    provider: str = DEFAULT_PROVIDER
    credential: str | None = None
    prompt_file: Path = Path(DEFAULT_PROMPT_FILE)
    rest_port: int = DEFAULT_REST_PORT

    @property
    def rest_url(self) -> str:
        return f"http://{self.deployment.rest_service}:{self.rest_port}"


def parse_mode(raw: str) -> ProfilerMode:
    """Parse a profiler mode name (case-insensitive)."""
    value = (raw or "").strip().upper()
    try:
        return ProfilerMode(value)
    except ValueError as exc:
        allowed = "|".join(m.value for m in ProfilerMode)
        raise ValueError(f"Invalid profiler mode '{raw}' (expected {allowed})") from exc


def parse_search_paths(raw: str) -> tuple[str, ...]:
    """Split a whitespace-delimited list of directories."""
    paths = tuple(p for p in (raw or "").split() if p)
    if not paths:
        raise ValueError("At least one artifact search path is required")
    return paths


def build_settings(
    *,
    namespace: str,
    deployment: str,
    mode: str,
    duration: int,
    search_paths: str,
    provider: str = DEFAULT_PROVIDER,
    credential: str | None = None,
    prompt_file: str | Path = DEFAULT_PROMPT_FILE,
    rest_port: int = DEFAULT_REST_PORT,
) -> ProfilerSettings:
    """
    Validate raw option values and build ProfilerSettings.

    Raises:
        ValueError: If any value is out of range or malformed.
    """
    if not namespace or not namespace.strip():
        raise ValueError("Namespace must not be empty")
    if not deployment or not deployment.strip():
        raise ValueError("Deployment name must not be empty")
    if duration < 1:
        raise ValueError(f"Profiler duration must be >= 1 second (got {duration})")

    return ProfilerSettings(
        deployment=Deployment(namespace=namespace.strip(), name=deployment.strip()),
        mode=parse_mode(mode),
        duration_seconds=duration,
        search_paths=parse_search_paths(search_paths),
        provider=(provider or DEFAULT_PROVIDER).strip().lower(),
        credential=credential or None,
        prompt_file=Path(prompt_file),
        rest_port=rest_port,
    )
