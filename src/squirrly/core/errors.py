"""Failure taxonomy for a profiling run.

Every stage of the pipeline raises one of these exceptions instead of
returning sentinel values. The hierarchy mirrors how a run reacts:

- HardFailure: the target or its control plane is absent, abort with exit 1.
- RelayFailure: the artifact could not be moved intact, skip analysis only.
- AnalysisFailure: the provider step could not complete, warn and carry on.
"""

from __future__ import annotations


class SquirrlyError(RuntimeError):
    """Base class for all squirrly failures."""


class HardFailure(SquirrlyError):
    """A failure that terminates the whole run."""


class ClusterAuthError(HardFailure):
    """Raised when no usable Kubernetes configuration can be loaded."""


class ClusterQueryFailed(HardFailure):
    """Raised when the cluster API answers with an unexpected error."""


class DeploymentNotFound(HardFailure):
    def __init__(self, namespace: str, name: str):
        super().__init__(
            f"FlinkDeployment '{name}' not found in namespace {namespace}"
        )
        self.namespace = namespace
        self.name = name


class CoordinatorNotFound(HardFailure):
    def __init__(self, deployment: str):
        super().__init__(f"JobManager pod not found for {deployment}")
        self.deployment = deployment


class ControlAPIUnreachable(HardFailure):
    def __init__(self, service: str):
        super().__init__(f"REST service {service} not found")
        self.service = service


class ControlPlaneRequestFailed(HardFailure):
    """The REST call could not be made at all (exec or curl failure)."""

    def __init__(self, path: str, detail: str):
        super().__init__(f"Could not reach REST API at {path}: {detail}")
        self.path = path
        self.detail = detail


class NoJobsFound(HardFailure):
    def __init__(self, coordinator: str, response: str = ""):
        msg = f"No running job found via JobManager {coordinator}"
        if response:
            msg = f"{msg}\n   Job list response: {response}"
        super().__init__(msg)
        self.response = response


class VertexNotFound(HardFailure):
    def __init__(self, job_id: str):
        super().__init__(f"Could not extract vertex ID from job details of {job_id}")
        self.job_id = job_id


class NoWorkersFound(HardFailure):
    def __init__(self):
        super().__init__("Could not find TaskManager ID")


class ProfilerTriggerFailed(HardFailure):
    def __init__(self, http_code: int | None, body: str):
        if http_code is None:
            msg = "Could not trigger profiler (no HTTP response)"
        else:
            msg = f"Profiler endpoint returned error status: {http_code}"
        if body:
            msg = f"{msg}\n   Error response: {body}"
        super().__init__(msg)
        self.http_code = http_code
        self.body = body


class NoWorkerPodsFound(HardFailure):
    def __init__(self, deployment: str):
        super().__init__(f"No TaskManager pods found for {deployment}")
        self.deployment = deployment


class RelayFailure(SquirrlyError):
    """The artifact could not be relayed to the coordinator intact."""


class ArtifactUnreadable(RelayFailure):
    def __init__(self, pod: str, path: str):
        super().__init__(f"Could not read artifact size from {pod}:{path}")
        self.pod = pod
        self.path = path


class ArtifactCopyFailed(RelayFailure):
    def __init__(self, detail: str):
        super().__init__(f"Failed to copy artifact content to JobManager pod: {detail}")
        self.detail = detail


class SizeMismatch(RelayFailure):
    def __init__(self, expected: int, actual: int | None):
        super().__init__(f"Artifact size mismatch! Expected: {expected}, Got: {actual}")
        self.expected = expected
        self.actual = actual


class PromptWriteFailed(RelayFailure):
    def __init__(self, detail: str):
        super().__init__(f"Failed to write prompt to JobManager pod: {detail}")
        self.detail = detail


class PayloadBuildFailed(RelayFailure):
    def __init__(self, detail: str, diagnostics: str = ""):
        super().__init__(f"Failed to build API payload with jq: {detail}")
        self.detail = detail
        self.diagnostics = diagnostics


class AnalysisFailure(SquirrlyError):
    """The analysis provider step could not complete."""


class UnsupportedProvider(AnalysisFailure):
    def __init__(self, name: str, supported: list[str]):
        super().__init__(
            f"Unsupported API provider: {name} (supported providers: "
            f"{', '.join(supported)})"
        )
        self.name = name
        self.supported = supported


class ProviderRequestFailed(AnalysisFailure):
    def __init__(self, provider: str, http_code: int | None, body: str):
        if http_code is None:
            msg = f"Could not get HTTP response from {provider} API"
        else:
            msg = f"{provider} API request failed with status {http_code}"
        if body:
            msg = f"{msg}\n   Error response: {body}"
        super().__init__(msg)
        self.provider = provider
        self.http_code = http_code
        self.body = body


class ProfilerJobNotFound(HardFailure):
    def __init__(self, namespace: str, name: str):
        super().__init__(f"Profiler job '{name}' not found in namespace {namespace}")
        self.namespace = namespace
        self.name = name


class ProfilerPodNotFound(HardFailure):
    def __init__(self, job_name: str):
        super().__init__(f"No pod found for profiler job '{job_name}'")
        self.job_name = job_name
