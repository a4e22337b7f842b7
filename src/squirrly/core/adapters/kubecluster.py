from __future__ import annotations

import time
from typing import Callable, Iterator, Mapping, Sequence

from kubernetes import client, watch
from kubernetes.client.rest import ApiException
from kubernetes.stream import stream
from urllib3.exceptions import HTTPError
from websocket import WebSocketException

from squirrly.core.errors import ClusterQueryFailed
from squirrly.core.executor import CommandResult
from squirrly.core.joblogs import JobStatus
from squirrly.core.models import Deployment, PodTarget

# Raised by the HTTP layer when the API server cannot be reached at all.
TRANSPORT_ERRORS = (HTTPError, OSError)


def label_selector(labels: Mapping[str, str]) -> str:
    """Render labels as an equality-based selector (`a=b,c=d`)."""
    return ",".join(f"{k}={v}" for k, v in labels.items())


def _query_failed(what: str, exc: Exception) -> ClusterQueryFailed:
    if isinstance(exc, ApiException):
        return ClusterQueryFailed(f"Could not {what}: {exc.status} {exc.reason}")
    return ClusterQueryFailed(f"Could not {what}: Kubernetes API unreachable ({exc})")


class KubernetesClusterAdapter:
    """Adapter around the Kubernetes API for discovery and Job log queries."""

    FLINK_GROUP = "flink.apache.org"
    FLINK_VERSION = "v1beta1"
    FLINK_PLURAL = "flinkdeployments"
    _CONTAINER_WAIT_SECONDS = 2
    _CONTAINER_START_TIMEOUT_SECONDS = 300

    def __init__(
        self,
        api_client: client.ApiClient,
        *,
        container_start_timeout: float = _CONTAINER_START_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Create a cluster adapter bound to one API client."""
        self.core = client.CoreV1Api(api_client)
        self.batch = client.BatchV1Api(api_client)
        self.custom = client.CustomObjectsApi(api_client)
        self.container_start_timeout = container_start_timeout
        self.sleep = sleep
        self.clock = clock

    def _exists(self, what: str, fn, **kwargs) -> bool:
        """Return True if `fn(**kwargs)` finds the object, False on 404."""
        try:
            fn(**kwargs)
        except ApiException as exc:
            if exc.status == 404:
                return False
            raise _query_failed(f"read {what}", exc) from exc
        except TRANSPORT_ERRORS as exc:
            raise _query_failed(f"read {what}", exc) from exc
        return True

    def deployment_exists(self, deployment: Deployment) -> bool:
        """Return True if the FlinkDeployment custom object exists."""
        return self._exists(
            f"FlinkDeployment {deployment.name}",
            self.custom.get_namespaced_custom_object,
            group=self.FLINK_GROUP,
            version=self.FLINK_VERSION,
            namespace=deployment.namespace,
            plural=self.FLINK_PLURAL,
            name=deployment.name,
        )

    def service_exists(self, namespace: str, name: str) -> bool:
        """Return True if the service exists."""
        return self._exists(
            f"service {name}",
            self.core.read_namespaced_service,
            name=name,
            namespace=namespace,
        )

    def list_pods(self, namespace: str, labels: Mapping[str, str]) -> list[str]:
        """Return pod names matching all labels, in API order."""
        selector = label_selector(labels)
        try:
            pods = self.core.list_namespaced_pod(
                namespace=namespace, label_selector=selector
            )
        except (ApiException, *TRANSPORT_ERRORS) as exc:
            raise _query_failed(f"list pods ({selector})", exc) from exc

        names: list[str] = []
        for pod in pods.items:
            name = getattr(pod.metadata, "name", None)
            if name:
                names.append(name)
        return names

    def get_job_status(self, namespace: str, name: str) -> JobStatus | None:
        """Return the status of a batch Job, or None if it does not exist."""
        try:
            job = self.batch.read_namespaced_job_status(name=name, namespace=namespace)
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise _query_failed(f"read job {name}", exc) from exc
        except TRANSPORT_ERRORS as exc:
            raise _query_failed(f"read job {name}", exc) from exc

        status = job.status
        if not status:
            return JobStatus.UNKNOWN

        for cond in status.conditions or []:
            if cond.status != "True":
                continue
            if cond.type == "Complete":
                return JobStatus.SUCCEEDED
            if cond.type == "Failed":
                return JobStatus.FAILED

        if status.active:
            return JobStatus.RUNNING
        return JobStatus.PENDING

    def list_job_pods(self, namespace: str, job_name: str) -> list[str]:
        """Return names of pods created by a batch Job."""
        return self.list_pods(namespace, {"job-name": job_name})

    def read_pod_log(self, namespace: str, pod: str) -> str:
        """Return the complete log of a pod."""
        try:
            return self.core.read_namespaced_pod_log(name=pod, namespace=namespace)
        except (ApiException, *TRANSPORT_ERRORS) as exc:
            raise _query_failed(f"read log of pod {pod}", exc) from exc

    def _wait_for_container(self, namespace: str, pod: str) -> None:
        """
        Block while the pod is still Pending; logs are unavailable until then.

        Raises:
            ClusterQueryFailed: If the pod is still Pending after
                                `container_start_timeout` seconds.
        """
        deadline = self.clock() + self.container_start_timeout
        while True:
            try:
                current = self.core.read_namespaced_pod(name=pod, namespace=namespace)
            except (ApiException, *TRANSPORT_ERRORS) as exc:
                raise _query_failed(f"read pod {pod}", exc) from exc
            phase = getattr(current.status, "phase", None)
            if phase and phase != "Pending":
                return
            if self.clock() >= deadline:
                raise ClusterQueryFailed(
                    f"Pod {pod} still Pending after "
                    f"{self.container_start_timeout:g}s, giving up on its log"
                )
            self.sleep(self._CONTAINER_WAIT_SECONDS)

    def follow_pod_log(self, namespace: str, pod: str) -> Iterator[str]:
        """Yield log lines as the pod writes them, until the container exits."""
        self._wait_for_container(namespace, pod)
        w = watch.Watch()
        try:
            yield from w.stream(
                self.core.read_namespaced_pod_log, name=pod, namespace=namespace
            )
        except (ApiException, *TRANSPORT_ERRORS) as exc:
            raise _query_failed(f"follow log of pod {pod}", exc) from exc
        finally:
            w.stop()


class KubernetesExecutor:
    """
    RemoteExecutor implementation on top of the pod exec API.

    The channel runs in binary mode: stdout is kept byte for byte in
    `CommandResult.raw_stdout` and only decoded once, as a whole, for the
    text view.
    """

    _DEFAULT_TIMEOUT_SECONDS = 300

    def __init__(
        self,
        api_client: client.ApiClient,
        *,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ):
        """Create an executor; `timeout_seconds` bounds each command."""
        self.core = client.CoreV1Api(api_client)
        self.timeout_seconds = timeout_seconds

    def execute(
        self,
        target: PodTarget,
        command: Sequence[str],
        stdin: bytes | None = None,
    ) -> CommandResult:
        """Run `command` in the target pod and capture its output."""
        kwargs = {}
        if target.container:
            kwargs["container"] = target.container
        try:
            resp = stream(
                self.core.connect_get_namespaced_pod_exec,
                target.name,
                target.namespace,
                command=list(command),
                stderr=True,
                stdin=stdin is not None,
                stdout=True,
                tty=False,
                binary=True,
                _preload_content=False,
                **kwargs,
            )
        except ApiException as exc:
            return CommandResult.transport_failure(
                f"exec in {target.name} failed: {exc.status} {exc.reason}"
            )
        except (WebSocketException, *TRANSPORT_ERRORS) as exc:
            return CommandResult.transport_failure(f"exec in {target.name} failed: {exc}")

        out = bytearray()
        err = bytearray()

        def drain() -> None:
            if resp.peek_stdout():
                out.extend(resp.read_stdout())
            if resp.peek_stderr():
                err.extend(resp.read_stderr())

        def result(**fields) -> CommandResult:
            raw = bytes(out)
            return CommandResult(
                stdout=raw.decode("utf-8", "replace"),
                stderr=bytes(err).decode("utf-8", "replace"),
                raw_stdout=raw,
                **fields,
            )

        deadline = time.monotonic() + self.timeout_seconds
        try:
            if stdin is not None:
                resp.write_stdin(stdin)
            while resp.is_open():
                resp.update(timeout=1)
                drain()
                if time.monotonic() > deadline:
                    return result(
                        transport_error=(
                            f"command in {target.name} timed out after "
                            f"{self.timeout_seconds:g}s"
                        )
                    )
            drain()
            exit_code = resp.returncode
        except (WebSocketException, OSError) as exc:
            return result(transport_error=f"exec channel to {target.name} broke: {exc}")
        except (TypeError, KeyError, IndexError, ValueError):
            # the error channel carried no parsable exit status
            return result(transport_error=f"no exit status received from {target.name}")
        finally:
            resp.close()

        return result(exit_code=exit_code)
