import json

import pytest

from squirrly.core.discovery import Discoverer, pick_first, worker_pods
from squirrly.core.errors import (
    ControlAPIUnreachable,
    CoordinatorNotFound,
    DeploymentNotFound,
)
from squirrly.core.executor import CommandResult
from squirrly.core.models import Deployment
from squirrly.core.reporting import NullReporter

DEPLOYMENT = Deployment(namespace="squirrly", name="sample-job")
REST = "http://sample-job-rest:8081"


class _RecordingReporter(NullReporter):
    def __init__(self):
        self.warnings: list[str] = []

    def warn(self, msg: str) -> None:
        self.warnings.append(msg)


class _ClusterStub:
    def __init__(self, *, exists=True, pods=None, service=True):
        self.exists = exists
        self.pods = pods or {}
        self.service = service
        self.calls: list[str] = []

    def deployment_exists(self, deployment):
        self.calls.append("deployment_exists")
        return self.exists

    def list_pods(self, namespace, labels):
        self.calls.append(f"list_pods:{labels['component']}")
        return list(self.pods.get(labels["component"], []))

    def service_exists(self, namespace, name):
        self.calls.append(f"service_exists:{name}")
        return self.service


class _RestExecutorStub:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def execute(self, target, command, stdin=None):
        self.calls.append(list(command))
        url = command[-1]
        for suffix, payload in self.routes.items():
            if url.endswith(suffix):
                return CommandResult(
                    stdout=f"{json.dumps(payload)}\nHTTP_CODE:200", exit_code=0
                )
        return CommandResult(stdout="\nHTTP_CODE:404", exit_code=0)


def _routes(jobs=("job-1",), workers=("tm-1",)):
    return {
        "/jobs": {"jobs": [{"id": j, "status": "RUNNING"} for j in jobs]},
        f"/jobs/{jobs[0]}": {"vertices": [{"id": "v-1"}, {"id": "v-2"}]},
        "/taskmanagers": {"taskmanagers": [{"id": w} for w in workers]},
    }


def test_missing_deployment_stops_before_any_other_query():
    cluster = _ClusterStub(exists=False)
    executor = _RestExecutorStub({})

    with pytest.raises(DeploymentNotFound, match="sample-job"):
        Discoverer(cluster, executor, rest_url=REST).discover(DEPLOYMENT)

    assert cluster.calls == ["deployment_exists"]
    assert executor.calls == []


def test_missing_jobmanager_pod_is_a_hard_failure():
    cluster = _ClusterStub(pods={"jobmanager": []})

    with pytest.raises(CoordinatorNotFound):
        Discoverer(cluster, _RestExecutorStub({}), rest_url=REST).discover(DEPLOYMENT)


def test_missing_rest_service_is_a_hard_failure():
    cluster = _ClusterStub(pods={"jobmanager": ["jm-0"]}, service=False)
    executor = _RestExecutorStub({})

    with pytest.raises(ControlAPIUnreachable, match="sample-job-rest"):
        Discoverer(cluster, executor, rest_url=REST).discover(DEPLOYMENT)

    assert executor.calls == []


def test_discover_resolves_full_target():
    cluster = _ClusterStub(pods={"jobmanager": ["jm-0"]})
    executor = _RestExecutorStub(_routes())

    target = Discoverer(cluster, executor, rest_url=REST).discover(DEPLOYMENT)

    assert target.coordinator.name == "jm-0"
    assert target.job.id == "job-1"
    assert target.vertex.id == "v-1"
    assert target.worker.id == "tm-1"
    assert target.rest_url == REST
    assert all(cmd[0] == "curl" for cmd in executor.calls)


def test_discover_picks_first_job_and_warns_when_ambiguous():
    cluster = _ClusterStub(pods={"jobmanager": ["jm-0"]})
    executor = _RestExecutorStub(_routes(jobs=("job-b", "job-a")))
    reporter = _RecordingReporter()

    target = Discoverer(cluster, executor, rest_url=REST, reporter=reporter).discover(
        DEPLOYMENT
    )

    assert target.job.id == "job-b"
    assert any("job-b" in w for w in reporter.warnings)


def test_pick_first_is_silent_for_single_candidate():
    reporter = _RecordingReporter()

    assert pick_first(["only"], what="pod", label=str, reporter=reporter) == "only"
    assert reporter.warnings == []


def test_worker_pods_keeps_api_order():
    cluster = _ClusterStub(pods={"taskmanager": ["tm-b", "tm-a"]})

    pods = worker_pods(cluster, DEPLOYMENT)

    assert [p.name for p in pods] == ["tm-b", "tm-a"]
    assert all(p.namespace == "squirrly" for p in pods)
