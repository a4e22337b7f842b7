import json

import pytest

from squirrly.core.controlplane import (
    ControlPlaneClient,
    parse_http_reply,
    profiler_request_body,
)
from squirrly.core.errors import (
    ControlPlaneRequestFailed,
    NoJobsFound,
    NoWorkersFound,
    VertexNotFound,
)
from squirrly.core.executor import CommandResult
from squirrly.core.models import PodTarget, ProfilerMode

JM = PodTarget(namespace="squirrly", name="sample-job-jm-0")
REST = "http://sample-job-rest:8081"


class _CurlExecutorStub:
    """Answers curl commands by URL suffix and records every call."""

    def __init__(self, routes: dict[str, tuple[int, str]], transport_error=None):
        self.routes = routes
        self.transport_error = transport_error
        self.calls: list[list[str]] = []

    def execute(self, target, command, stdin=None):
        self.calls.append(list(command))
        if self.transport_error:
            return CommandResult.transport_failure(self.transport_error)
        url = command[-1]
        for suffix, (code, body) in self.routes.items():
            if url.endswith(suffix):
                return CommandResult(stdout=f"{body}\nHTTP_CODE:{code}", exit_code=0)
        return CommandResult(stdout="\nHTTP_CODE:404", exit_code=0)


def _client(routes, **kwargs) -> tuple[ControlPlaneClient, _CurlExecutorStub]:
    executor = _CurlExecutorStub(routes, **kwargs)
    return ControlPlaneClient(executor, JM, REST), executor


def test_profiler_request_body_echoes_mode_and_duration():
    body = json.loads(profiler_request_body(ProfilerMode.ITIMER, 60))

    assert body == {"mode": "ITIMER", "duration": 60}


def test_parse_http_reply_splits_code_from_body():
    reply = parse_http_reply('{"status": "ok"}\nHTTP_CODE:202')

    assert reply.code == 202
    assert reply.body == '{"status": "ok"}'
    assert reply.accepted


def test_parse_http_reply_treats_000_as_missing_response():
    reply = parse_http_reply("HTTP_CODE:000")

    assert reply.code is None
    assert not reply.accepted


def test_list_jobs_returns_jobs_in_response_order():
    body = json.dumps({"jobs": [{"id": "b1", "status": "RUNNING"}, {"id": "a2"}]})
    api, _ = _client({"/jobs": (200, body)})

    jobs = api.list_jobs()

    assert [j.id for j in jobs] == ["b1", "a2"]
    assert jobs[0].status == "RUNNING"


@pytest.mark.parametrize("body", ['{"jobs": []}', "", "not json", '{"jobs": [{}]}'])
def test_list_jobs_raises_when_no_job_id(body):
    api, _ = _client({"/jobs": (200, body)})

    with pytest.raises(NoJobsFound):
        api.list_jobs()


def test_list_jobs_transport_failure_is_not_reported_as_no_jobs():
    api, _ = _client({}, transport_error="exec in sample-job-jm-0 failed: 403 Forbidden")

    with pytest.raises(ControlPlaneRequestFailed, match="403"):
        api.list_jobs()


def test_get_job_detail_raises_without_vertices():
    api, _ = _client({"/jobs/j1": (200, '{"jid": "j1", "vertices": []}')})

    with pytest.raises(VertexNotFound, match="j1"):
        api.get_job_detail("j1")


def test_get_job_detail_returns_vertices():
    body = json.dumps({"vertices": [{"id": "v1", "name": "Source"}, {"id": "v2"}]})
    api, _ = _client({"/jobs/j1": (200, body)})

    assert [v.id for v in api.get_job_detail("j1")] == ["v1", "v2"]


def test_list_workers_raises_when_empty():
    api, _ = _client({"/taskmanagers": (200, '{"taskmanagers": []}')})

    with pytest.raises(NoWorkersFound):
        api.list_workers()


def test_start_profiling_posts_json_body_to_worker_endpoint():
    api, executor = _client({"/taskmanagers/tm-1/profiler": (200, "{}")})

    reply = api.start_profiling("tm-1", ProfilerMode.CPU, 30)

    assert reply.accepted
    cmd = executor.calls[0]
    assert cmd[0] == "curl"
    assert "POST" in cmd
    assert json.loads(cmd[cmd.index("-d") + 1]) == {"mode": "CPU", "duration": 30}
    assert cmd[-1] == f"{REST}/taskmanagers/tm-1/profiler"


def test_start_profiling_rejection_keeps_code_and_body():
    api, _ = _client({"/profiler": (500, "boom")})

    reply = api.start_profiling("tm-1", ProfilerMode.ITIMER, 60)

    assert not reply.accepted
    assert reply.code == 500
    assert reply.body == "boom"


def test_start_profiling_transport_failure_has_no_code():
    api, _ = _client({}, transport_error="exec channel broke")

    reply = api.start_profiling("tm-1", ProfilerMode.ITIMER, 60)

    assert reply.code is None
    assert "exec channel broke" in reply.body
