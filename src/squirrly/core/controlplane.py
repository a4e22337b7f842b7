"""Client for the Flink REST control plane.

The REST service is only reachable from inside the cluster, so every call
is made with `curl` inside the JobManager pod through a RemoteExecutor.
Responses are parsed as JSON; callers that need a single job, vertex or
worker apply an explicit "first element" policy on top of the listings
returned here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from squirrly.core.errors import (
    ControlPlaneRequestFailed,
    NoJobsFound,
    NoWorkersFound,
    VertexNotFound,
)
from squirrly.core.executor import RemoteExecutor
from squirrly.core.models import Job, PodTarget, ProfilerMode, Vertex, Worker

HTTP_CODE_MARKER = "HTTP_CODE:"
PROFILER_ACCEPTED_CODES = frozenset({200, 202})


@dataclass(frozen=True)
class HttpReply:
    """
    HTTP response relayed through curl.

    Attributes:
        code: HTTP status code, None when no response was received.
        body: Response body with the status marker line removed.
    """

    code: int | None
    body: str

    @property
    def accepted(self) -> bool:
        return self.code in PROFILER_ACCEPTED_CODES


def parse_http_reply(output: str) -> HttpReply:
    """
    Split curl output produced with `-w '\\nHTTP_CODE:%{http_code}'`.

    curl reports `000` when no response was received; that is returned as
    a missing code.
    """
    code: int | None = None
    body_lines: list[str] = []
    for line in output.splitlines():
        if line.startswith(HTTP_CODE_MARKER):
            raw = line[len(HTTP_CODE_MARKER) :].strip()
            try:
                code = int(raw) or None
            except ValueError:
                code = None
            continue
        body_lines.append(line)
    return HttpReply(code=code, body="\n".join(body_lines).strip())


def profiler_request_body(mode: ProfilerMode, duration_seconds: int) -> str:
    """Return the JSON body for the profiler endpoint."""
    return json.dumps({"mode": ProfilerMode(mode).value, "duration": duration_seconds})


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _ids(items: Any) -> list[dict[str, Any]]:
    """Keep list entries that are objects with a non-empty string id."""
    if not isinstance(items, list):
        return []
    return [
        i
        for i in items
        if isinstance(i, dict) and isinstance(i.get("id"), str) and i["id"]
    ]


class ControlPlaneClient:
    """Flink REST API reached through `curl` in the JobManager pod."""

    def __init__(self, executor: RemoteExecutor, coordinator: PodTarget, rest_url: str):
        self.executor = executor
        self.coordinator = coordinator
        self.rest_url = rest_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.rest_url}{path}"

    def _curl(self, args: list[str]) -> tuple[HttpReply, str | None]:
        """Run curl and return the parsed reply plus a transport error, if any."""
        cmd = ["curl", "-s", "-w", f"\n{HTTP_CODE_MARKER}%{{http_code}}", *args]
        result = self.executor.execute(self.coordinator, cmd)
        reply = parse_http_reply(result.stdout)
        if not result.ok:
            return reply, result.describe()
        return reply, None

    def get(self, path: str) -> str:
        """GET a REST path and return the body."""
        reply, error = self._curl([self._url(path)])
        if error is not None:
            raise ControlPlaneRequestFailed(path, error)
        if reply.code is None:
            raise ControlPlaneRequestFailed(path, "no HTTP response")
        return reply.body

    def list_jobs(self) -> list[Job]:
        """
        Return the jobs known to the cluster, in REST response order.

        Raises:
            NoJobsFound: If the response is empty, not JSON, or lists no jobs.
        """
        body = self.get("/jobs")
        payload = _load_json(body)
        jobs = _ids(payload.get("jobs") if isinstance(payload, dict) else None)
        if not jobs:
            raise NoJobsFound(self.coordinator.name, body)
        return [Job(id=j["id"], status=j.get("status")) for j in jobs]

    def get_job_detail(self, job_id: str) -> list[Vertex]:
        """
        Return the vertices of a job's execution graph.

        Raises:
            VertexNotFound: If no vertex id can be extracted.
        """
        payload = _load_json(self.get(f"/jobs/{job_id}"))
        vertices = _ids(payload.get("vertices") if isinstance(payload, dict) else None)
        if not vertices:
            raise VertexNotFound(job_id)
        return [Vertex(id=v["id"], name=v.get("name")) for v in vertices]

    def list_workers(self) -> list[Worker]:
        """
        Return registered TaskManagers.

        Raises:
            NoWorkersFound: If the listing is empty or unparsable.
        """
        payload = _load_json(self.get("/taskmanagers"))
        workers = _ids(payload.get("taskmanagers") if isinstance(payload, dict) else None)
        if not workers:
            raise NoWorkersFound()
        return [Worker(id=w["id"]) for w in workers]

    def profiler_endpoint(self, worker_id: str) -> str:
        return self._url(f"/taskmanagers/{worker_id}/profiler")

    def start_profiling(
        self, worker_id: str, mode: ProfilerMode, duration_seconds: int
    ) -> HttpReply:
        """
        POST a profiling request for one TaskManager.

        Never raises for HTTP or transport errors; the caller inspects
        `HttpReply.accepted`. A transport failure yields `code=None`.
        """
        reply, error = self._curl(
            [
                "-X",
                "POST",
                "-H",
                "Content-Type: application/json",
                "-d",
                profiler_request_body(mode, duration_seconds),
                self.profiler_endpoint(worker_id),
            ]
        )
        if error is not None:
            return HttpReply(code=None, body=reply.body or error)
        return reply
