import pytest

from squirrly.core.errors import ProfilerJobNotFound, ProfilerPodNotFound
from squirrly.core.joblogs import (
    JobStatus,
    collect_job_log,
    wait_for_job,
    wait_for_job_pod,
)


class _JobAdapterStub:
    def __init__(self, statuses, pods=None, log="profiling done\n"):
        self.statuses = list(statuses)
        self.pods = pods if pods is not None else [["profiler-abc"]]
        self.log = log
        self.logs_read = []

    def get_job_status(self, namespace, name):
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def list_job_pods(self, namespace, job_name):
        if len(self.pods) > 1:
            return self.pods.pop(0)
        return self.pods[0]

    def read_pod_log(self, namespace, pod):
        self.logs_read.append(pod)
        return self.log


def test_wait_for_job_polls_until_terminal():
    adapter = _JobAdapterStub([JobStatus.PENDING, JobStatus.RUNNING, JobStatus.SUCCEEDED])
    sleeps = []

    assert wait_for_job(adapter, "ns", "job", sleep=sleeps.append) == JobStatus.SUCCEEDED
    assert sleeps == [5, 5]


def test_wait_for_job_missing_job_raises():
    with pytest.raises(ProfilerJobNotFound, match="job"):
        wait_for_job(_JobAdapterStub([None]), "ns", "job", sleep=lambda _: None)


def test_wait_for_job_pod_waits_for_first_pod():
    adapter = _JobAdapterStub([JobStatus.PENDING], pods=[[], ["pod-1", "pod-2"]])
    sleeps = []

    assert wait_for_job_pod(adapter, "ns", "job", sleep=sleeps.append) == "pod-1"
    assert sleeps == [2]


def test_wait_for_job_pod_gives_up_when_job_ended_without_pods():
    adapter = _JobAdapterStub([JobStatus.FAILED], pods=[[]])

    with pytest.raises(ProfilerPodNotFound):
        wait_for_job_pod(adapter, "ns", "job", sleep=lambda _: None)


def test_collect_job_log_reads_after_completion():
    adapter = _JobAdapterStub([JobStatus.RUNNING, JobStatus.FAILED], log="boom\n")

    status, text = collect_job_log(adapter, "ns", "job", sleep=lambda _: None)

    assert status == JobStatus.FAILED
    assert text == "boom\n"
    assert adapter.logs_read == ["profiler-abc"]
