from types import SimpleNamespace

from typer.testing import CliRunner

from squirrly.cli import cli
from squirrly.cli.commands import logs as logs_cmd
from squirrly.cli.commands import profile as profile_cmd
from squirrly.core.errors import ClusterAuthError
from squirrly.core.joblogs import JobStatus

runner = CliRunner()


class _MissingDeploymentCluster:
    def deployment_exists(self, deployment):
        return False


class _UnusedExecutor:
    def execute(self, target, command, stdin=None):
        raise AssertionError("no command should run")


class _FinishedJobAdapter:
    def __init__(self, status=JobStatus.SUCCEEDED):
        self.status = status

    def get_job_status(self, namespace, name):
        return self.status

    def list_job_pods(self, namespace, job_name):
        return ["squirrly-profiler-x1"]

    def read_pod_log(self, namespace, pod):
        return "profile complete\n"

    def follow_pod_log(self, namespace, pod):
        yield "line one"
        yield "line two"


def _context(cluster, executor=None):
    return lambda options: SimpleNamespace(cluster=cluster, executor=executor)


def test_invalid_mode_exits_with_usage_error():
    result = runner.invoke(cli.app, ["run", "--mode", "wall"])

    assert result.exit_code == 2
    assert "Invalid profiler mode" in result.output


def test_missing_deployment_exits_1(monkeypatch):
    monkeypatch.setattr(
        profile_cmd,
        "build_cluster_context",
        _context(_MissingDeploymentCluster(), _UnusedExecutor()),
    )

    result = runner.invoke(cli.app, ["run", "-n", "prod", "-d", "orders"])

    assert result.exit_code == 1
    assert "FlinkDeployment 'orders' not found in namespace prod" in result.output


def test_failed_run_log_is_still_written_to_file(monkeypatch, tmp_path):
    monkeypatch.setattr(
        profile_cmd,
        "build_cluster_context",
        _context(_MissingDeploymentCluster(), _UnusedExecutor()),
    )
    target = tmp_path / "reports" / "run.txt"

    result = runner.invoke(cli.app, ["run", "-d", "orders", "-o", str(target)])

    assert result.exit_code == 1
    text = target.read_text(encoding="utf-8")
    assert "Squirrly Profiler" in text
    assert "FlinkDeployment 'orders' not found" in text
    assert "Output written to" in result.output


def test_cluster_auth_error_exits_1(monkeypatch):
    def _fail(options):
        raise ClusterAuthError("Kubernetes configuration could not be loaded: nope")

    monkeypatch.setattr(profile_cmd, "build_cluster_context", _fail)

    result = runner.invoke(cli.app, ["--context", "kind-dev", "run"])

    assert result.exit_code == 1
    assert "could not be loaded" in result.output


def test_logs_streams_lines(monkeypatch):
    monkeypatch.setattr(logs_cmd, "build_cluster_context", _context(_FinishedJobAdapter()))

    result = runner.invoke(cli.app, ["logs", "--job", "squirrly-profiler"])

    assert result.exit_code == 0
    assert "line one" in result.output
    assert "line two" in result.output


def test_logs_to_directory_writes_complete_log(monkeypatch, tmp_path):
    monkeypatch.setattr(logs_cmd, "build_cluster_context", _context(_FinishedJobAdapter()))

    result = runner.invoke(cli.app, ["logs", "--output-dir", str(tmp_path)])

    assert result.exit_code == 0
    written = list(tmp_path.glob("squirrly_analysis_*.txt"))
    assert len(written) == 1
    assert written[0].read_text(encoding="utf-8") == "profile complete\n"


def test_logs_failed_job_exits_1(monkeypatch):
    monkeypatch.setattr(
        logs_cmd,
        "build_cluster_context",
        _context(_FinishedJobAdapter(JobStatus.FAILED)),
    )

    result = runner.invoke(cli.app, ["logs"])

    assert result.exit_code == 1
    assert "failed" in result.output
