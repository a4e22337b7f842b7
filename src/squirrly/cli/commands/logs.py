"""Command that delivers the log of the in-cluster profiler Job."""

import typer

from squirrly.cli.common.context import ClusterOptions, build_cluster_context
from squirrly.cli.common.exits import die, exit_from_exc
from squirrly.cli.common.options import (
    InlineOpt,
    NamespaceOpt,
    OutputDirOpt,
    OutputFileOpt,
    ProfilerJobOpt,
)
from squirrly.cli.common.output import out
from squirrly.core.errors import HardFailure
from squirrly.core.joblogs import (
    JobStatus,
    collect_job_log,
    require_job,
    wait_for_job,
    wait_for_job_pod,
)
from squirrly.core.sinks import resolve_sink


def logs(
    ctx: typer.Context,
    namespace: str = NamespaceOpt,
    job: str = ProfilerJobOpt,
    output_file: str | None = OutputFileOpt,
    output_dir: str | None = OutputDirOpt,
    inline: bool = InlineOpt,
):
    """
    Show the profiler Job's log: follow it live, or save it once the Job ends.
    """
    sink = resolve_sink(output_file=output_file, output_dir=output_dir, inline=inline)
    options: ClusterOptions | None = ctx.obj

    try:
        adapter = build_cluster_context(options).cluster
        if sink.persists:
            with out.status(f"Waiting for profiler job {job} to finish..."):
                status, text = collect_job_log(adapter, namespace, job)
            path = sink.write(text)
            out.success(f"Log written to {path}")
        else:
            require_job(adapter, namespace, job)
            pod = wait_for_job_pod(adapter, namespace, job)
            out.info(f"Following logs from pod: {pod}")
            for line in adapter.follow_pod_log(namespace, pod):
                out.raw(line)
            status = wait_for_job(adapter, namespace, job)
    except HardFailure as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    if status == JobStatus.FAILED:
        die(f"Profiler job {job} failed", code=1)
    out.success(f"Profiler job {job} completed")
