"""Command that profiles a FlinkDeployment end to end."""

import typer

from squirrly.cli.common.context import ClusterOptions, build_cluster_context
from squirrly.cli.common.delivery import delivered
from squirrly.cli.common.exits import die, exit_from_exc
from squirrly.cli.common.options import (
    ApiKeyOpt,
    DeploymentOpt,
    DurationOpt,
    InlineOpt,
    ModeOpt,
    NamespaceOpt,
    OutputDirOpt,
    OutputFileOpt,
    PromptFileOpt,
    ProviderOpt,
    SearchPathsOpt,
)
from squirrly.cli.common.progress import progress_waiter
from squirrly.core.config import build_settings
from squirrly.core.errors import HardFailure
from squirrly.core.pipeline import ProfilerPipeline
from squirrly.core.sinks import resolve_sink


def run(
    ctx: typer.Context,
    namespace: str = NamespaceOpt,
    deployment: str = DeploymentOpt,
    mode: str = ModeOpt,
    duration: int = DurationOpt,
    search_paths: str = SearchPathsOpt,
    provider: str = ProviderOpt,
    api_key: str | None = ApiKeyOpt,
    prompt_file: str = PromptFileOpt,
    output_file: str | None = OutputFileOpt,
    output_dir: str | None = OutputDirOpt,
    inline: bool = InlineOpt,
):
    """
    Profile one TaskManager of a FlinkDeployment and analyze the flamegraph.

    Exits 0 when the profiler was triggered, even if no artifact turned up
    or the analysis was skipped; exits 1 on any discovery or trigger failure.
    """
    try:
        settings = build_settings(
            namespace=namespace,
            deployment=deployment,
            mode=mode,
            duration=duration,
            search_paths=search_paths,
            provider=provider,
            credential=api_key,
            prompt_file=prompt_file,
        )
    except ValueError as e:
        die(str(e), code=2)

    sink = resolve_sink(output_file=output_file, output_dir=output_dir, inline=inline)
    options: ClusterOptions | None = ctx.obj

    with delivered(sink) as session:
        try:
            appctx = build_cluster_context(options)
            pipeline = ProfilerPipeline(
                settings,
                appctx.cluster,
                appctx.executor,
                reporter=session,
                wait=None if sink.persists else progress_waiter(session.console),
            )
            summary = pipeline.run()
        except HardFailure as exc:
            exit_from_exc(exc, message=str(exc), code=1, printer=session)

        session.summary_table(summary)
