"""CLI application for Flink profiling orchestration."""

import typer

from squirrly.cli.commands.logs import logs
from squirrly.cli.commands.profile import run
from squirrly.cli.common.context import ClusterOptions
from squirrly.cli.common.options import KubeconfigOpt, KubeContextOpt

app = typer.Typer(
    help="squirrly - profile Flink jobs on Kubernetes and analyze the flamegraphs",
    no_args_is_help=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    kubeconfig: str | None = KubeconfigOpt,
    context: str | None = KubeContextOpt,
):
    """Collect cluster access options shared by all commands."""
    ctx.obj = ClusterOptions(kubeconfig=kubeconfig, context=context)


app.command("run", help="Trigger the profiler, collect the artifact, analyze it.")(run)
app.command("logs", help="Stream or save the log of the profiler Job.")(logs)


if __name__ == "__main__":
    app()
