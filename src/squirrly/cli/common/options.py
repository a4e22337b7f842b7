"""Common CLI options for the CLI.

Every run setting can also come from the environment so the profiler can be
configured from a Kubernetes Job spec.
"""

import typer

from squirrly.core.config import (
    CREDENTIAL_ENV,
    DEFAULT_DEPLOYMENT,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_MODE,
    DEFAULT_NAMESPACE,
    DEFAULT_PROFILER_JOB,
    DEFAULT_PROMPT_FILE,
    DEFAULT_PROVIDER,
    DEFAULT_SEARCH_PATHS,
    DEPLOYMENT_ENV,
    DURATION_ENV,
    MODE_ENV,
    NAMESPACE_ENV,
    PROFILER_JOB_ENV,
    PROMPT_FILE_ENV,
    PROVIDER_ENV,
    SEARCH_PATHS_ENV,
)

KubeconfigOpt = typer.Option(
    None,
    "--kubeconfig",
    envvar="KUBECONFIG",
    help="Path to a kubeconfig file (default: in-cluster, then ~/.kube/config)",
)

KubeContextOpt = typer.Option(
    None,
    "--context",
    help="Kubeconfig context to use",
)

NamespaceOpt = typer.Option(
    DEFAULT_NAMESPACE,
    "--namespace",
    "-n",
    envvar=NAMESPACE_ENV,
    help="Namespace of the FlinkDeployment",
)

DeploymentOpt = typer.Option(
    DEFAULT_DEPLOYMENT,
    "--deployment",
    "-d",
    envvar=DEPLOYMENT_ENV,
    help="Name of the FlinkDeployment to profile",
)

ModeOpt = typer.Option(
    DEFAULT_MODE,
    "--mode",
    "-m",
    envvar=MODE_ENV,
    help="Profiler mode: CPU, ITIMER or ALLOC",
)

DurationOpt = typer.Option(
    DEFAULT_DURATION_SECONDS,
    "--duration",
    envvar=DURATION_ENV,
    help="Profiling duration in seconds",
)

SearchPathsOpt = typer.Option(
    DEFAULT_SEARCH_PATHS,
    "--search-paths",
    envvar=SEARCH_PATHS_ENV,
    help="Space-separated directories searched for profiler artifacts",
)

ProviderOpt = typer.Option(
    DEFAULT_PROVIDER,
    "--provider",
    envvar=PROVIDER_ENV,
    help="Analysis provider (supported: openai)",
)

ApiKeyOpt = typer.Option(
    None,
    "--api-key",
    envvar=CREDENTIAL_ENV,
    help="Analysis provider API key. Analysis is skipped when missing.",
    show_default=False,
)

PromptFileOpt = typer.Option(
    DEFAULT_PROMPT_FILE,
    "--prompt-file",
    envvar=PROMPT_FILE_ENV,
    help="File holding the analysis prompt",
)

ProfilerJobOpt = typer.Option(
    DEFAULT_PROFILER_JOB,
    "--job",
    envvar=PROFILER_JOB_ENV,
    help="Name of the profiler Kubernetes Job",
)

OutputFileOpt = typer.Option(
    None,
    "--output-file",
    "-o",
    help="Write the complete output to this file once the run is over",
)

OutputDirOpt = typer.Option(
    None,
    "--output-dir",
    help="Write the complete output to a generated file in this directory",
)

InlineOpt = typer.Option(
    False,
    "--inline",
    help="Stream output to the console as it is produced (default)",
)
