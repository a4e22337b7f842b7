"""Output formatting utilities for the CLI."""

from __future__ import annotations

import io
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Mapping

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)
_RULE = "━" * 78
_CAPTURE_WIDTH = 120

console = Console(theme=_THEME)


def _default_console() -> Console:
    return console


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    console: Console = field(default_factory=_default_console)

    @classmethod
    def capturing(cls) -> Out:
        """Return an Out that records everything instead of printing it."""
        return cls(
            console=Console(
                theme=_THEME,
                file=io.StringIO(),
                record=True,
                width=_CAPTURE_WIDTH,
                color_system=None,
            )
        )

    def export_text(self) -> str:
        """Return everything printed so far (capturing consoles only)."""
        return self.console.export_text()

    def info(self, msg: str) -> None:
        """Print an info message."""
        self.console.print(f"[title]›[/] {escape(msg)}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with self.console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        self.console.print(f"[ok]✓[/] {escape(msg)}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        self.console.print(f"[warn]⚠[/] {escape(msg)}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        self.console.print(f"[err]✗[/] {escape(msg)}")

    def header(self, title: str) -> None:
        """Print a header message."""
        self.console.print(f"[title]{escape(title)}[/]")

    def print(self, msg: str) -> None:
        """Print a raw Rich-formatted message to the console."""
        self.console.print(msg)

    def raw(self, text: str) -> None:
        """Print text verbatim: no markup, no highlighting."""
        self.console.print(text, markup=False, highlight=False)

    def rule(self) -> None:
        """Print a section separator."""
        self.console.print(f"[meta]{_RULE}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            self.console.print(f"   [meta]{escape(str(k))}[/]: {escape(str(v))}")

    def summary_table(self, summary: Any, title: str = "Run summary") -> None:
        """
        Expects a RunSummary-like object with .target .run .artifact
        .analysis .state
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Stage", style="meta", no_wrap=True)
        t.add_column("Result")

        target = summary.target
        t.add_row(
            "Deployment",
            escape(f"{target.deployment.namespace}/{target.deployment.name}"),
        )
        t.add_row("Job", escape(target.job.id))
        t.add_row("TaskManager", escape(target.worker.id))
        t.add_row("Profiler", f"{summary.run.mode.value} for {summary.run.duration_seconds}s")

        artifact = summary.artifact
        if artifact is None:
            t.add_row("Artifact", "[warn]not found[/]")
        else:
            t.add_row("Artifact", f"[ok]{escape(artifact.path)}[/]")

        if summary.analysis is None:
            t.add_row("Analysis", "[warn]skipped[/]")
        else:
            t.add_row("Analysis", f"[ok]{escape(summary.analysis.provider_name)}[/]")

        state = summary.state.value
        style = "ok" if state == "COMPLETE" else "warn"
        t.add_row("State", f"[{style}]{state}[/{style}]")

        self.console.print(t)


out = Out()
