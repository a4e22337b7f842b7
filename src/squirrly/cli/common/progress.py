"""Progress formatting utilities for the CLI."""

from __future__ import annotations

import time
from typing import Callable

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

_TICK_SECONDS = 1.0


def wait_with_progress(
    seconds: float,
    *,
    console: Console,
    label: str = "Profiling",
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Sleep for `seconds` while showing a transient progress bar.

    The bar advances once per tick; the total time slept equals `seconds`.
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn(f"[bold]{label}[/]"),
        BarColumn(),
        TextColumn("{task.completed:.0f}/{task.total:.0f}s"),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )

    remaining = float(seconds)
    with progress:
        task_id = progress.add_task("wait", total=max(remaining, 0))
        while remaining > 0:
            step = min(_TICK_SECONDS, remaining)
            sleep(step)
            remaining -= step
            progress.advance(task_id, step)


def progress_waiter(
    console: Console, label: str = "Profiling"
) -> Callable[[int], None]:
    """Return a `wait(seconds)` callable that renders a progress bar."""

    def _wait(seconds: int) -> None:
        wait_with_progress(seconds, console=console, label=label)

    return _wait
