"""Result delivery for CLI commands.

Commands print through the Out returned by `delivered`. For streaming
sinks that is the live console. For file sinks everything is recorded and
written in one go when the block exits, including when it exits through
an error: a failed run still leaves its complete log behind.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from squirrly.cli.common.output import Out, out
from squirrly.core.sinks import ResultSink


@contextmanager
def delivered(sink: ResultSink) -> Iterator[Out]:
    """Yield the Out to report through and persist its output on exit."""
    if not sink.persists:
        yield out
        return

    session = Out.capturing()
    try:
        yield session
    finally:
        path = sink.write(session.export_text())
        out.success(f"Output written to {path}")
