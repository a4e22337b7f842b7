"""Remote command execution primitives.

All cluster interaction beyond discovery queries goes through a
RemoteExecutor: REST calls are made with `curl` inside the JobManager pod,
artifact searches and copies run inside TaskManager pods. Executors never
raise for a failed command; they return a CommandResult that keeps
"the command ran and printed nothing" apart from "the command could not
be run at all".
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Protocol, Sequence

from squirrly.core.models import PodTarget


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one remote command.

    Attributes:
        stdout: Captured standard output.
        stderr: Captured standard error.
        exit_code: Remote exit status, None when the command never completed.
        transport_error: Set when the exec channel itself failed
                         (API error, websocket error, timeout).
        raw_stdout: Standard output exactly as received, when the executor
                    captured it as bytes. `stdout` is its lossy text view.
    """

    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    transport_error: str | None = None
    raw_stdout: bytes | None = None

    @classmethod
    def transport_failure(cls, detail: str) -> CommandResult:
        return cls(transport_error=detail)

    @property
    def stdout_bytes(self) -> bytes:
        """Standard output as bytes, unchanged when the executor kept them."""
        if self.raw_stdout is not None:
            return self.raw_stdout
        return self.stdout.encode("utf-8")

    @property
    def transport_failed(self) -> bool:
        return self.transport_error is not None

    @property
    def ok(self) -> bool:
        return not self.transport_failed and self.exit_code == 0

    @property
    def failed(self) -> bool:
        """True when the command ran but exited non-zero."""
        return not self.transport_failed and self.exit_code != 0

    @property
    def empty(self) -> bool:
        """True when the command succeeded and printed nothing."""
        return self.ok and not self.stdout.strip()

    def describe(self) -> str:
        """Return a one-line reason for a non-ok result."""
        if self.transport_error:
            return self.transport_error
        detail = self.stderr.strip() or self.stdout.strip()
        if detail:
            return f"exit code {self.exit_code}: {detail}"
        return f"exit code {self.exit_code}"


class RemoteExecutor(Protocol):
    """Interface for running commands inside pods."""

    def execute(
        self,
        target: PodTarget,
        command: Sequence[str],
        stdin: bytes | None = None,
    ) -> CommandResult:
        """Run `command` in `target`, optionally piping `stdin` to it."""
        ...


def shell(script: str) -> list[str]:
    """Wrap a POSIX shell snippet as an argv vector."""
    return ["sh", "-c", script]


def byte_count_command(path: str) -> list[str]:
    """Return the argv that prints the size of `path` in bytes."""
    return shell(f"wc -c < {shlex.quote(path)}")


def parse_byte_count(result: CommandResult) -> int | None:
    """Parse the output of byte_count_command; None if it did not succeed."""
    if not result.ok:
        return None
    try:
        return int(result.stdout.strip())
    except ValueError:
        return None
