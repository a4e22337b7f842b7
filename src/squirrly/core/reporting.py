"""Progress reporting interface used by the core stages.

Core stages narrate what they do (the running commentary of a profiling
run) through a Reporter. The CLI's `Out` helper satisfies this protocol;
NullReporter is used when nobody is listening.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol


class Reporter(Protocol):
    """Sink for stage-by-stage commentary."""

    def info(self, msg: str) -> None: ...

    def success(self, msg: str) -> None: ...

    def warn(self, msg: str) -> None: ...

    def error(self, msg: str) -> None: ...

    def header(self, title: str) -> None: ...

    def print(self, msg: str) -> None: ...

    def raw(self, text: str) -> None: ...

    def kv(self, items: Mapping[str, Any]) -> None: ...

    def rule(self) -> None: ...


class NullReporter:
    """Reporter that discards everything."""

    def info(self, msg: str) -> None:
        return None

    def success(self, msg: str) -> None:
        return None

    def warn(self, msg: str) -> None:
        return None

    def error(self, msg: str) -> None:
        return None

    def header(self, title: str) -> None:
        return None

    def print(self, msg: str) -> None:
        return None

    def raw(self, text: str) -> None:
        return None

    def kv(self, items: Mapping[str, Any]) -> None:
        return None

    def rule(self) -> None:
        return None
