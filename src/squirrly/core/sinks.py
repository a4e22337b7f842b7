"""Result delivery targets.

A run's output is either streamed as it is produced or persisted to a file
once the run is over. Resolution priority when several options are given:
output directory (generated name) > explicit output file > inline stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

ANALYSIS_FILENAME_PREFIX = "squirrly_analysis_"
ANALYSIS_FILENAME_TIMESTAMP = "%Y%m%d_%H%M%S"


class SinkMode(str, Enum):
    """
    How results reach the caller.

    Values:
        STREAM: Emitted live, nothing written to disk.
        FILE: Written to an explicit path after the run.
        DIRECTORY: Written to a generated file name inside a directory.
    """

    STREAM = "STREAM"
    FILE = "FILE"
    DIRECTORY = "DIRECTORY"


@dataclass(frozen=True)
class ResultSink:
    """
    A resolved delivery target.

    Attributes:
        mode: Delivery mode.
        path: Destination file for FILE/DIRECTORY modes, None for STREAM.
    """

    mode: SinkMode
    path: Path | None = None

    @property
    def persists(self) -> bool:
        return self.mode != SinkMode.STREAM

    def write(self, text: str) -> Path:
        """
        Write the complete output, creating the parent directory if needed.

        Raises:
            ValueError: If called on a streaming sink.
        """
        if self.path is None:
            raise ValueError("Streaming sinks do not write files")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")
        return self.path


def analysis_filename(now: datetime) -> str:
    """Return the generated file name used in directory mode."""
    return f"{ANALYSIS_FILENAME_PREFIX}{now.strftime(ANALYSIS_FILENAME_TIMESTAMP)}.txt"


def resolve_sink(
    *,
    output_file: str | Path | None = None,
    output_dir: str | Path | None = None,
    inline: bool = False,
    now: Callable[[], datetime] = datetime.now,
) -> ResultSink:
    """
    Pick the delivery target from caller options.

    `inline` only documents the default; it never overrides an explicit
    file or directory.
    """
    if output_dir:
        return ResultSink(
            mode=SinkMode.DIRECTORY, path=Path(output_dir) / analysis_filename(now())
        )
    if output_file:
        return ResultSink(mode=SinkMode.FILE, path=Path(output_file))
    return ResultSink(mode=SinkMode.STREAM)
