import re
from datetime import datetime

import pytest

from squirrly.core.sinks import SinkMode, analysis_filename, resolve_sink

NOW = datetime(2024, 3, 5, 10, 15, 30)


def test_analysis_filename_format():
    name = analysis_filename(NOW)

    assert name == "squirrly_analysis_20240305_101530.txt"
    assert re.fullmatch(r"squirrly_analysis_\d{8}_\d{6}\.txt", name)


def test_directory_wins_over_file_and_inline(tmp_path):
    sink = resolve_sink(
        output_file=tmp_path / "out.txt",
        output_dir=tmp_path / "reports",
        inline=True,
        now=lambda: NOW,
    )

    assert sink.mode == SinkMode.DIRECTORY
    assert sink.path == tmp_path / "reports" / "squirrly_analysis_20240305_101530.txt"


def test_file_wins_over_inline(tmp_path):
    sink = resolve_sink(output_file=tmp_path / "out.txt", inline=True)

    assert sink.mode == SinkMode.FILE
    assert sink.path == tmp_path / "out.txt"


def test_stream_is_the_default():
    sink = resolve_sink()

    assert sink.mode == SinkMode.STREAM
    assert not sink.persists


def test_write_creates_missing_parent_directories(tmp_path):
    sink = resolve_sink(output_dir=tmp_path / "a" / "b", now=lambda: NOW)

    path = sink.write("analysis text")

    assert path.read_text(encoding="utf-8") == "analysis text"
    assert path.parent == tmp_path / "a" / "b"


def test_stream_sink_writes_nothing(tmp_path):
    with pytest.raises(ValueError):
        resolve_sink().write("text")

    assert list(tmp_path.iterdir()) == []
