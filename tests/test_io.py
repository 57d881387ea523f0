from pathlib import Path

import numpy as np
import pytest

from physio_align.errors import MalformedLog, MissingFile, OutputExists
from physio_align.io import find_log, parse_log, write_trace

from conftest import write_log


def test_parse_log_strips_descriptors_and_reads_start_time(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.resp", [10, 11, 12, 13], start_ms=36_000_123)
    log = parse_log(p, 4, cfg)
    assert log.samples.tolist() == [10, 11, 12, 13]
    assert log.start_time_ms == 36_000_123
    assert log.format_version == 3
    assert len(log) == 4


def test_parse_log_removes_metadata_blocks_anywhere(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.resp", list(range(100, 120)), start_ms=1, mid_block=True)
    log = parse_log(p, 4, cfg)
    assert log.samples.tolist() == list(range(100, 120))


def test_parse_log_version_defaults_to_zero(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.ext", [0, 0, 5000, 0], start_ms=1, version=None)
    assert parse_log(p, 4, cfg).format_version == 0


def test_parse_log_cardiac_header_is_five_items(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.ecg", [1, 2, 3], start_ms=1, header=(1, 2, 40, 280, 9))
    assert parse_log(p, 5, cfg).samples.tolist() == [1, 2, 3]


def test_parse_log_reads_configured_time_field(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.resp", [1], start_ms=500)
    assert parse_log(p, 4, cfg).start_time_ms == 500
    assert parse_log(p, 4, cfg.replace(start_time_field="LogStartMDHTime")).start_time_ms == 11111


def test_parse_log_time_field_without_space(tmp_path: Path, cfg) -> None:
    p = tmp_path / "a.resp"
    p.write_text("1 2 40 280 7 8 5003\nLogStartMPCUTime:36665480\n")
    log = parse_log(p, 4, cfg)
    assert log.start_time_ms == 36_665_480
    assert log.samples.tolist() == [7, 8]


def test_parse_log_without_start_time_is_malformed(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.resp", [1, 2, 3], start_ms=None)
    with pytest.raises(MalformedLog, match="truncated"):
        parse_log(p, 4, cfg)


def test_parse_log_missing_file(tmp_path: Path, cfg) -> None:
    with pytest.raises(MissingFile):
        parse_log(tmp_path / "nope.resp", 4, cfg)


@pytest.mark.parametrize(
    "line",
    [
        "1 2 40 280 5002 LOGVERSION 3 10 11 5003",  # unterminated
        "1 2 40 280 5002 a 5002 b 6002 6002 10 5003",  # nested
        "1 2 40 280 10 6002 11 5003",  # stray stop
        "1 2 40 280 10 x 11 5003",  # not a number
        "1 2 40",  # too short
    ],
)
def test_parse_log_rejects_bad_sample_line(tmp_path: Path, cfg, line: str) -> None:
    p = tmp_path / "bad.resp"
    p.write_text(line + "\nLogStartMPCUTime: 100\n")
    with pytest.raises(MalformedLog):
        parse_log(p, 4, cfg)


def test_parse_log_rejects_start_time_beyond_one_day(tmp_path: Path, cfg) -> None:
    p = write_log(tmp_path / "a.resp", [1], start_ms=86_400_000)
    with pytest.raises(MalformedLog):
        parse_log(p, 4, cfg)


def test_find_log_falls_back_to_alternate_suffix(tmp_path: Path) -> None:
    (tmp_path / "run.ext2").write_text("x\n")
    assert find_log(tmp_path, "run", [".ext", ".ext2"]).name == "run.ext2"
    (tmp_path / "run.ext").write_text("x\n")
    assert find_log(tmp_path, "run", [".ext", ".ext2"]).name == "run.ext"


def test_find_log_missing(tmp_path: Path) -> None:
    with pytest.raises(MissingFile):
        find_log(tmp_path, "run", [".resp"])


def test_write_trace_one_integer_per_line(tmp_path: Path) -> None:
    p = write_trace(tmp_path / "out.resp", np.array([3, -1, 0]))
    assert p.read_text().splitlines() == ["3", "-1", "0"]


def test_write_trace_integral_floats_written_as_integers(tmp_path: Path) -> None:
    p = write_trace(tmp_path / "out.ecg1", np.array([2.0, 5.0]))
    assert p.read_text().splitlines() == ["2", "5"]


def test_write_trace_refuses_existing_file(tmp_path: Path) -> None:
    p = tmp_path / "out.resp"
    p.write_text("old\n")
    with pytest.raises(OutputExists):
        write_trace(p, np.array([1]))
    assert p.read_text() == "old\n"
    write_trace(p, np.array([1]), overwrite=True)
    assert p.read_text().splitlines() == ["1"]
