from pathlib import Path

import pytest

from physio_align.cli import build_parser, main
from physio_align.errors import ExitCode

from conftest import write_log


def test_cli_writes_outputs(session_dir: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "out" / "sub01"
    rc = main([str(session_dir), "run1", "-o", str(out), "--emit-trigger", "--report"])
    assert rc == ExitCode.SUCCESS
    for name in ("resp", "puls", "ecg1", "ecg2", "ecg3", "ecg4", "trigger"):
        assert Path(f"{out}.{name}").exists()
    assert Path(f"{out}_alignment.csv").exists()
    err = capsys.readouterr().err
    assert "[INFO] Scan window" in err


def test_cli_refuses_to_overwrite(session_dir: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "sub01"
    assert main([str(session_dir), "run1", "-o", str(out), "-q"]) == ExitCode.SUCCESS
    assert main([str(session_dir), "run1", "-o", str(out), "-q"]) == ExitCode.OUTPUT_EXISTS
    assert "[ERROR]" in capsys.readouterr().err
    assert main([str(session_dir), "run1", "-o", str(out), "-q", "--overwrite"]) == ExitCode.SUCCESS


def test_cli_clock_mismatch_exit_code(session_dir: Path, tmp_path: Path) -> None:
    write_log(session_dir / "run1.resp", list(range(800)), start_ms=36_010_000)
    rc = main([str(session_dir), "run1", "-o", str(tmp_path / "x"), "-q"])
    assert rc == ExitCode.CLOCK_MISMATCH
    assert not (tmp_path / "x.puls").exists()


def test_cli_missing_logs(tmp_path: Path) -> None:
    assert main([str(tmp_path), "nothing", "-q"]) == ExitCode.MISSING_FILE


def test_cli_invalid_keep_first(session_dir: Path) -> None:
    assert main([str(session_dir), "run1", "--keep-first", "0", "-q"]) == ExitCode.INVALID_ARGS


def test_cli_bad_config_file(session_dir: Path, tmp_path: Path) -> None:
    cfg = tmp_path / "c.yaml"
    cfg.write_text("- just\n- a list\n")
    assert main([str(session_dir), "run1", "--config", str(cfg), "-q"]) == ExitCode.INVALID_ARGS


def test_cli_unparseable_yaml_config(session_dir: Path, tmp_path: Path, capsys) -> None:
    cfg = tmp_path / "c.yaml"
    cfg.write_text("channels: [unclosed\n")
    assert main([str(session_dir), "run1", "--config", str(cfg), "-q"]) == ExitCode.INVALID_ARGS
    assert "[ERROR]" in capsys.readouterr().err


def test_parser_rejects_unknown_pulse_mode() -> None:
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["d", "p", "--pulse-mode", "filtered"])
    assert exc.value.code == 2


def test_cli_plot(session_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "sub01"
    assert main([str(session_dir), "run1", "-o", str(out), "--plot", "-q"]) == ExitCode.SUCCESS
    assert Path(f"{out}_qc.png").stat().st_size > 0
