from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

import numpy as np
import pytest

from physio_align.config import PhysioConfig

MARKER = 5000


def trigger_stream(n_total: int, pulse_positions: Iterable[int], baseline: int = 0) -> list[int]:
    """
    Raw trigger-log samples whose decoded pulse train has length n_total and
    pulses at pulse_positions (the marker follows each pulse sample).
    """
    pulses = set(int(p) for p in pulse_positions)
    out: list[int] = []
    for i in range(n_total):
        out.append(baseline)
        if i in pulses:
            out.append(MARKER)
    return out


def even_pulses(count: int, gap: int, first: int) -> list[int]:
    """Pulse positions with `gap` non-pulse samples between consecutive pulses."""
    return [first + k * (gap + 1) for k in range(count)]


def write_log(
    path: Path,
    samples: Sequence[int],
    *,
    start_ms: Optional[int],
    header: Sequence[int] = (1, 2, 40, 280),
    version: Optional[int] = 3,
    mid_block: bool = False,
    field: str = "LogStartMPCUTime",
) -> Path:
    tokens: list[str] = [str(h) for h in header]
    if version is not None:
        tokens += ["5002", "LOGVERSION", str(version), "6002"]
    body = [str(s) for s in samples]
    if mid_block and body:
        half = len(body) // 2
        body = body[:half] + ["5002", "uiHwRevision", "5", "free", "text", "6002"] + body[half:]
    tokens += body + ["5003"]

    lines = [" ".join(tokens)]
    lines.append("ECG  Freq Per: 0 0")
    lines.append("LogStartMDHTime:  11111")
    lines.append("LogStopMDHTime:   22222")
    if start_ms is not None:
        lines.append(f"{field}: {start_ms}")
        lines.append(f"LogStopMPCUTime: {start_ms + 100000}")
    lines.append("6003")
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def cfg() -> PhysioConfig:
    return PhysioConfig()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("physio_align")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def session_dir(tmp_path: Path) -> Path:
    """
    A complete log set for prefix "run1":
      trigger: 10 pulses, 500 samples apart, first at sample 200 (2.5 ms)
      resp/puls: 20 ms, start 40 ms after the trigger log
      ecg: 4 leads, 2.5 ms, start 1000 ms before the trigger log
    """
    t0 = 36_000_000
    positions = even_pulses(10, 500, 200)
    n_trig = positions[-1] + 1 + 300
    write_log(tmp_path / "run1.ext", trigger_stream(n_trig, positions), start_ms=t0)

    resp = list(range(1000, 1800))
    resp.insert(5, MARKER)
    resp.insert(400, MARKER)
    resp.append(MARKER)
    write_log(tmp_path / "run1.resp", resp, start_ms=t0 + 40, mid_block=True)

    puls = list(range(2000, 2800))
    for pos in (100, 300, 500):
        puls.insert(pos, MARKER)
    write_log(tmp_path / "run1.puls", puls, start_ms=t0 + 40)

    n_lead = 6000
    offsets = PhysioConfig().channel("ecg").offsets
    ecg = np.empty(4 * n_lead, dtype=np.int64)
    for i in range(4):
        # Stay clear of the marker/metadata sentinels.
        ecg[i::4] = np.arange(n_lead) % 500 + int(offsets[i])
    write_log(tmp_path / "run1.ecg", ecg.tolist(), start_ms=t0 - 1000, header=(1, 2, 40, 280, 7))
    return tmp_path
