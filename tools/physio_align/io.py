from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from .config import PhysioConfig
from .errors import MalformedLog, MissingFile, OutputExists
from .types import MS_PER_DAY, RawLog, RunResult

logger = logging.getLogger(__name__)


def _strip_metadata(tokens: list[str], path: Path, cfg: PhysioConfig) -> tuple[list[str], int]:
    """
    Remove every <start> ... <stop> metadata block from a token list.

    Returns the remaining tokens and the format version found in a
    "<start> LOGVERSION <n> <stop>" block (0 when absent).
    """
    start_tok = str(cfg.metadata_start)
    stop_tok = str(cfg.metadata_stop)

    kept: list[str] = []
    version = 0
    i = 0
    n = len(tokens)
    while i < n:
        tok = tokens[i]
        if tok == stop_tok:
            raise MalformedLog(f"{path}: metadata stop marker without start at token {i}")
        if tok != start_tok:
            kept.append(tok)
            i += 1
            continue

        j = i + 1
        while j < n and tokens[j] != stop_tok:
            if tokens[j] == start_tok:
                raise MalformedLog(f"{path}: nested metadata block at token {j}")
            j += 1
        if j >= n:
            raise MalformedLog(f"{path}: unterminated metadata block starting at token {i}")

        block = tokens[i + 1 : j]
        for k, item in enumerate(block[:-1]):
            if item == cfg.version_field:
                try:
                    version = int(block[k + 1])
                except ValueError:
                    raise MalformedLog(f"{path}: bad {cfg.version_field} value {block[k + 1]!r}") from None
        i = j + 1

    return kept, version


def parse_log(path: str | Path, header_items: int, cfg: PhysioConfig) -> RawLog:
    """
    Parse one raw logger file.

    Layout:
      line 1   : whitespace separated samples, with <header_items> leading
                 descriptors, one trailing descriptor and embedded metadata blocks
      line 2.. : free text footer; one line carries "<start_time_field>: <ms>"
    """
    path = Path(path)
    if not path.exists():
        raise MissingFile(f"Missing log file: {path}")

    time_re = re.compile(rf"{re.escape(cfg.start_time_field)}:?\s*(-?\d+)")

    try:
        with path.open("r", errors="ignore") as fh:
            first = fh.readline()
            start_time_ms = None
            for line in fh:
                m = time_re.search(line)
                if m:
                    start_time_ms = int(m.group(1))
                    break
    except OSError as e:
        raise MalformedLog(f"{path}: cannot read log ({e})") from e

    if start_time_ms is None:
        raise MalformedLog(f"{path}: no {cfg.start_time_field} field found (file truncated?)")
    if not 0 <= start_time_ms < MS_PER_DAY:
        raise MalformedLog(f"{path}: {cfg.start_time_field}={start_time_ms} is outside one day")

    tokens, version = _strip_metadata(first.split(), path, cfg)
    if len(tokens) < header_items + 1:
        raise MalformedLog(
            f"{path}: sample line has {len(tokens)} tokens, expected at least {header_items + 1}"
        )

    body = tokens[header_items:-1]
    try:
        samples = np.array([int(tok) for tok in body], dtype=np.int64)
    except ValueError as e:
        raise MalformedLog(f"{path}: non-integer sample ({e})") from e

    logger.debug(
        "Parsed %s: version=%d start=%d ms samples=%d", path.name, version, start_time_ms, samples.size
    )
    return RawLog(path=path, format_version=version, start_time_ms=start_time_ms, samples=samples)


def find_log(directory: str | Path, prefix: str, suffixes: Sequence[str]) -> Path:
    """Return the first existing <directory>/<prefix><suffix>, trying suffixes in order."""
    directory = Path(directory)
    tried = []
    for suffix in suffixes:
        p = directory / f"{prefix}{suffix}"
        if p.is_file():
            return p
        tried.append(p.name)
    raise MissingFile(f"Missing log in {directory}: tried {', '.join(tried)}")


def check_outputs(paths: Iterable[Path], overwrite: bool) -> None:
    if overwrite:
        return
    existing = [str(p) for p in paths if Path(p).exists()]
    if existing:
        raise OutputExists(f"Output already exists (use --overwrite): {', '.join(existing)}")


def write_trace(path: str | Path, values: np.ndarray, overwrite: bool = False) -> Path:
    """Write one value per line; integral data is written without decimals."""
    path = Path(path)
    check_outputs([path], overwrite)
    path.parent.mkdir(parents=True, exist_ok=True)

    values = np.asarray(values)
    if values.size and np.all(np.mod(values, 1) == 0):
        np.savetxt(path, values.astype(np.int64), fmt="%d")
    else:
        np.savetxt(path, values.astype(float), fmt="%.6f")
    return path


def report_frame(run: RunResult) -> pd.DataFrame:
    w = run.window
    rows = [
        {
            "prefix": run.prefix,
            "channel": t.name,
            "samples": len(t),
            "sampling_period_ms": t.sampling_period_ms,
            "first_index": t.first_index,
            "last_index": t.last_index,
            "padded_samples": t.padded_samples,
            "clock_offset_ms": t.clock_offset_ms,
            "window_start_ms": w.start_ms,
            "window_end_ms": w.end_ms,
            "repetition_ms": w.repetition_ms,
            "interval_count": w.interval_count,
        }
        for t in run.traces
    ]
    return pd.DataFrame(rows)


def write_report(path: str | Path, run: RunResult, overwrite: bool = False) -> Path:
    path = Path(path)
    check_outputs([path], overwrite)
    path.parent.mkdir(parents=True, exist_ok=True)
    report_frame(run).to_csv(path, index=False)
    return path
