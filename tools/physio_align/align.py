from __future__ import annotations

import logging
import math

import numpy as np

from .config import PhysioConfig
from .errors import ClockMismatch, DataTooShort
from .types import MS_PER_DAY, AlignedTrace, ScanWindow

logger = logging.getLogger(__name__)


def clock_offset(channel_start_ms: int, reference_start_ms: int, cfg: PhysioConfig) -> int:
    """
    Start time difference channel - reference in ms, corrected for a midnight
    crossing between the two logs.

    Logs whose start times differ by more than max_clock_offset_ms belong to
    different runs (or the timing source misbehaved) and are refused.
    """
    diff = int(channel_start_ms) - int(reference_start_ms)
    half_day = MS_PER_DAY // 2
    if diff > half_day:
        diff -= MS_PER_DAY
    elif diff < -half_day:
        diff += MS_PER_DAY

    if abs(diff) > cfg.max_clock_offset_ms:
        raise ClockMismatch(
            f"Log start times differ by {diff} ms (limit {cfg.max_clock_offset_ms:.0f} ms); "
            "logs are probably from different runs"
        )
    return diff


def shift_window(window: ScanWindow, offset_ms: float) -> tuple[float, float]:
    """Express a trigger-relative window in the time base of a log that started offset_ms later."""
    return window.start_ms - offset_ms, window.end_ms - offset_ms


def align_trace(
    trace: np.ndarray,
    start_ms: float,
    end_ms: float,
    sampling_period_ms: float,
    cfg: PhysioConfig,
    *,
    name: str = "",
    clock_offset_ms: int = 0,
) -> AlignedTrace:
    """
    Cut the samples of trace that fall in [start_ms, end_ms).

    A trace that ends at most max_missing_ms before end_ms is zero-padded (the
    logger is assumed to have stopped a few seconds early); anything shorter
    is an error.
    """
    trace = np.asarray(trace)
    period = float(sampling_period_ms)
    label = name or "trace"

    first = int(math.ceil(start_ms / period))
    last = int(math.floor(end_ms / period))
    if last * period == end_ms:
        last -= 1

    if first < 0:
        raise DataTooShort(
            f"{label}: log starts {-start_ms:.1f} ms after the scan window begins"
        )
    if last < first:
        raise DataTooShort(f"{label}: scan window [{start_ms:.1f}, {end_ms:.1f}) ms holds no sample")

    padded = 0
    last_available = trace.size - 1
    if last > last_available:
        missing = last - last_available
        missing_ms = missing * period
        if missing_ms > cfg.max_missing_ms:
            raise DataTooShort(
                f"{label}: log ends {missing_ms:.1f} ms before the scan window "
                f"(limit {cfg.max_missing_ms:.0f} ms)"
            )
        logger.warning("%s: log ends %.1f ms early, padding %d samples with zeros", label, missing_ms, missing)
        trace = np.concatenate([trace, np.zeros(missing, dtype=trace.dtype)])
        padded = missing

    values = trace[first : last + 1]
    logger.debug("%s: samples %d..%d (%d)", label, first, last, values.size)
    return AlignedTrace(
        name=label,
        values=values,
        first_index=first,
        last_index=last,
        sampling_period_ms=period,
        clock_offset_ms=int(clock_offset_ms),
        padded_samples=padded,
    )
