from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy import stats

from .codec import has_pulses, pulse_indices
from .config import PhysioConfig
from .errors import InconsistentTR, InsufficientTriggers, MalformedLog, NoTriggersFound
from .types import ScanWindow, TriggerPolicy

logger = logging.getLogger(__name__)


def apply_trigger_policy(train: np.ndarray, policy: Optional[TriggerPolicy], cfg: PhysioConfig) -> np.ndarray:
    """
    Zero selected pulses: skip first N, then skip last N, then keep first N.

    Returns a new train; the input is left untouched.
    """
    out = np.array(train, copy=True)
    if policy is None or policy.is_noop:
        return out

    if policy.skip_first:
        idx = pulse_indices(out, cfg)
        out[idx[: policy.skip_first]] = 0
        logger.info("Skipped first %d of %d triggers", min(policy.skip_first, idx.size), idx.size)

    if policy.skip_last:
        idx = pulse_indices(out, cfg)
        out[idx[max(0, idx.size - policy.skip_last) :]] = 0
        logger.info("Skipped last %d of %d triggers", min(policy.skip_last, idx.size), idx.size)

    if policy.keep_first is not None:
        idx = pulse_indices(out, cfg)
        if idx.size < policy.keep_first:
            raise InsufficientTriggers(
                f"Asked to keep the first {policy.keep_first} triggers but only {idx.size} are available"
            )
        out[idx[policy.keep_first :]] = 0
        logger.info("Kept first %d of %d triggers", policy.keep_first, idx.size)

    return out


def segment_lengths(train: np.ndarray, cfg: PhysioConfig) -> list[int]:
    """
    Sample counts between pulses: [leading, interior..., trailing].

    A train with k pulses yields k + 1 segments.
    """
    idx = pulse_indices(train, cfg)
    bounds = np.concatenate(([-1], idx, [len(train)]))
    return (np.diff(bounds) - 1).astype(int).tolist()


def interval_histogram(lengths: list[int]) -> dict[int, int]:
    """Histogram of interior segment lengths; the first and last are partial and excluded."""
    interior = np.asarray(lengths[1:-1], dtype=int)
    if interior.size == 0:
        return {}
    values, counts = np.unique(interior, return_counts=True)
    return {int(v): int(c) for v, c in zip(values, counts)}


def modal_interval(lengths: list[int]) -> int:
    """Most frequent interior segment length; ties go to the smallest length."""
    interior = np.asarray(lengths[1:-1], dtype=int)
    if interior.size == 0:
        raise InsufficientTriggers("No complete trigger interval to measure")
    return int(stats.mode(interior, keepdims=False).mode)


def estimate_scan_window(
    train: np.ndarray,
    sampling_period_ms: float,
    cfg: PhysioConfig,
    *,
    policy: Optional[TriggerPolicy] = None,
    check_consistency: bool = True,
    truncate: bool = False,
    trust_start_time: bool = False,
) -> ScanWindow:
    """
    Locate the run inside the trigger log.

    Normal mode:
      start      = leading segment length * period
      repetition = (modal interior length + 1) * period
      end        = (total - trailing segment length) * period + repetition
    The "+1" accounts for the pulse sample itself.

    trust_start_time: the whole trigger log span is taken as the run; no
    triggers are required and no repetition time is measured.
    """
    period = float(sampling_period_ms)
    total = int(len(train))
    if total == 0:
        raise MalformedLog("Trigger log holds no samples")
    train = apply_trigger_policy(train, policy, cfg)

    if trust_start_time:
        logger.warning("Trusting log start time only: using the whole %.1f ms trigger log span", total * period)
        return ScanWindow(start_ms=0.0, end_ms=total * period, repetition_ms=None, interval_count=0)

    if not has_pulses(train, cfg):
        raise NoTriggersFound("No trigger pulses found in the trigger log")

    lengths = segment_lengths(train, cfg)
    n_pulses = len(lengths) - 1
    if n_pulses < 2:
        raise InsufficientTriggers(f"Need at least 2 triggers to measure the repetition time, found {n_pulses}")

    hist = interval_histogram(lengths)
    mode_len = modal_interval(lengths)
    repetition_ms = (mode_len + 1) * period
    start_ms = lengths[0] * period
    end_ms = (total - lengths[-1]) * period + repetition_ms
    logger.debug("Trigger interval histogram (samples: count): %s", hist)
    logger.info("Found %d triggers, TR = %.2f ms", n_pulses, repetition_ms)

    if check_consistency:
        min_tr = (min(hist) + 1) * period
        max_tr = (max(hist) + 1) * period
        tol = cfg.tr_tolerance_samples * period
        if repetition_ms - min_tr > tol or max_tr - repetition_ms > tol:
            raise InconsistentTR(
                f"Trigger intervals range {min_tr:.2f}-{max_tr:.2f} ms around TR {repetition_ms:.2f} ms "
                f"(tolerance {tol:.2f} ms); use skip/keep options or disable the check"
            )

    if truncate:
        bound = start_ms + n_pulses * repetition_ms
        if end_ms > bound:
            logger.info("Truncating window end by %.2f ms to %d x TR", end_ms - bound, n_pulses)
            end_ms = bound

    return ScanWindow(start_ms=start_ms, end_ms=end_ms, repetition_ms=repetition_ms, interval_count=n_pulses)
