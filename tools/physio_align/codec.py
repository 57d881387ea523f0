"""
Sample stream decoding.

Trigger logs become pulse trains; physiological logs become value traces.
The logger writes a trigger marker one sample *after* the true trigger
instant, and in the trigger log it takes the place of a regular sample slot.
to_pulses therefore moves each pulse back onto the preceding sample and drops
the marker slot. In physiological logs the marker carries no timing meaning
for that channel and is simply deleted.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .config import PhysioConfig


def to_pulses(samples: np.ndarray, cfg: PhysioConfig) -> np.ndarray:
    """
    Convert a raw trigger-log stream into a {0, pulse_value} train.

    Left to right, every 0 immediately followed by a pulse collapses with it
    into a single pulse. The train shrinks by one per collapse.
    """
    samples = np.asarray(samples)
    out: list[int] = []
    for v in samples:
        if v == cfg.trigger_marker:
            if out and out[-1] == 0:
                out[-1] = cfg.pulse_value
            else:
                out.append(cfg.pulse_value)
        else:
            out.append(0)
    return np.asarray(out, dtype=np.int64)


def has_pulses(train: np.ndarray, cfg: PhysioConfig) -> bool:
    return bool(np.any(np.asarray(train) == cfg.pulse_value))


def pulse_indices(train: np.ndarray, cfg: PhysioConfig) -> np.ndarray:
    return np.flatnonzero(np.asarray(train) == cfg.pulse_value)


def to_trace(samples: np.ndarray, cfg: PhysioConfig) -> np.ndarray:
    samples = np.asarray(samples)
    return samples[samples != cfg.trigger_marker]


def deinterleave(trace: np.ndarray, index: int, total: int) -> np.ndarray:
    """Return trace[index], trace[index + total], trace[index + 2*total], ..."""
    if total < 1:
        raise ValueError("total must be >= 1")
    if not 0 <= index < total:
        raise ValueError(f"index must be in [0, {total}), got {index}")
    return np.asarray(trace)[index::total]


def interleave(parts: Sequence[np.ndarray]) -> np.ndarray:
    """Inverse of deinterleave over all indices; parts may differ in length by one."""
    if not parts:
        return np.array([], dtype=np.int64)
    total = len(parts)
    n = sum(len(p) for p in parts)
    out = np.empty(n, dtype=np.result_type(*[np.asarray(p) for p in parts]))
    for i, p in enumerate(parts):
        out[i::total] = p
    return out


def apply_offset(trace: np.ndarray, constant: float) -> np.ndarray:
    trace = np.asarray(trace)
    if float(constant).is_integer() and np.issubdtype(trace.dtype, np.integer):
        return trace - int(constant)
    return trace - float(constant)
