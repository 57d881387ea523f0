from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np


MS_PER_DAY = 86_400_000


@dataclass(frozen=True)
class RawLog:
    path: Path
    format_version: int
    start_time_ms: int  # ms since local midnight, wraps at 24h
    samples: np.ndarray  # int64, metadata blocks and descriptors removed

    def __len__(self) -> int:
        return int(self.samples.size)


@dataclass(frozen=True)
class ChannelConfig:
    name: str
    suffix: str  # e.g. ".resp"
    sampling_period_ms: float
    header_items: int = 4
    interleave: int = 1
    # One constant per interleaved sub-trace, subtracted after de-interleaving.
    offsets: tuple[float, ...] = (0.0,)

    def __post_init__(self) -> None:
        if self.sampling_period_ms <= 0:
            raise ValueError(f"{self.name}: sampling_period_ms must be > 0")
        if self.interleave < 1:
            raise ValueError(f"{self.name}: interleave must be >= 1")
        if len(self.offsets) != self.interleave:
            raise ValueError(
                f"{self.name}: expected {self.interleave} offsets, got {len(self.offsets)}"
            )


@dataclass(frozen=True)
class TriggerPolicy:
    skip_first: int = 0
    skip_last: int = 0
    keep_first: Optional[int] = None

    def __post_init__(self) -> None:
        if self.skip_first < 0 or self.skip_last < 0:
            raise ValueError("skip counts must be >= 0")
        if self.keep_first is not None and self.keep_first < 1:
            raise ValueError("keep_first must be >= 1")

    @property
    def is_noop(self) -> bool:
        return self.skip_first == 0 and self.skip_last == 0 and self.keep_first is None


@dataclass(frozen=True)
class ScanWindow:
    """
    Absolute run span relative to the trigger log's own start time.

    repetition_ms is None when the window was taken from the log start time
    alone (no trigger interval was measured).
    """

    start_ms: float
    end_ms: float
    repetition_ms: Optional[float]
    interval_count: int

    def __post_init__(self) -> None:
        if not self.end_ms > self.start_ms:
            raise ValueError(f"scan window end ({self.end_ms}) must follow start ({self.start_ms})")

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class AlignedTrace:
    name: str
    values: np.ndarray
    first_index: int
    last_index: int
    sampling_period_ms: float
    clock_offset_ms: int = 0
    padded_samples: int = 0

    def __len__(self) -> int:
        return int(self.values.size)


@dataclass
class RunResult:
    prefix: str
    window: ScanWindow
    trigger_log: RawLog
    pulses: np.ndarray  # trigger pulse train after the skip/keep policy
    traces: list[AlignedTrace] = field(default_factory=list)
    diagnostics: dict[str, Any] = field(default_factory=dict)

    def trace(self, name: str) -> AlignedTrace:
        for t in self.traces:
            if t.name == name:
                return t
        raise KeyError(name)
