"""
Scan-run extraction for continuously logged physiological signals.

A background logger records respiration, pulse and (optionally) cardiac
traces across many unrelated acquisitions. This package recovers, from the
logs' start timestamps and the scanner trigger log alone, the exact sample
range of one run in every channel and writes the trimmed traces.

Pipeline:
  parse_log -> to_pulses / to_trace -> estimate_scan_window -> align_trace

Primary entry points are used by tools/extract_physio.py.
"""

from .align import align_trace, clock_offset, shift_window
from .codec import apply_offset, deinterleave, has_pulses, interleave, to_pulses, to_trace
from .config import PhysioConfig, load_config
from .errors import (
    ClockMismatch,
    DataTooShort,
    InconsistentTR,
    InsufficientTriggers,
    MalformedLog,
    MissingFile,
    NoTriggersFound,
    OutputExists,
    PhysioError,
)
from .io import parse_log, write_trace
from .pipeline import RunOptions, extract_run, write_run
from .types import ScanWindow, TriggerPolicy
from .window import apply_trigger_policy, estimate_scan_window

__all__ = [
    "parse_log",
    "write_trace",
    "to_pulses",
    "has_pulses",
    "to_trace",
    "deinterleave",
    "interleave",
    "apply_offset",
    "apply_trigger_policy",
    "estimate_scan_window",
    "clock_offset",
    "shift_window",
    "align_trace",
    "extract_run",
    "write_run",
    "RunOptions",
    "PhysioConfig",
    "load_config",
    "ScanWindow",
    "TriggerPolicy",
    "PhysioError",
    "MissingFile",
    "MalformedLog",
    "NoTriggersFound",
    "InsufficientTriggers",
    "ClockMismatch",
    "InconsistentTR",
    "DataTooShort",
    "OutputExists",
]
