"""
Two-phase run extraction.

extract_run() reads every log and computes every aligned trace in memory;
any error aborts before a single file is written. write_run() then checks all
destinations up front and persists them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .align import align_trace, clock_offset, shift_window
from .codec import apply_offset, deinterleave, to_pulses, to_trace
from .config import PhysioConfig
from .io import check_outputs, find_log, parse_log, write_report, write_trace
from .types import AlignedTrace, ChannelConfig, RawLog, RunResult, ScanWindow, TriggerPolicy
from .window import apply_trigger_policy, estimate_scan_window

logger = logging.getLogger(__name__)

PULSE_MODES = ("raw", "triggered")


@dataclass(frozen=True)
class RunOptions:
    policy: TriggerPolicy = field(default_factory=TriggerPolicy)
    check_consistency: bool = True
    truncate: bool = False
    trust_start_time: bool = False
    emit_trigger: bool = False
    pulse_mode: str = "raw"  # "raw" | "triggered"
    include_ecg: bool = True

    def __post_init__(self) -> None:
        if self.pulse_mode not in PULSE_MODES:
            raise ValueError(f"pulse_mode must be one of {PULSE_MODES}, got {self.pulse_mode!r}")


def _align_channel(
    name: str,
    values,
    raw: RawLog,
    ch: ChannelConfig,
    window: ScanWindow,
    reference: RawLog,
    cfg: PhysioConfig,
) -> AlignedTrace:
    offset = clock_offset(raw.start_time_ms, reference.start_time_ms, cfg)
    start_ms, end_ms = shift_window(window, offset)
    aligned = align_trace(values, start_ms, end_ms, ch.sampling_period_ms, cfg, name=name, clock_offset_ms=offset)
    logger.info("%s: clock offset %+d ms, %d samples", name, offset, len(aligned))
    return aligned


def extract_run(
    log_dir: str | Path,
    prefix: str,
    options: Optional[RunOptions] = None,
    cfg: Optional[PhysioConfig] = None,
) -> RunResult:
    if options is None:
        options = RunOptions()
    if cfg is None:
        cfg = PhysioConfig()
    log_dir = Path(log_dir)

    trig_cfg = cfg.trigger
    trig_path = find_log(log_dir, prefix, [trig_cfg.suffix, cfg.alt_trigger_suffix])
    trig = parse_log(trig_path, trig_cfg.header_items, cfg)
    logger.info("Trigger log %s (format version %d, %d samples)", trig_path.name, trig.format_version, len(trig))

    pulses = apply_trigger_policy(to_pulses(trig.samples, cfg), options.policy, cfg)
    window = estimate_scan_window(
        pulses,
        trig_cfg.sampling_period_ms,
        cfg,
        check_consistency=options.check_consistency,
        truncate=options.truncate,
        trust_start_time=options.trust_start_time,
    )
    logger.info("Scan window %.1f - %.1f ms (%.1f s)", window.start_ms, window.end_ms, window.duration_ms / 1000.0)

    run = RunResult(prefix=prefix, window=window, trigger_log=trig, pulses=pulses)

    for name in ("resp", "puls"):
        ch = cfg.channel(name)
        raw = parse_log(find_log(log_dir, prefix, [ch.suffix]), ch.header_items, cfg)
        if name == "puls" and options.pulse_mode == "triggered":
            values = to_pulses(raw.samples, cfg)
        else:
            values = to_trace(raw.samples, cfg)
        run.traces.append(_align_channel(name, values, raw, ch, window, trig, cfg))

    if options.include_ecg and "ecg" in cfg.channels:
        ch = cfg.channel("ecg")
        ecg_path = log_dir / f"{prefix}{ch.suffix}"
        if ecg_path.is_file():
            raw = parse_log(ecg_path, ch.header_items, cfg)
            trace = to_trace(raw.samples, cfg)
            for i in range(ch.interleave):
                lead = apply_offset(deinterleave(trace, i, ch.interleave), ch.offsets[i])
                lead_name = f"ecg{i + 1}" if ch.interleave > 1 else "ecg"
                run.traces.append(_align_channel(lead_name, lead, raw, ch, window, trig, cfg))
        else:
            logger.info("No cardiac log (%s), skipping", ecg_path.name)
            run.diagnostics["ecg_missing"] = True

    if options.emit_trigger:
        run.traces.append(
            align_trace(
                pulses,
                window.start_ms,
                window.end_ms,
                trig_cfg.sampling_period_ms,
                cfg,
                name="trigger",
            )
        )

    return run


def output_paths(run: RunResult, out_prefix: str | Path) -> dict[str, Path]:
    out_prefix = str(out_prefix)
    return {t.name: Path(f"{out_prefix}.{t.name}") for t in run.traces}


def write_run(
    run: RunResult,
    out_prefix: str | Path,
    *,
    overwrite: bool = False,
    report: bool = False,
) -> list[Path]:
    paths = output_paths(run, out_prefix)
    report_path = Path(f"{out_prefix}_alignment.csv") if report else None

    check_outputs(list(paths.values()) + ([report_path] if report_path else []), overwrite)

    written: list[Path] = []
    for t in run.traces:
        written.append(write_trace(paths[t.name], t.values, overwrite=True))
        logger.debug("Wrote %s", paths[t.name])
    if report_path is not None:
        written.append(write_report(report_path, run, overwrite=True))
    logger.info("Wrote %d file(s) with prefix %s", len(written), out_prefix)
    return written
