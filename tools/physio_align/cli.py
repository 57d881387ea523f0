from __future__ import annotations

import argparse
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from .config import load_config
from .errors import ExitCode, PhysioError
from .io import check_outputs
from .log import setup_logging
from .pipeline import PULSE_MODES, RunOptions, extract_run, write_run
from .types import TriggerPolicy

logger = logging.getLogger("physio_align.cli")


def _set_matplotlib_cache_dir() -> None:
    # Avoid slow imports / warnings if ~/.matplotlib is not writable.
    os.environ.setdefault("MPLCONFIGDIR", str(Path(tempfile.gettempdir()) / "matplotlib"))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="extract-physio",
        description="Cut respiration/pulse/cardiac logger traces to the span of one scan run, "
        "synchronised to the scanner trigger log.",
    )
    ap.add_argument("log_dir", help="Directory holding the raw logs.")
    ap.add_argument("prefix", help="Common log file name prefix (e.g. 'Physio_20240101_101500').")
    ap.add_argument("-o", "--out", help="Output prefix. Default: <prefix> in the current directory.")
    ap.add_argument("--config", help="JSON/YAML file overriding logger constants.")

    trig = ap.add_argument_group("trigger selection")
    trig.add_argument("--skip-first", type=int, default=0, metavar="N", help="Ignore the first N triggers.")
    trig.add_argument("--skip-last", type=int, default=0, metavar="N", help="Ignore the last N triggers.")
    trig.add_argument("--keep-first", type=int, default=None, metavar="N", help="Use only the first N triggers.")
    trig.add_argument("--no-tr-check", action="store_true", help="Do not fail on irregular trigger intervals.")
    trig.add_argument(
        "--trust-start-time",
        action="store_true",
        help="Degraded mode: ignore triggers and use the whole trigger log span.",
    )
    trig.add_argument("--truncate", action="store_true", help="Clamp the window end to start + N x TR.")

    out = ap.add_argument_group("outputs")
    out.add_argument("--emit-trigger", action="store_true", help="Also write the trigger pulse train.")
    out.add_argument(
        "--pulse-mode",
        choices=PULSE_MODES,
        default="raw",
        help="Write the pulse log as its value trace (raw) or as its heart-beat pulse train (triggered).",
    )
    out.add_argument("--no-ecg", action="store_true", help="Ignore the cardiac log even if present.")
    out.add_argument("--report", action="store_true", help="Write <out>_alignment.csv.")
    out.add_argument("--plot", action="store_true", help="Write a QC figure <out>_qc.png.")
    out.add_argument("--overwrite", action="store_true", help="Replace existing outputs.")

    verb = ap.add_mutually_exclusive_group()
    verb.add_argument("-v", "--verbose", action="count", default=0, help="More output (repeatable).")
    verb.add_argument("-q", "--quiet", action="store_true", help="Only warnings and errors.")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(-1 if args.quiet else args.verbose)

    try:
        cfg = load_config(args.config)
        policy = TriggerPolicy(skip_first=args.skip_first, skip_last=args.skip_last, keep_first=args.keep_first)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return ExitCode.INVALID_ARGS

    options = RunOptions(
        policy=policy,
        check_consistency=not args.no_tr_check,
        truncate=args.truncate,
        trust_start_time=args.trust_start_time,
        emit_trigger=args.emit_trigger,
        pulse_mode=args.pulse_mode,
        include_ecg=not args.no_ecg,
    )
    out_prefix = args.out or args.prefix
    plot_path = Path(f"{out_prefix}_qc.png")

    try:
        run = extract_run(args.log_dir, args.prefix, options, cfg)
        if args.plot:
            check_outputs([plot_path], args.overwrite)
        write_run(run, out_prefix, overwrite=args.overwrite, report=args.report)
    except PhysioError as e:
        logger.error("%s", e)
        return e.exit_code

    if args.plot:
        _set_matplotlib_cache_dir()
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        from .plots import plot_run

        fig = plot_run(run, cfg)
        fig.savefig(plot_path, dpi=120)
        plt.close(fig)
        logger.info("Wrote %s", plot_path)

    return ExitCode.SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
