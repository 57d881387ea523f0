#!/usr/bin/env python3
"""
Extract one scan run from continuously logged physio traces.

Usage:
    python tools/extract_physio.py <log_dir> <prefix> [-o OUT] [--skip-first N] ...
"""
from __future__ import annotations

from physio_align.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
