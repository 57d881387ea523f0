"""
Error taxonomy for physio_align.

Every error is fatal for the run. Each class carries the process exit code the
command line front end returns for it, so shell scripts can tell failure modes
apart without parsing stderr:

  0  success
  1  unexpected error
  2  usage error (argparse)
  3  missing input file
  4  malformed log
  5  trigger problems (none found, too few, inconsistent interval)
  6  clock mismatch between logs
  7  channel data too short for the scan window
  8  output already exists
"""

from __future__ import annotations


class ExitCode:
    SUCCESS: int = 0
    GENERAL_ERROR: int = 1
    INVALID_ARGS: int = 2
    MISSING_FILE: int = 3
    MALFORMED_LOG: int = 4
    TRIGGER_ERROR: int = 5
    CLOCK_MISMATCH: int = 6
    DATA_TOO_SHORT: int = 7
    OUTPUT_EXISTS: int = 8


class PhysioError(Exception):
    """Base class for every fatal pipeline error."""

    exit_code: int = ExitCode.GENERAL_ERROR


class MissingFile(PhysioError):
    exit_code = ExitCode.MISSING_FILE


class MalformedLog(PhysioError):
    exit_code = ExitCode.MALFORMED_LOG


class NoTriggersFound(PhysioError):
    exit_code = ExitCode.TRIGGER_ERROR


class InsufficientTriggers(PhysioError):
    exit_code = ExitCode.TRIGGER_ERROR


class InconsistentTR(PhysioError):
    exit_code = ExitCode.TRIGGER_ERROR


class ClockMismatch(PhysioError):
    exit_code = ExitCode.CLOCK_MISMATCH


class DataTooShort(PhysioError):
    exit_code = ExitCode.DATA_TOO_SHORT


class OutputExists(PhysioError):
    exit_code = ExitCode.OUTPUT_EXISTS
