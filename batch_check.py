# ======================================================================
#  File......: batch_check.py
#  Purpose...: Batch status evaluation (record + thresholds -> Nagios verdict).
#  Version...: 0.1.0
#  Date......: 2026-10-19
#  Author....: Edwin Rodriguez (Arthrex IT SAP COE)
#
#  Notes:
#    - Pure logic: no RFC, no clock reads, no printing
#    - "now" is always passed in by the caller
# ======================================================================

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from batch_models import (
    BatchRecord,
    BatchStatus,
    CheckResult,
    CheckStatus,
    FetchFailed,
    FetchOutcome,
    Thresholds,
)


CHECK_STATUS_TEXT: Dict[CheckStatus, str] = {
    CheckStatus.OK: "OK",
    CheckStatus.WARNING: "Warning",
    CheckStatus.CRITICAL: "Critical",
    CheckStatus.UNKNOWN: "Unknown",
}

BATCH_STATUS_TEXT: Dict[BatchStatus, str] = {
    BatchStatus.HOLD: "Withheld",
    BatchStatus.WAITING: "Waiting",
    BatchStatus.EXECUTING: "Executing",
    BatchStatus.ERROR: "Error",
    BatchStatus.FINISHED: "Executed",
}

UNKNOWN_TEXT = "Unknown"


class ThresholdError(ValueError):
    """Raised when the warning/critical thresholds given on the command line are unusable."""


# ---------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------

def parse_thresholds(warning_raw: str, critical_raw: str) -> Thresholds:
    """
    Turn the two command-line threshold strings into Thresholds.

    Zero disables a threshold. When both are set, critical must be the longer one.
    The ThresholdError message is the exact line shown to the operator.
    """
    try:
        warning = int(str(warning_raw).strip())
        critical = int(str(critical_raw).strip())
    except ValueError as exc:
        raise ThresholdError(
            "Warning and Critical values must be numbers. Run with no parameters for help."
        ) from exc

    if warning < 0 or critical < 0:
        raise ThresholdError("Warning and Critical values must not be negative.")

    if warning != 0 and critical != 0 and critical <= warning:
        raise ThresholdError("Critical threshold must be longer than the warning threshold.")

    return Thresholds(warning_seconds=warning, critical_seconds=critical)


# ---------------------------------------------------------------------
# Status strings
# ---------------------------------------------------------------------

def check_status_text(status: CheckStatus) -> str:
    return CHECK_STATUS_TEXT.get(status, UNKNOWN_TEXT)


def batch_status_text(raw_status: int) -> str:
    status = BatchStatus.parse(raw_status)
    if status is None:
        return UNKNOWN_TEXT
    return BATCH_STATUS_TEXT.get(status, UNKNOWN_TEXT)


def _fmt_time(value: datetime) -> str:
    return str(value.replace(microsecond=0))


def _fmt_age(age: timedelta) -> str:
    return str(age - timedelta(microseconds=age.microseconds))


# ---------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------

def describe_failure(failure: FetchFailed) -> str:
    if failure.cause:
        return f"Error: {failure.message} ({failure.cause})"
    return f"Error: {failure.message}"


def _age_status(record: BatchRecord, thresholds: Thresholds, now: datetime) -> CheckStatus:
    # end + threshold overflows for open-ended dates like 99991231
    age = now - record.end_time
    if age > timedelta(seconds=thresholds.critical_seconds):
        return CheckStatus.CRITICAL
    if age > timedelta(seconds=thresholds.warning_seconds):
        return CheckStatus.WARNING
    return CheckStatus.OK


def classify_record(
    record: BatchRecord,
    thresholds: Thresholds,
    now: datetime,
) -> Tuple[CheckStatus, Optional[str]]:
    """
    Map one batch record to (verdict, message detail).

    Held jobs warn and errored jobs are critical regardless of age. Finished jobs
    are OK unless age checking is on (critical threshold > 0) and the last end
    time is older than a threshold. Anything else is a status we can't judge.
    """
    status = BatchStatus.parse(record.status)

    if status is BatchStatus.HOLD:
        return CheckStatus.WARNING, None

    if status is BatchStatus.ERROR:
        return CheckStatus.CRITICAL, None

    if status is BatchStatus.FINISHED:
        detail = f"Started {_fmt_time(record.start_time)}, Ended {_fmt_time(record.end_time)}"
        if thresholds.critical_seconds <= 0:
            return CheckStatus.OK, detail

        verdict = _age_status(record, thresholds, now)
        detail += f", last ran {_fmt_age(now - record.end_time)} ago"
        return verdict, detail

    # Waiting / Executing shouldn't come back from the query, and anything
    # else is a code we don't know about yet.
    return CheckStatus.UNKNOWN, f"Confused about batch status of {int(record.status)}"


def evaluate(
    class_name: str,
    outcome: FetchOutcome,
    thresholds: Thresholds,
    now: datetime,
) -> CheckResult:
    """Build the Nagios verdict and the single status line for one batch class."""
    if isinstance(outcome, FetchFailed):
        return CheckResult(status=CheckStatus.UNKNOWN, message=describe_failure(outcome))

    record = outcome.record
    verdict, detail = classify_record(record, thresholds, now)

    message = (
        f"Batch class '{class_name}' is {check_status_text(verdict)} "
        f"({batch_status_text(record.status)})"
    )
    if detail:
        message += f": {detail}"

    return CheckResult(status=verdict, message=message)
