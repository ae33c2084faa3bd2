# ======================================================================
#  File......: batch_models.py
#  Purpose...: Dataclasses / enums for batch records, fetch outcomes and check results.
#  Version...: 0.1.0
#  Date......: 2026-10-19
#  Author....: Edwin Rodriguez (Arthrex IT SAP COE)
# ======================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional, Protocol, Union


class BatchStatus(IntEnum):
    """Batch status codes as stored in the ERP batch table."""

    HOLD = 0
    WAITING = 1
    EXECUTING = 2
    ERROR = 3
    FINISHED = 4

    @classmethod
    def parse(cls, raw: int) -> Optional["BatchStatus"]:
        """Return the matching member, or None for codes we don't model."""
        try:
            return cls(raw)
        except ValueError:
            return None


class CheckStatus(IntEnum):
    """Nagios/NRPE return codes. The value is the process exit code."""

    UNKNOWN = -1
    OK = 0
    WARNING = 1
    CRITICAL = 2


@dataclass(frozen=True)
class BatchRecord:
    # raw status code, kept as int so unmodelled values survive the fetch
    status: int
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class Thresholds:
    warning_seconds: int = 0
    critical_seconds: int = 0


@dataclass(frozen=True)
class CheckResult:
    status: CheckStatus
    message: str


@dataclass(frozen=True)
class FetchSucceeded:
    record: BatchRecord


@dataclass(frozen=True)
class FetchFailed:
    message: str
    cause: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FetchFailed":
        """
        Describe a failed fetch from the exception that caused it.

        The chained exception (``raise ... from``, or an unsuppressed implicit
        context) becomes the cause text.
        """
        inner = exc.__cause__
        if inner is None and not exc.__suppress_context__:
            inner = exc.__context__
        return cls(
            message=_exception_text(exc),
            cause=_exception_text(inner) if inner is not None else None,
        )


FetchOutcome = Union[FetchSucceeded, FetchFailed]


class BatchRecordSource(Protocol):
    """Anything that can resolve a batch class to its latest execution record."""

    def fetch_latest(self, class_name: str) -> FetchOutcome:
        ...


def _exception_text(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or type(exc).__name__
