# ======================================================================
#  File......: batch_source.py
#  Purpose...: Latest batch record lookup over RFC (class name -> BatchRecord)
#  Version...: 0.3.0
#  Date......: 2026-10-19
#  Author....: Edwin Rodriguez (Arthrex IT SAP COE)
# ======================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List

import pandas as pd

from batch_models import (
    BatchRecord,
    BatchStatus,
    FetchFailed,
    FetchOutcome,
    FetchSucceeded,
)
from settings import BatchTableSettings

logger = logging.getLogger(__name__)

READ_TABLE_FUNCTION = "RFC_READ_TABLE"
DELIMITER = "|"

# Still running / not started yet: never "the latest result"
IN_FLIGHT = (BatchStatus.WAITING, BatchStatus.EXECUTING)


class BatchSourceError(RuntimeError):
    """Raised when the batch table can't be read or gives back something unusable."""


class ClassNotFoundError(BatchSourceError):
    pass


class NoBatchRecordsError(BatchSourceError):
    pass


# ---------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------

def _time_to_seconds(value: str, time_format: str) -> int:
    value = (value or "").strip()
    if not value:
        return 0
    if time_format == "hhmmss":
        value = value.zfill(6)
        if len(value) != 6 or not value.isdigit():
            raise BatchSourceError(f"Malformed time value '{value}'")
        hh, mi, ss = int(value[0:2]), int(value[2:4]), int(value[4:6])
        return hh * 3600 + mi * 60 + ss
    return int(value)


def _to_datetime(date_value: str, seconds: int) -> datetime:
    """
    YYYYMMDD + seconds since midnight -> datetime.
    Blank / initial dates (held jobs never ended) come back as datetime.min.
    """
    d = (date_value or "").strip()
    if not d or d == "00000000":
        return datetime.min
    if len(d) != 8 or not d.isdigit():
        raise BatchSourceError(f"Malformed date value '{d}'")
    return datetime.strptime(d, "%Y%m%d") + timedelta(seconds=int(seconds))


def rows_to_frame(resp: Dict[str, Any]) -> pd.DataFrame:
    """Turn an RFC_READ_TABLE response (FIELDS + DATA) into a DataFrame of stripped strings."""
    columns = [(f.get("FIELDNAME") or "").strip() for f in resp.get("FIELDS", []) or []]
    data = resp.get("DATA", []) or []

    rows: List[List[str]] = []
    for d in data:
        parts = [p.strip() for p in (d.get("WA") or "").split(DELIMITER)]
        if len(parts) != len(columns):
            raise BatchSourceError(
                f"Expected {len(columns)} fields per row from {READ_TABLE_FUNCTION}, got {len(parts)}"
            )
        rows.append(parts)

    return pd.DataFrame(rows, columns=columns, dtype=str)


def pick_latest(df: pd.DataFrame, layout: BatchTableSettings) -> BatchRecord:
    """
    Pick the most recent finished-or-held record.

    Ordered by end date desc, then end time desc. In-flight rows are dropped
    here as well as in the WHERE clause.
    """
    df = df.copy()
    df[layout.status_field] = pd.to_numeric(df[layout.status_field], errors="raise").astype(int)
    for col in (layout.start_time_field, layout.end_time_field):
        df[col] = df[col].map(lambda v: _time_to_seconds(v, layout.time_format))
    for col in (layout.start_date_field, layout.end_date_field):
        df[col] = df[col].fillna("").astype(str).str.strip()

    df = df[~df[layout.status_field].isin([int(s) for s in IN_FLIGHT])]
    if df.empty:
        raise NoBatchRecordsError("No finished or held batch records")

    df = df.sort_values(
        [layout.end_date_field, layout.end_time_field],
        ascending=False,
        kind="mergesort",
    )
    r = df.iloc[0]

    return BatchRecord(
        status=int(r[layout.status_field]),
        start_time=_to_datetime(r[layout.start_date_field], r[layout.start_time_field]),
        end_time=_to_datetime(r[layout.end_date_field], r[layout.end_time_field]),
    )


# ---------------------------------------------------------------------
# RFC calls
# ---------------------------------------------------------------------

def resolve_class_id(conn, class_name: str, layout: BatchTableSettings) -> int:
    """Batch class name -> class number. 0 or less means unknown."""
    resp = conn.call(layout.classid_function, IV_CLASSNAME=class_name)
    raw = resp.get("EV_CLASSNUM")
    try:
        return int(raw) if raw not in (None, "") else 0
    except (TypeError, ValueError) as exc:
        raise BatchSourceError(f"Unexpected class number '{raw}' from {layout.classid_function}") from exc


def where_clause(class_num: int, layout: BatchTableSettings) -> List[Dict[str, str]]:
    """RFC_READ_TABLE OPTIONS lines (each under the 72 char limit)."""
    lines = [f"{layout.class_field} = {int(class_num)}"]
    for status in IN_FLIGHT:
        lines.append(f"AND {layout.status_field} <> {int(status)}")
    return [{"TEXT": line} for line in lines]


def read_batch_rows(conn, class_num: int, layout: BatchTableSettings) -> pd.DataFrame:
    fields = [
        layout.start_date_field,
        layout.start_time_field,
        layout.end_date_field,
        layout.end_time_field,
        layout.status_field,
    ]
    resp = conn.call(
        READ_TABLE_FUNCTION,
        QUERY_TABLE=layout.table,
        DELIMITER=DELIMITER,
        FIELDS=[{"FIELDNAME": f} for f in fields],
        OPTIONS=where_clause(class_num, layout),
    )
    return rows_to_frame(resp)


# ---------------------------------------------------------------------
# Record source
# ---------------------------------------------------------------------

class RfcBatchSource:
    """
    BatchRecordSource backed by an RFC connection.

    conn_factory is called once per fetch; the connection is closed afterwards.
    """

    def __init__(self, conn_factory: Callable[[], Any], layout: BatchTableSettings):
        self.conn_factory = conn_factory
        self.layout = layout

    def _fetch_record(self, class_name: str) -> BatchRecord:
        conn = self.conn_factory()
        try:
            class_num = resolve_class_id(conn, class_name, self.layout)
            if class_num <= 0:
                raise ClassNotFoundError(f"Class '{class_name}' not found!")
            logger.debug("Batch class %s has class number %d", class_name, class_num)

            df = read_batch_rows(conn, class_num, self.layout)
            logger.debug("%s returned %d row(s) for class %d", self.layout.table, len(df), class_num)
            if df.empty:
                raise NoBatchRecordsError(f"No batch records found for class '{class_name}'")

            try:
                return pick_latest(df, self.layout)
            except NoBatchRecordsError:
                raise NoBatchRecordsError(f"No batch records found for class '{class_name}'") from None
        finally:
            try:
                conn.close()
            except Exception:
                logger.debug("Ignoring error while closing RFC connection", exc_info=True)

    def fetch_latest(self, class_name: str) -> FetchOutcome:
        try:
            record = self._fetch_record(class_name)
        except Exception as exc:
            logger.debug("Fetch for batch class %s failed", class_name, exc_info=True)
            return FetchFailed.from_exception(exc)
        return FetchSucceeded(record)
