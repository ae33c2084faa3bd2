from datetime import datetime, timedelta

import pytest

from batch_check import (
    ThresholdError,
    batch_status_text,
    check_status_text,
    evaluate,
    parse_thresholds,
)
from batch_models import (
    BatchRecord,
    BatchStatus,
    CheckStatus,
    FetchFailed,
    FetchSucceeded,
    Thresholds,
)

NOW = datetime(2026, 10, 19, 12, 0, 0)
CLASS = "SS_SupportImportEmailMAPI"
AGE_CHECK = Thresholds(warning_seconds=60, critical_seconds=120)


def _finished(age_seconds: int) -> FetchSucceeded:
    end = NOW - timedelta(seconds=age_seconds)
    return FetchSucceeded(
        BatchRecord(status=BatchStatus.FINISHED, start_time=end - timedelta(minutes=5), end_time=end)
    )


def _record(status: int) -> FetchSucceeded:
    return FetchSucceeded(
        BatchRecord(status=status, start_time=NOW - timedelta(days=3), end_time=NOW - timedelta(days=2))
    )


def test_fetch_failure_without_cause():
    result = evaluate(CLASS, FetchFailed("timeout"), AGE_CHECK, NOW)

    assert result.status == CheckStatus.UNKNOWN
    assert result.message == "Error: timeout"


def test_fetch_failure_with_cause():
    result = evaluate(CLASS, FetchFailed("timeout", cause="socket closed"), AGE_CHECK, NOW)

    assert result.status == CheckStatus.UNKNOWN
    assert result.message == "Error: timeout (socket closed)"


@pytest.mark.parametrize("thresholds", [Thresholds(), AGE_CHECK, Thresholds(0, 5)])
def test_fetch_failure_is_unknown_regardless_of_thresholds(thresholds):
    result = evaluate(CLASS, FetchFailed(f"Class '{CLASS}' not found!"), thresholds, NOW)

    assert result.status == CheckStatus.UNKNOWN
    assert result.message == f"Error: Class '{CLASS}' not found!"


@pytest.mark.parametrize("thresholds", [Thresholds(), AGE_CHECK])
def test_hold_is_warning(thresholds):
    result = evaluate(CLASS, _record(BatchStatus.HOLD), thresholds, NOW)

    assert result.status == CheckStatus.WARNING
    assert result.message == f"Batch class '{CLASS}' is Warning (Withheld)"


@pytest.mark.parametrize("thresholds", [Thresholds(), AGE_CHECK])
def test_error_is_critical(thresholds):
    result = evaluate(CLASS, _record(BatchStatus.ERROR), thresholds, NOW)

    assert result.status == CheckStatus.CRITICAL
    assert result.message == f"Batch class '{CLASS}' is Critical (Error)"


@pytest.mark.parametrize(
    "raw, label",
    [(BatchStatus.WAITING, "Waiting"), (BatchStatus.EXECUTING, "Executing"), (7, "Unknown"), (-3, "Unknown")],
)
def test_unjudgeable_status_is_unknown_with_raw_value(raw, label):
    result = evaluate(CLASS, _record(raw), AGE_CHECK, NOW)

    assert result.status == CheckStatus.UNKNOWN
    assert result.message == (
        f"Batch class '{CLASS}' is Unknown ({label}): Confused about batch status of {int(raw)}"
    )


def test_finished_without_age_check_is_ok():
    result = evaluate(CLASS, _finished(10 * 86400), Thresholds(warning_seconds=60, critical_seconds=0), NOW)

    assert result.status == CheckStatus.OK
    assert "Started" in result.message
    assert "Ended" in result.message
    assert "last ran" not in result.message


@pytest.mark.parametrize(
    "age, expected",
    [(150, CheckStatus.CRITICAL), (90, CheckStatus.WARNING), (10, CheckStatus.OK)],
)
def test_finished_age_against_thresholds(age, expected):
    result = evaluate(CLASS, _finished(age), AGE_CHECK, NOW)

    assert result.status == expected


def test_finished_message_layout():
    result = evaluate(CLASS, _finished(90), AGE_CHECK, NOW)

    assert result.message == (
        f"Batch class '{CLASS}' is Warning (Executed): "
        "Started 2026-10-19 11:53:30, Ended 2026-10-19 11:58:30, last ran 0:01:30 ago"
    )


def test_exactly_on_threshold_is_not_exceeded():
    assert evaluate(CLASS, _finished(120), AGE_CHECK, NOW).status == CheckStatus.WARNING
    assert evaluate(CLASS, _finished(60), AGE_CHECK, NOW).status == CheckStatus.OK


def test_zero_warning_threshold_goes_straight_to_warning_once_ended():
    result = evaluate(CLASS, _finished(1), Thresholds(warning_seconds=0, critical_seconds=120), NOW)

    assert result.status == CheckStatus.WARNING


def test_long_ages_render_days():
    result = evaluate(CLASS, _finished(86400 + 3723), AGE_CHECK, NOW)

    assert result.status == CheckStatus.CRITICAL
    assert result.message.endswith("last ran 1 day, 1:02:03 ago")


def test_age_display_drops_microseconds():
    now = NOW.replace(microsecond=250000)
    result = evaluate(CLASS, _finished(30), AGE_CHECK, now)

    assert result.message.endswith("last ran 0:00:30 ago")


def test_evaluate_is_deterministic():
    outcome = _finished(90)

    assert evaluate(CLASS, outcome, AGE_CHECK, NOW) == evaluate(CLASS, outcome, AGE_CHECK, NOW)


def test_status_text_defaults():
    assert check_status_text(CheckStatus.OK) == "OK"
    assert check_status_text(CheckStatus.UNKNOWN) == "Unknown"
    assert batch_status_text(BatchStatus.FINISHED) == "Executed"
    assert batch_status_text(BatchStatus.HOLD) == "Withheld"
    assert batch_status_text(99) == "Unknown"


def test_parse_thresholds_accepts_disabled_values():
    assert parse_thresholds("0", "0") == Thresholds(0, 0)
    assert parse_thresholds("300", "0") == Thresholds(300, 0)
    assert parse_thresholds(" 60 ", "120") == Thresholds(60, 120)


@pytest.mark.parametrize("warning, critical", [("abc", "10"), ("10", "1.5"), ("", "10")])
def test_parse_thresholds_rejects_non_numbers(warning, critical):
    with pytest.raises(ThresholdError, match="must be numbers"):
        parse_thresholds(warning, critical)


def test_parse_thresholds_rejects_negative_values():
    with pytest.raises(ThresholdError, match="must not be negative"):
        parse_thresholds("-5", "60")


@pytest.mark.parametrize("warning, critical", [("120", "60"), ("60", "60")])
def test_parse_thresholds_requires_critical_longer_than_warning(warning, critical):
    with pytest.raises(ThresholdError, match="Critical threshold must be longer"):
        parse_thresholds(warning, critical)


def test_open_ended_end_date_does_not_overflow():
    record = BatchRecord(status=BatchStatus.FINISHED, start_time=datetime(9999, 12, 31), end_time=datetime.max)

    result = evaluate(CLASS, FetchSucceeded(record), AGE_CHECK, NOW)

    assert result.status == CheckStatus.OK
    assert "Ended 9999-12-31 23:59:59" in result.message
