from datetime import datetime, timedelta, timezone

from datetime_utils import UTC, ensure_utc, to_rfc3339_utc, utc_now


def test_utc_now_is_aware():
    now = utc_now()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_naive_values_are_treated_as_utc():
    value = ensure_utc(datetime(2024, 5, 1, 12, 30))
    assert value.tzinfo == UTC
    assert value.hour == 12


def test_aware_values_are_converted():
    madrid = timezone(timedelta(hours=2))
    value = ensure_utc(datetime(2024, 5, 1, 12, 30, tzinfo=madrid))
    assert value.hour == 10


def test_rfc3339_output():
    assert to_rfc3339_utc(datetime(2024, 5, 1, 12, 30, 5, 123000)) == "2024-05-01T12:30:05Z"
    assert to_rfc3339_utc(None) is None
