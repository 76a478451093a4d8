"""Unit tests for planterplan.core.dates."""

from datetime import date, datetime, timedelta, timezone

import pytest

from planterplan.core.dates import coerce_date, days_between, to_iso_date


class TestCoerceDate:
    def test_date_passthrough(self):
        assert coerce_date(date(2024, 1, 5)) == date(2024, 1, 5)

    def test_naive_datetime(self):
        assert coerce_date(datetime(2024, 1, 5, 23, 59)) == date(2024, 1, 5)

    def test_aware_datetime_converted_to_utc(self):
        plus_five = timezone(timedelta(hours=5))
        assert coerce_date(datetime(2024, 1, 5, 2, 0, tzinfo=plus_five)) == date(2024, 1, 4)

    def test_iso_date_string(self):
        assert coerce_date("2024-01-05") == date(2024, 1, 5)

    def test_iso_timestamp_string(self):
        assert coerce_date("2024-01-05T10:30:00") == date(2024, 1, 5)
        assert coerce_date(" 2024-01-05 ") == date(2024, 1, 5)

    @pytest.mark.parametrize("value", [None, "", "   ", "garbage", "2024-13-45", 20240105, [], object()])
    def test_invalid_is_none(self, value):
        assert coerce_date(value) is None


class TestDateHelpers:
    def test_to_iso_date(self):
        assert to_iso_date(date(2024, 1, 5)) == "2024-01-05"
        assert to_iso_date("2024-01-05T08:00:00") == "2024-01-05"
        assert to_iso_date("bad") is None

    def test_days_between(self):
        assert days_between("2024-01-06", "2024-01-01") == 5
        assert days_between("2024-01-01", "2024-01-06") == -5
        assert days_between("2024-03-01", "2024-02-28") == 2

    def test_days_between_invalid(self):
        assert days_between(None, "2024-01-01") is None
        assert days_between("2024-01-01", "nope") is None
