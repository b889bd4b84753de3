"""Tests for common.datetime module."""

from datetime import datetime, timedelta, timezone

import pytest

from common.datetime import (
    ensure_utc,
    format_timestamp,
    parse_datetime,
    parse_request_date,
)


class TestParseDatetime:
    def test_parse_iso_string(self) -> None:
        result = parse_datetime("2024-01-15T10:30:00+00:00")
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_iso_string_with_z(self) -> None:
        result = parse_datetime("2024-01-15T10:30:00Z")
        assert result.tzinfo == timezone.utc
        assert result.hour == 10

    def test_converts_offsets_to_utc(self) -> None:
        result = parse_datetime("2024-01-15T12:30:00+02:00")
        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_datetime_object(self) -> None:
        dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert parse_datetime(dt) == dt

    def test_parse_none_raises(self) -> None:
        with pytest.raises(ValueError, match="missing"):
            parse_datetime(None)


class TestFormatTimestamp:
    def test_wire_format(self) -> None:
        dt = datetime(2024, 3, 5, 7, 8, 9, 123456, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2024-03-05T07:08:09Z"

    def test_naive_datetime_is_treated_as_utc(self) -> None:
        assert format_timestamp(datetime(2024, 1, 1)) == "2024-01-01T00:00:00Z"

    def test_aware_datetime_is_converted(self) -> None:
        dt = datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        assert format_timestamp(dt) == "2024-01-01T00:00:00Z"


class TestEnsureUtc:
    def test_naive(self) -> None:
        assert ensure_utc(datetime(2024, 1, 1)).tzinfo == timezone.utc


class TestParseRequestDate:
    def test_day_month_year(self) -> None:
        assert parse_request_date("05/03/2024") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_iso_date(self) -> None:
        assert parse_request_date("2024-03-05") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_iso_timestamp(self) -> None:
        assert parse_request_date("2024-03-05T10:00:00Z") == datetime(
            2024, 3, 5, 10, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("value", ["", "   ", "not a date", "31/02/2024x"])
    def test_rejects_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_request_date(value)
