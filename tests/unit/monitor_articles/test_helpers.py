"""Tests for monitor_articles.helpers module."""

from datetime import datetime, timezone

import pytest

from common.errors import ValidationError
from monitor_articles.helpers import parse_monitor_articles_args, validate_monitoring_request


class TestValidateMonitoringRequest:
    def test_valid_request(self) -> None:
        request = validate_monitoring_request(
            {"issueQuery": " climate ", "label": "climate", "startDate": "01/01/2024", "endDate": "02/01/2024"}
        )
        assert request.issue_query == "climate"
        assert request.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert request.end_date == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_accepts_issue_string_alias(self) -> None:
        request = validate_monitoring_request({"issueString": "floods", "label": "f", "startDate": "2024-01-01"})
        assert request.issue_query == "floods"
        assert request.end_date is None

    def test_accepts_parsed_datetimes(self) -> None:
        request = validate_monitoring_request(
            {"issueQuery": "q", "label": "x", "startDate": datetime(2024, 1, 1), "endDate": None}
        )
        assert request.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert request.end_date is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"label": "x", "startDate": "01/01/2024"},
            {"issueQuery": "", "label": "x", "startDate": "01/01/2024"},
            {"issueQuery": "q", "startDate": "01/01/2024"},
            {"issueQuery": "q", "label": "x"},
            {"issueQuery": "q", "label": "x", "startDate": "soon"},
            {"issueQuery": "q", "label": "x", "startDate": "02/01/2024", "endDate": "01/01/2024"},
        ],
    )
    def test_rejects_invalid_requests(self, payload) -> None:
        with pytest.raises(ValidationError):
            validate_monitoring_request(payload)

    def test_rejects_missing_payload(self) -> None:
        with pytest.raises(ValidationError):
            validate_monitoring_request(None)


class TestParseArgs:
    def test_required_and_optional_arguments(self) -> None:
        args = parse_monitor_articles_args(
            ["--issue-query", "climate", "--label", "c", "--start-date", "01/01/2024", "--poll-interval", "30"]
        )
        assert args.issue_query == "climate"
        assert args.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert args.end_date is None
        assert args.poll_interval == 30.0
        assert args.config is None

    def test_invalid_date_exits(self) -> None:
        with pytest.raises(SystemExit):
            parse_monitor_articles_args(["--issue-query", "q", "--label", "c", "--start-date", "soon"])
