"""Helper functions for the monitor_articles CLI and request boundary."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from typing import Any, Mapping

from common.cli_helpers import parse_date
from common.datetime import ensure_utc, parse_request_date
from common.errors import ValidationError
from monitor_articles.models import MonitoringRequest

logger = logging.getLogger(__name__)


def _required_text(payload: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    raise ValidationError(f"{keys[0]} cannot be null or empty")


def _optional_date(payload: Mapping[str, Any], key: str):
    value = payload.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return parse_request_date(value)
    except ValueError as exc:
        raise ValidationError(f"{key} is not a valid date: {value}") from exc


def validate_monitoring_request(payload: Mapping[str, Any]) -> MonitoringRequest:
    '''Validate a raw monitoring request.

    Accepts ``issueQuery`` (or the older ``issueString``), ``label``,
    ``startDate`` and an optional ``endDate``.

    Raises:
        ValidationError: If a required field is missing or the dates are invalid.
    '''
    if payload is None:
        raise ValidationError("Monitoring request cannot be null")

    issue_query = _required_text(payload, "issueQuery", "issueString")
    label = _required_text(payload, "label")

    start_date = _optional_date(payload, "startDate")
    if start_date is None:
        raise ValidationError("startDate cannot be null")
    end_date = _optional_date(payload, "endDate")

    if end_date is not None and end_date < start_date:
        raise ValidationError("endDate cannot be before startDate")

    return MonitoringRequest(
        issue_query=issue_query,
        label=label,
        start_date=start_date,
        end_date=end_date,
    )


def parse_monitor_articles_args(argv: list[str] | None = None) -> argparse.Namespace:
    '''Parse CLI arguments for monitor_articles.'''

    parser = argparse.ArgumentParser()
    parser.add_argument("--issue-query", required=True, help="Search query sent to the source")
    parser.add_argument("--label", required=True, help="Label and collection name for the query")
    parser.add_argument(
        "--start-date",
        required=True,
        type=lambda v: parse_date(v, "start-date"),
        help="Harvest articles published from this date (DD/MM/YYYY or YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end-date",
        type=lambda v: parse_date(v, "end-date"),
        default=None,
        help="Stop after this date (default: monitor until interrupted)",
    )
    parser.add_argument("--poll-interval", type=float, default=None, help="Seconds between polls")
    parser.add_argument("--config", default=None, help="Config name under configs/ (default: CONFIG_ENV or prod)")
    return parser.parse_args(argv)
