"""Datetime utilities."""

from __future__ import annotations

from datetime import datetime, timezone

from dateutil import parser as date_parser

# Wire format for publication timestamps: YYYY-MM-DDTHH:mm:ssZ, always UTC.
WIRE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value) -> datetime:
    """Parse datetime from ISO string or return as-is if already datetime.

    Raises:
        ValueError: If the value is missing or not an ISO timestamp.
    """
    if value is None:
        raise ValueError("datetime value is missing")
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def format_timestamp(value: datetime) -> str:
    """Format a datetime in the wire format."""
    return ensure_utc(value).strftime(WIRE_FORMAT)


def parse_request_date(value: str) -> datetime:
    """Parse a user supplied date.

    Accepts ``DD/MM/YYYY``, ``YYYY-MM-DD`` and full ISO timestamps. Dates
    without a time resolve to midnight UTC.

    Raises:
        ValueError: If the value is empty or not a recognisable date.
    """
    if not value or not value.strip():
        raise ValueError("date must not be empty")
    value = value.strip()
    try:
        return ensure_utc(datetime.strptime(value, "%d/%m/%Y"))
    except ValueError:
        pass
    try:
        return ensure_utc(date_parser.isoparse(value))
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unrecognised date: {value}") from exc
