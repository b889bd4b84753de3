"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime

from common.datetime import parse_request_date


def setup_logging(level: int = logging.INFO) -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def parse_date(value: str, field_name: str = "date") -> datetime:
    """Parse a date string for argparse arguments.

    Args:
        value: Date string (DD/MM/YYYY, YYYY-MM-DD or ISO timestamp).
        field_name: Name of the field for error messages.

    Returns:
        Parsed UTC datetime.

    Raises:
        argparse.ArgumentTypeError: If the value is not a valid date.
    """
    try:
        return parse_request_date(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"{field_name} must be DD/MM/YYYY, YYYY-MM-DD or an ISO timestamp"
        ) from exc


def positive_int(value: str) -> int:
    """argparse type for strictly positive integers."""
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value} is not an integer") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value} must be a positive integer")
    return number
