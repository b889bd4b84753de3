"""Data models for the monitor_articles pipeline stage."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from common.datetime import ensure_utc, format_timestamp, parse_datetime
from common.errors import ValidationError

URL_PATTERN = re.compile(r"^https?://\S+$")


@dataclass(frozen=True)
class QueryKey:
    """Identifies one monitoring query. ``label`` doubles as the collection name."""

    issue_query: str
    label: str

    def __str__(self) -> str:
        return f"{self.issue_query!r}/{self.label}"


class WindowState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SLEEPING = "sleeping"
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass
class MonitoringWindow:
    """Advancing ``[cursor, upper_edge]`` range polled for one query."""

    query_key: QueryKey
    cursor: datetime
    bound_end: datetime | None = None
    state: WindowState = WindowState.IDLE

    def __post_init__(self) -> None:
        self.cursor = ensure_utc(self.cursor)
        if self.bound_end is not None:
            self.bound_end = ensure_utc(self.bound_end)
            if self.bound_end < self.cursor:
                raise ValidationError("end date cannot be before start date")

    def upper_edge(self, now: datetime) -> datetime:
        """Upper edge of the next window: the bound (once reached) or ``now``."""
        now = ensure_utc(now)
        if self.bound_end is None:
            return max(now, self.cursor)
        return max(min(self.bound_end, now), self.cursor)

    def advance(self, upper_edge: datetime) -> None:
        upper_edge = ensure_utc(upper_edge)
        if upper_edge < self.cursor:
            raise ValueError("cursor cannot move backwards")
        if self.bound_end is not None and upper_edge > self.bound_end:
            raise ValueError("cursor cannot pass the window bound")
        self.cursor = upper_edge

    @property
    def exhausted(self) -> bool:
        return self.bound_end is not None and self.cursor >= self.bound_end


@dataclass
class SearchMatch:
    """Metadata returned by a source search, before the body is fetched."""

    id: str
    title: str
    url: str
    api_url: str
    section_id: str
    section_name: str
    published_at: datetime


@dataclass(frozen=True)
class Article:
    """A fully fetched article. Every field must be non-empty."""

    id: str
    query_key: QueryKey
    section_id: str
    section_name: str
    published_at: datetime
    title: str
    url: str
    body_text: str

    def __post_init__(self) -> None:
        for name in ("id", "section_id", "section_name", "title", "url", "body_text"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"article {self.id or '?'} is missing {name}")
        if not self.query_key.issue_query or not self.query_key.label:
            raise ValidationError(f"article {self.id} has an incomplete query key")
        if not URL_PATTERN.match(self.url):
            raise ValidationError(f"article {self.id} has an invalid url: {self.url}")
        if self.published_at is None:
            raise ValidationError(f"article {self.id} is missing published_at")
        object.__setattr__(self, "published_at", ensure_utc(self.published_at))

    @property
    def label(self) -> str:
        return self.query_key.label

    def to_record(self) -> dict[str, str]:
        """Wire representation."""
        return {
            "id": self.id,
            "issueQuery": self.query_key.issue_query,
            "label": self.query_key.label,
            "sectionId": self.section_id,
            "sectionName": self.section_name,
            "webPublicationDate": format_timestamp(self.published_at),
            "webTitle": self.title,
            "webUrl": self.url,
            "bodyText": self.body_text,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Article":
        """Build an article from its wire representation.

        Raises:
            ValidationError: If a field is missing or malformed.
        """
        try:
            published_at = parse_datetime(record["webPublicationDate"])
            return cls(
                id=record["id"],
                query_key=QueryKey(record["issueQuery"], record["label"]),
                section_id=record["sectionId"],
                section_name=record["sectionName"],
                published_at=published_at,
                title=record["webTitle"],
                url=record["webUrl"],
                body_text=record["bodyText"],
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise ValidationError(f"malformed article record: {exc}") from exc


@dataclass
class MonitoringRequest:
    """A validated request to start monitoring an issue query."""

    issue_query: str
    label: str
    start_date: datetime
    end_date: datetime | None = None

    @property
    def query_key(self) -> QueryKey:
        return QueryKey(self.issue_query, self.label)

    def to_window(self) -> MonitoringWindow:
        return MonitoringWindow(
            query_key=self.query_key,
            cursor=self.start_date,
            bound_end=self.end_date,
        )
