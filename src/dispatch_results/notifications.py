"""Requester-facing collaborators: status notifications and result delivery."""

from __future__ import annotations

import logging
import threading
from typing import Protocol, Sequence

from common.http_client import post_jsonl
from extract_topics.models import ArticleTopics
from monitor_articles.models import QueryKey

logger = logging.getLogger(__name__)

STATUS_MONITORING = "MONITORING"
STATUS_RESULT = "RESULT"
STATUS_RATE_LIMITED = "API_RATE_LIMIT_EXCEEDED"


class NotificationSink(Protocol):
    def notify(self, query_key: QueryKey, status: str, message: str) -> None:
        ...


class ResultSink(Protocol):
    def deliver(self, query_key: QueryKey, batch: Sequence[ArticleTopics]) -> None:
        ...


def result_envelope(query_key: QueryKey, batch: Sequence[ArticleTopics]) -> dict:
    """Wire payload for one batch of results."""
    return {
        "query": query_key.issue_query,
        "label": query_key.label,
        "topics": [{"id": r.id, "topWords": list(r.top_words)} for r in batch],
    }


class HttpNotificationSink:
    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout

    def notify(self, query_key: QueryKey, status: str, message: str) -> None:
        post_jsonl(
            self.url,
            [{"issueQuery": query_key.issue_query, "label": query_key.label, "status": status, "message": message}],
            timeout=self.timeout,
        )


class HttpResultSink:
    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout

    def deliver(self, query_key: QueryKey, batch: Sequence[ArticleTopics]) -> None:
        post_jsonl(self.url, [result_envelope(query_key, batch)], timeout=self.timeout)


class InMemoryNotificationSink:
    def __init__(self):
        self.notifications: list[tuple[QueryKey, str, str]] = []
        self._lock = threading.Lock()

    def notify(self, query_key: QueryKey, status: str, message: str) -> None:
        logger.info("[%s] %s: %s", status, query_key, message)
        with self._lock:
            self.notifications.append((query_key, status, message))


class InMemoryResultSink:
    """Collects delivered results, keeping the latest result per article id."""

    def __init__(self):
        self.results: dict[QueryKey, dict[str, ArticleTopics]] = {}
        self.deliveries = 0
        self._lock = threading.Lock()

    def deliver(self, query_key: QueryKey, batch: Sequence[ArticleTopics]) -> None:
        with self._lock:
            self.deliveries += 1
            stored = self.results.setdefault(query_key, {})
            for result in batch:
                stored[result.id] = result
