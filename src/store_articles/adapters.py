"""Storage and search collaborators.

Each collaborator comes in three flavours: an HTTP adapter speaking the
line-delimited JSON wire format, an in-memory adapter used by tests and local
runs, and (for storage) a local JSONL file adapter. All of them are idempotent
on article id.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol, Sequence

from common.datetime import format_timestamp
from common.errors import ValidationError
from common.http_client import post_jsonl, post_jsonl_for_records
from common.local_io import append_jsonl_local, read_jsonl_local
from monitor_articles.models import Article

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


class StorageAdapter(Protocol):
    def save(self, batch: Sequence[Article], collection_name: str) -> None:
        ...

    def get_by_ids(self, ids: Sequence[str], collection_name: str) -> list[Article]:
        ...


class SearchAdapter(Protocol):
    def index(self, batch: Sequence[Article], collection_name: str) -> None:
        ...

    def query(
        self,
        text: str,
        collection_name: str,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[str]:
        ...


def _records_to_articles(records: list[dict]) -> list[Article]:
    articles = []
    for record in records:
        try:
            articles.append(Article.from_record(record))
        except ValidationError as e:
            logger.warning("Skipping stored article %s: %s", record.get("id"), e)
    return articles


class HttpStorageAdapter:
    """Storage collaborator reached over HTTP."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def save(self, batch: Sequence[Article], collection_name: str) -> None:
        post_jsonl(
            f"{self.base_url}/save/",
            [article.to_record() for article in batch],
            timeout=self.timeout,
            params={"collectionName": collection_name},
        )

    def get_by_ids(self, ids: Sequence[str], collection_name: str) -> list[Article]:
        records = post_jsonl_for_records(
            f"{self.base_url}/articles/",
            [{"id": article_id} for article_id in ids],
            timeout=self.timeout,
            params={"collectionName": collection_name},
        )
        return _records_to_articles(records)


class HttpSearchAdapter:
    """Search index collaborator reached over HTTP."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def index(self, batch: Sequence[Article], collection_name: str) -> None:
        post_jsonl(
            f"{self.base_url}/index/",
            [article.to_record() for article in batch],
            timeout=self.timeout,
            params={"collectionName": collection_name},
        )

    def query(
        self,
        text: str,
        collection_name: str,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[str]:
        request = {
            "query": text,
            "collectionName": collection_name,
            "startDate": format_timestamp(window_start) if window_start else None,
            "endDate": format_timestamp(window_end) if window_end else None,
        }
        records = post_jsonl_for_records(f"{self.base_url}/search/", [request], timeout=self.timeout)
        return [record["id"] for record in records if record.get("id")]


class InMemoryStorage:
    """Dict-backed storage keyed by collection and article id."""

    def __init__(self):
        self._collections: dict[str, dict[str, Article]] = {}
        self._lock = threading.Lock()

    def save(self, batch: Sequence[Article], collection_name: str) -> None:
        with self._lock:
            collection = self._collections.setdefault(collection_name, {})
            for article in batch:
                collection[article.id] = article

    def get_by_ids(self, ids: Sequence[str], collection_name: str) -> list[Article]:
        with self._lock:
            collection = self._collections.get(collection_name, {})
            return [collection[article_id] for article_id in ids if article_id in collection]

    def collection(self, collection_name: str) -> dict[str, Article]:
        with self._lock:
            return dict(self._collections.get(collection_name, {}))


class InMemorySearchIndex:
    """Naive term index: a document matches when it contains every query term."""

    def __init__(self):
        self._collections: dict[str, dict[str, Article]] = {}
        self._lock = threading.Lock()

    def index(self, batch: Sequence[Article], collection_name: str) -> None:
        with self._lock:
            collection = self._collections.setdefault(collection_name, {})
            for article in batch:
                collection[article.id] = article

    def query(
        self,
        text: str,
        collection_name: str,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[str]:
        terms = {t.lower() for t in TOKEN_PATTERN.findall(text)}
        with self._lock:
            articles = list(self._collections.get(collection_name, {}).values())

        hits = []
        for article in articles:
            if window_start is not None and article.published_at < window_start:
                continue
            if window_end is not None and article.published_at > window_end:
                continue
            tokens = {t.lower() for t in TOKEN_PATTERN.findall(f"{article.title} {article.body_text}")}
            if terms <= tokens:
                hits.append(article)

        hits.sort(key=lambda a: (a.published_at, a.id))
        return [article.id for article in hits]


class LocalJsonlStorage:
    """Append-only JSONL file per collection. The latest record for an id wins."""

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)
        self._lock = threading.Lock()

    def _path(self, collection_name: str) -> Path:
        return self.output_dir / f"{collection_name}.jsonl"

    def save(self, batch: Sequence[Article], collection_name: str) -> None:
        with self._lock:
            count = append_jsonl_local(
                [article.to_record() for article in batch], self._path(collection_name)
            )
        logger.info("Saved %d articles to %s", count, self._path(collection_name))

    def get_by_ids(self, ids: Sequence[str], collection_name: str) -> list[Article]:
        with self._lock:
            records = read_jsonl_local(self._path(collection_name))
        latest = {record.get("id"): record for record in records}
        return _records_to_articles([latest[i] for i in ids if i in latest])
