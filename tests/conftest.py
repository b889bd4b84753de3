"""Shared fixtures for pipeline tests."""

from datetime import datetime, timezone

import pytest

from common.errors import TransientDeliveryError
from common.retry import RetryPolicy
from monitor_articles.models import Article, QueryKey, SearchMatch

KEY = QueryKey("climate change", "climate")


def build_article(article_id: str, key: QueryKey = KEY, body: str | None = None, **overrides) -> Article:
    fields = {
        "id": article_id,
        "query_key": key,
        "section_id": "environment",
        "section_name": "Environment",
        "published_at": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        "title": f"Title {article_id}",
        "url": f"https://www.theguardian.com/{article_id}",
        "body_text": body or f"Body text of {article_id} about glaciers and emissions",
    }
    fields.update(overrides)
    return Article(**fields)


def build_match(article_id: str, published_at: datetime | None = None) -> SearchMatch:
    return SearchMatch(
        id=article_id,
        title=f"Title {article_id}",
        url=f"https://www.theguardian.com/{article_id}",
        api_url=f"https://content.guardianapis.com/{article_id}",
        section_id="environment",
        section_name="Environment",
        published_at=published_at or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    )


class FakeSource:
    """In-memory SourceAPI. Bodies listed in ``failing`` always raise."""

    def __init__(self, matches=(), failing=(), search_error: Exception | None = None):
        self.matches = list(matches)
        self.failing = set(failing)
        self.search_error = search_error
        self.searches: list[tuple[datetime, datetime]] = []

    def search(self, issue_query, window_start, window_end):
        self.searches.append((window_start, window_end))
        if self.search_error is not None:
            raise self.search_error
        return [m for m in self.matches if window_start <= m.published_at <= window_end]

    def fetch_body(self, url):
        article_id = url.rsplit("/", 1)[-1]
        if article_id in self.failing:
            raise TransientDeliveryError("502", status_code=502)
        return f"Body of {article_id} about glaciers and emissions"


@pytest.fixture
def make_article():
    return build_article


@pytest.fixture
def query_key() -> QueryKey:
    return KEY


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def retry_policy(sleeps) -> RetryPolicy:
    """Three attempts, recording sleeps instead of sleeping."""
    return RetryPolicy(max_attempts=3, base_delay=2.0, sleep=sleeps.append)


@pytest.fixture
def make_match():
    return build_match


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def fast_retry_policy() -> RetryPolicy:
    """Three attempts without any backoff."""
    return RetryPolicy(max_attempts=3, base_delay=0)
