"""Harvest the articles of one poll window."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from common.errors import DeliveryExhausted, PartialFetchFailure, ValidationError
from common.retry import RetryPolicy
from monitor_articles.fetch_articles.guardian_api import SourceAPI
from monitor_articles.models import Article, QueryKey, SearchMatch

logger = logging.getLogger(__name__)


@dataclass
class WindowHarvest:
    """Articles collected for one window, plus what was skipped."""

    articles: list[Article] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    interrupted: bool = False


def build_article(match: SearchMatch, query_key: QueryKey, body_text: str | None) -> Article:
    """Combine search metadata and body text into an Article.

    Raises:
        PartialFetchFailure: If the body is missing or a field is invalid.
    """
    if not body_text:
        raise PartialFetchFailure(f"body text is missing for article {match.id}")
    try:
        return Article(
            id=match.id,
            query_key=query_key,
            section_id=match.section_id,
            section_name=match.section_name,
            published_at=match.published_at,
            title=match.title,
            url=match.url,
            body_text=body_text,
        )
    except ValidationError as e:
        raise PartialFetchFailure(str(e)) from e


def fetch_article(
    source: SourceAPI,
    match: SearchMatch,
    query_key: QueryKey,
    retry_policy: RetryPolicy,
    stop_event: threading.Event | None = None,
) -> Article:
    """Fetch the body for one match.

    Raises:
        PartialFetchFailure: If the body cannot be fetched or is missing.
    """
    try:
        body_text = retry_policy.attempt(
            lambda: source.fetch_body(match.api_url),
            name=f"fetch body {match.id}",
            stop_event=stop_event,
        )
    except DeliveryExhausted as e:
        raise PartialFetchFailure(f"could not fetch article {match.id}: {e}") from e
    except (ValueError, TypeError, AttributeError, KeyError) as e:
        raise PartialFetchFailure(f"unreadable response for article {match.id}: {e}") from e
    return build_article(match, query_key, body_text)


def fetch_window_articles(
    source: SourceAPI,
    query_key: QueryKey,
    window_start: datetime,
    window_end: datetime,
    retry_policy: RetryPolicy,
    stop_event: threading.Event | None = None,
    exclusive_start: bool = False,
) -> WindowHarvest:
    """Search one window and fetch every match independently.

    A failed or empty body skips that match only. With ``exclusive_start``
    matches published exactly at ``window_start`` are left out, since the
    previous window already covered them. When ``stop_event`` is set
    the harvest stops after the fetch in progress and is marked interrupted.

    Raises:
        DeliveryExhausted: If the search itself could not be completed.
    """
    matches = retry_policy.attempt(
        lambda: source.search(query_key.issue_query, window_start, window_end),
        name=f"search {query_key}",
        stop_event=stop_event,
    )

    harvest = WindowHarvest()
    seen: set[str] = set()
    for match in matches:
        if stop_event is not None and stop_event.is_set():
            logger.info("Stop requested, abandoning window for %s", query_key)
            harvest.interrupted = True
            break
        if match.id in seen:
            continue
        if exclusive_start and match.published_at <= window_start:
            continue
        seen.add(match.id)

        try:
            article = fetch_article(source, match, query_key, retry_policy, stop_event)
        except PartialFetchFailure as e:
            logger.warning("Skipping article %s: %s", match.id, e)
            harvest.skipped.append(match.id)
            continue

        harvest.articles.append(article)
        logger.debug("Article processed: %s", article.id)

    logger.info(
        "Collected %d articles for %s (%d skipped)",
        len(harvest.articles),
        query_key,
        len(harvest.skipped),
    )
    return harvest
