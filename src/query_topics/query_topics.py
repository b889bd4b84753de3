"""Extract topics from articles already stored for a corpus."""

from __future__ import annotations

import logging
from datetime import datetime

from accumulate_articles.accumulator import Accumulator
from accumulate_articles.models import FlushOutcome
from common.batching import chunk
from common.retry import RetryPolicy
from extract_topics.models import TopicParameters
from monitor_articles.models import QueryKey
from store_articles.adapters import SearchAdapter, StorageAdapter

logger = logging.getLogger(__name__)


def query_topics(
    query_key: QueryKey,
    parameters: TopicParameters,
    search: SearchAdapter,
    storage: StorageAdapter,
    accumulator: Accumulator,
    retry_policy: RetryPolicy,
    batch_size: int,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
) -> list[FlushOutcome]:
    """Stream matching stored articles through the accumulator.

    ``query_key.issue_query`` is the search text and ``query_key.label`` the
    corpus (collection) to search. Matching ids are resolved to articles in
    batches, each batch is accepted by the accumulator, and the stream is
    closed with an end-of-stream signal.

    Returns:
        The outcome of every flush the query triggered.

    Raises:
        DeliveryExhausted: If the search or an article lookup kept failing.
    """
    logger.info("Searching %s for %r", query_key.label, query_key.issue_query)
    ids = retry_policy.attempt(
        lambda: search.query(query_key.issue_query, query_key.label, window_start, window_end),
        name=f"search {query_key}",
    )
    logger.info("Found %d stored articles for %s", len(ids), query_key)

    outcomes = []
    for id_batch in chunk(ids, batch_size):
        articles = retry_policy.attempt(
            lambda: storage.get_by_ids(id_batch, query_key.label),
            name=f"load {len(id_batch)} articles from {query_key.label}",
        )
        if len(articles) < len(id_batch):
            logger.warning(
                "%d of %d articles not found in %s",
                len(id_batch) - len(articles),
                len(id_batch),
                query_key.label,
            )
        outcome = accumulator.accept(query_key, articles, parameters=parameters)
        if outcome is not None:
            outcomes.append(outcome)

    outcome = accumulator.accept(query_key, [], end_of_stream=True, parameters=parameters)
    if outcome is not None:
        outcomes.append(outcome)
    return outcomes
