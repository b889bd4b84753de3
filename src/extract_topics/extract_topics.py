"""Turn a flushed buffer into per-article topic words."""

from __future__ import annotations

import logging
from typing import Sequence

from common.errors import ComputeFailure, DeliveryExhausted
from common.retry import RetryPolicy
from extract_topics.engine import ComputeEngine
from extract_topics.models import ArticleTopics, CorpusDocument, TopicParameters
from monitor_articles.models import Article

logger = logging.getLogger(__name__)


def unique_articles(items: Sequence[Article]) -> list[Article]:
    """Drop repeated ids, keeping the latest copy in first-seen position."""
    latest: dict[str, Article] = {}
    for article in items:
        latest[article.id] = article
    return list(latest.values())


def build_corpus(items: Sequence[Article]) -> list[CorpusDocument]:
    return [CorpusDocument(id=a.id, label=a.label, text=a.body_text) for a in items]


class ComputeTrigger:
    """Run topic extraction over a buffer and reassemble the results.

    Either every article gets a result or ``ComputeFailure`` is raised.
    """

    def __init__(self, engine: ComputeEngine, retry_policy: RetryPolicy, parameters: TopicParameters):
        self.engine = engine
        self.retry_policy = retry_policy
        self.parameters = parameters

    def run(
        self,
        items: Sequence[Article],
        parameters: TopicParameters | None = None,
    ) -> list[ArticleTopics]:
        parameters = parameters or self.parameters
        articles = unique_articles(items)
        if not articles:
            return []

        if len(articles) < len(items):
            logger.info("Ignoring %d repeated articles in corpus", len(items) - len(articles))

        corpus = build_corpus(articles)
        logger.info(
            "Extracting %d topics (%d words each) from %d articles",
            parameters.num_topics,
            parameters.num_top_words,
            len(corpus),
        )
        try:
            raw_results = self.retry_policy.attempt(
                lambda: self.engine.extract_topics(
                    corpus, parameters.num_topics, parameters.num_top_words
                ),
                name="topic extraction",
            )
        except DeliveryExhausted as e:
            raise ComputeFailure(f"topic extraction unavailable: {e}") from e
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise ComputeFailure(f"topic extraction failed: {e}") from e

        if not isinstance(raw_results, list):
            raise ComputeFailure("topic extraction returned no result list")

        top_words = {}
        for result in raw_results:
            if not isinstance(result, dict) or not result.get("id"):
                continue
            words = result.get("topWords") or []
            if isinstance(words, str) or not isinstance(words, (list, tuple)):
                raise ComputeFailure(f"malformed topWords for article {result['id']}")
            top_words[result["id"]] = [str(word) for word in words]

        missing = [a.id for a in articles if a.id not in top_words]
        if missing:
            raise ComputeFailure(
                f"topic extraction returned no result for {len(missing)} articles: {missing[:5]}"
            )

        logger.info("Topic extraction completed for %d articles", len(articles))
        return [
            ArticleTopics(
                id=article.id,
                issue_query=article.query_key.issue_query,
                label=article.label,
                section_id=article.section_id,
                section_name=article.section_name,
                published_at=article.published_at,
                title=article.title,
                url=article.url,
                top_words=top_words[article.id],
            )
            for article in articles
        ]
