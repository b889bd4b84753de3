"""Data models for the accumulate_articles pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field

from common.errors import ComputeFailure
from extract_topics.models import ArticleTopics, TopicParameters
from monitor_articles.models import Article, QueryKey


@dataclass
class AccumulationBuffer:
    """Articles of one query waiting for a compute flush."""

    query_key: QueryKey
    items: list[Article] = field(default_factory=list)
    end_of_stream: bool = False
    parameters: TopicParameters | None = None

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class FlushOutcome:
    query_key: QueryKey
    flushed: bool
    items: list[Article] = field(default_factory=list)
    results: list[ArticleTopics] = field(default_factory=list)
    error: ComputeFailure | None = None
