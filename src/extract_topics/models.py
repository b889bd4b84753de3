"""Data models for the extract_topics pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from common.datetime import format_timestamp
from common.errors import ValidationError


@dataclass(frozen=True)
class TopicParameters:
    num_topics: int
    num_top_words: int

    def __post_init__(self) -> None:
        if not isinstance(self.num_topics, int) or self.num_topics <= 0:
            raise ValidationError("Number of topics must be a positive integer")
        if not isinstance(self.num_top_words, int) or self.num_top_words <= 0:
            raise ValidationError("Number of top words per topic must be a positive integer")


@dataclass(frozen=True)
class CorpusDocument:
    """One document handed to the compute engine."""

    id: str
    label: str
    text: str


@dataclass
class ArticleTopics:
    """Topic words for one article, alongside its original metadata."""

    id: str
    issue_query: str
    label: str
    section_id: str
    section_name: str
    published_at: datetime
    title: str
    url: str
    top_words: list[str] = field(default_factory=list)

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "issueQuery": self.issue_query,
            "label": self.label,
            "sectionId": self.section_id,
            "sectionName": self.section_name,
            "webPublicationDate": format_timestamp(self.published_at),
            "webTitle": self.title,
            "webUrl": self.url,
            "topWords": list(self.top_words),
        }
