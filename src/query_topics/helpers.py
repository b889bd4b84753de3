"""Helper functions for the query_topics CLI and request boundary."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from common.cli_helpers import parse_date, positive_int
from common.datetime import parse_request_date
from common.errors import ValidationError
from extract_topics.models import TopicParameters
from monitor_articles.models import QueryKey


@dataclass
class QueryRequest:
    query_key: QueryKey
    parameters: TopicParameters
    start_date: datetime | None = None
    end_date: datetime | None = None


def _date(payload: Mapping[str, Any], key: str) -> datetime | None:
    value = payload.get(key)
    if value in (None, ""):
        return None
    try:
        return parse_request_date(value)
    except ValueError as exc:
        raise ValidationError(f"{key} is not a valid date: {value}") from exc


def validate_query_request(payload: Mapping[str, Any]) -> QueryRequest:
    """Validate a raw topic query (``query``, ``corpus``, ``numTopics``, ``numTopWordsPerTopic``).

    Raises:
        ValidationError: If a field is missing or invalid.
    """
    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Query is required for search")
    corpus = payload.get("corpus")
    if not isinstance(corpus, str) or not corpus.strip():
        raise ValidationError("Corpus is required for search")

    parameters = TopicParameters(payload.get("numTopics"), payload.get("numTopWordsPerTopic"))

    start_date = _date(payload, "startDate")
    end_date = _date(payload, "endDate")
    if start_date is not None and end_date is not None and end_date < start_date:
        raise ValidationError("End date cannot be before start date")

    return QueryRequest(
        query_key=QueryKey(query.strip(), corpus.strip()),
        parameters=parameters,
        start_date=start_date,
        end_date=end_date,
    )


def parse_query_topics_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for query_topics."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--query", required=True, help="Text to search for in the corpus")
    parser.add_argument("--corpus", required=True, help="Collection (monitoring label) to search")
    parser.add_argument("--num-topics", type=positive_int, default=5)
    parser.add_argument("--num-top-words", type=positive_int, default=10)
    parser.add_argument("--start-date", type=lambda v: parse_date(v, "start-date"), default=None)
    parser.add_argument("--end-date", type=lambda v: parse_date(v, "end-date"), default=None)
    parser.add_argument("--config", default=None, help="Config name under configs/ (default: CONFIG_ENV or prod)")
    parser.add_argument("--load-local", action="store_true", help="Save results to a local file")
    return parser.parse_args(argv)
