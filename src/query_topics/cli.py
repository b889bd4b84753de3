"""CLI for extracting topics from stored articles."""

from __future__ import annotations

import logging
import re
import sys

from common.cli_helpers import setup_logging
from common.config import load_config
from common.errors import DeliveryExhausted, ValidationError
from common.local_io import save_jsonl_records_local
from extract_topics.models import TopicParameters
from monitor_articles.models import QueryKey
from query_topics.helpers import parse_query_topics_args
from query_topics.query_topics import query_topics
from topic_pipeline.pipeline import build_pipeline

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_query_topics_args(argv)
    config = load_config(args.config)
    pipeline = build_pipeline(config)

    try:
        parameters = TopicParameters(args.num_topics, args.num_top_words)
        outcomes = query_topics(
            QueryKey(args.query, args.corpus),
            parameters,
            pipeline.search,
            pipeline.storage,
            pipeline.accumulator,
            pipeline.retry_policy,
            config.batching.batch_size,
            window_start=args.start_date,
            window_end=args.end_date,
        )
    except ValidationError as e:
        logger.error("Query rejected: %s", e)
        sys.exit(2)
    except DeliveryExhausted as e:
        logger.error("Query failed: %s", e)
        sys.exit(1)

    failed = [o for o in outcomes if not o.flushed]
    results = [r for o in outcomes if o.flushed for r in o.results]
    logger.info("Extracted topics for %d articles (%d failed flushes)", len(results), len(failed))

    for result in results:
        print(f"{result.id}: {', '.join(result.top_words)}")

    if args.load_local and results:
        prefix = "topics_" + re.sub(r"\W+", "_", args.corpus).strip("_")
        save_jsonl_records_local(
            [r.to_record() for r in results],
            prefix,
            config.storage.local_path,
        )

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
