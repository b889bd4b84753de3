"""CLI for monitoring an issue query on The Guardian."""

from __future__ import annotations

import logging
import sys

from common.cli_helpers import setup_logging
from common.config import load_config
from common.errors import ValidationError
from monitor_articles.helpers import parse_monitor_articles_args, validate_monitoring_request
from topic_pipeline.pipeline import build_pipeline

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_monitor_articles_args(argv)

    config = load_config(args.config)
    if args.poll_interval is not None:
        config.polling.poll_interval = args.poll_interval

    try:
        request = validate_monitoring_request(
            {
                "issueQuery": args.issue_query,
                "label": args.label,
                "startDate": args.start_date,
                "endDate": args.end_date,
            }
        )
    except ValidationError as e:
        logger.error("Monitoring request rejected: %s", e)
        sys.exit(2)

    pipeline = build_pipeline(config)
    try:
        poller = pipeline.registry.start(request)
    except (ValidationError, ValueError) as e:
        logger.error("Monitoring request rejected: %s", e)
        sys.exit(2)

    key = request.query_key
    try:
        while not pipeline.registry.wait(key, timeout=1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping monitoring")
        pipeline.registry.stop_all(timeout=config.source.request_timeout)

    buffered = len(pipeline.accumulator.buffered(key))
    unstored = poller.store.pending
    undelivered = len(pipeline.result_dispatcher.pending(key))
    if buffered:
        logger.warning("%d articles left unprocessed for %s", buffered, key)
    if unstored:
        logger.warning("%d article deliveries to storage left pending for %s", unstored, key)
    if undelivered:
        logger.warning("%d results left undelivered for %s", undelivered, key)
    if buffered or unstored or undelivered:
        sys.exit(1)


if __name__ == "__main__":
    main()
