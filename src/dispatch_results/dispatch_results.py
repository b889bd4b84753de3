"""Deliver topic results to the requester."""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from common.batching import BatchDispatcher, DeliveryQueue, Destination, DispatchReport
from common.errors import DeliveryExhausted
from common.retry import RetryPolicy
from dispatch_results.notifications import STATUS_RESULT, NotificationSink, ResultSink
from extract_topics.models import ArticleTopics
from monitor_articles.models import QueryKey

logger = logging.getLogger(__name__)


def notify_safely(
    notifier: NotificationSink,
    retry_policy: RetryPolicy,
    query_key: QueryKey,
    status: str,
    message: str,
) -> bool:
    """Send a notification through the retry policy. Returns False when exhausted."""
    try:
        retry_policy.attempt(
            lambda: notifier.notify(query_key, status, message),
            name=f"notify {status} for {query_key}",
        )
    except DeliveryExhausted as e:
        logger.error("Notification %s for %s not delivered: %s", status, query_key, e)
        return False
    return True


class ResultDispatcher:
    """Batch results per query key, keeping undelivered ones for the next call."""

    def __init__(
        self,
        dispatcher: BatchDispatcher,
        results: ResultSink,
        notifier: NotificationSink,
        batch_size: int,
    ):
        self.dispatcher = dispatcher
        self.results = results
        self.notifier = notifier
        self.batch_size = batch_size
        self._queues: dict[QueryKey, DeliveryQueue[ArticleTopics]] = {}
        self._lock = threading.Lock()

    def _queue(self, query_key: QueryKey) -> DeliveryQueue[ArticleTopics]:
        with self._lock:
            queue = self._queues.get(query_key)
            if queue is None:
                queue = DeliveryQueue(
                    self.dispatcher,
                    Destination(
                        name=f"results/{query_key.label}",
                        deliver=lambda batch: self.results.deliver(query_key, batch),
                    ),
                    self.batch_size,
                )
                self._queues[query_key] = queue
            return queue

    def pending(self, query_key: QueryKey) -> list[ArticleTopics]:
        with self._lock:
            queue = self._queues.get(query_key)
        return queue.pending if queue is not None else []

    def deliver(self, query_key: QueryKey, results: Sequence[ArticleTopics]) -> DispatchReport[ArticleTopics]:
        """Send results (after any still pending) and notify once all are through."""
        report = self._queue(query_key).send(results)
        if not report.complete:
            logger.error(
                "%d results for %s not delivered, kept for the next attempt",
                len(report.remainder),
                query_key,
            )
            return report

        notify_safely(
            self.notifier,
            self.dispatcher.retry_policy,
            query_key,
            STATUS_RESULT,
            f"Delivered topics for {len(report.delivered)} articles",
        )
        with self._lock:
            self._queues.pop(query_key, None)
        return report
