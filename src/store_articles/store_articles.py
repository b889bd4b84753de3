"""Fan harvested articles out to the storage and search collaborators."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from common.batching import BatchDispatcher, DeliveryQueue, Destination, DispatchReport
from monitor_articles.models import Article
from store_articles.adapters import SearchAdapter, StorageAdapter

logger = logging.getLogger(__name__)


class ArticleStore:
    """Per-query delivery of articles to storage and the search index.

    Articles that could not be delivered stay pending on their destination
    and go out ahead of the next call's articles.
    """

    def __init__(
        self,
        collection_name: str,
        dispatcher: BatchDispatcher,
        storage: StorageAdapter,
        search: SearchAdapter,
        batch_size: int,
    ):
        self.collection_name = collection_name
        self.queues: list[DeliveryQueue[Article]] = [
            DeliveryQueue(
                dispatcher,
                Destination(
                    name=f"storage/{collection_name}",
                    deliver=lambda batch: storage.save(batch, collection_name),
                ),
                batch_size,
            ),
            DeliveryQueue(
                dispatcher,
                Destination(
                    name=f"search/{collection_name}",
                    deliver=lambda batch: search.index(batch, collection_name),
                ),
                batch_size,
            ),
        ]

    @property
    def pending(self) -> int:
        return sum(len(queue.pending) for queue in self.queues)

    def store(
        self,
        articles: Iterable[Article],
        stop_event: threading.Event | None = None,
    ) -> dict[str, DispatchReport[Article]]:
        """Send articles (plus anything pending) to every destination."""
        articles = list(articles)
        reports = {}
        for queue in self.queues:
            reports[queue.destination.name] = queue.send(articles, stop_event=stop_event)

        incomplete = [name for name, report in reports.items() if not report.complete]
        if incomplete:
            logger.error(
                "Articles for %s still pending on %s", self.collection_name, ", ".join(incomplete)
            )
        return reports
