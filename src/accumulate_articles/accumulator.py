"""Per-query accumulation of articles ahead of topic extraction."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable

from accumulate_articles.models import AccumulationBuffer, FlushOutcome
from common.errors import ComputeFailure
from dispatch_results.dispatch_results import ResultDispatcher
from extract_topics.extract_topics import ComputeTrigger
from extract_topics.models import ArticleTopics, TopicParameters
from monitor_articles.models import Article, QueryKey

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    buffer: AccumulationBuffer
    lock: threading.Lock = field(default_factory=threading.Lock)
    closed: bool = False


class Accumulator:
    """Collect articles per query key and flush them to the compute stage.

    A buffer flushes once it holds ``threshold`` articles or its stream has
    ended. It is cleared only after a successful compute run; on failure it
    is kept whole and the next accept (or ``flush``) sends it again together
    with whatever arrived since. Flushes for one key never overlap, while
    different keys proceed independently.
    """

    def __init__(self, compute: ComputeTrigger, results: ResultDispatcher, threshold: int):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.compute = compute
        self.results = results
        self.threshold = threshold
        self._slots: dict[QueryKey, _Slot] = {}
        self._lock = threading.Lock()

    def _slot(self, query_key: QueryKey) -> _Slot:
        with self._lock:
            slot = self._slots.get(query_key)
            if slot is None:
                slot = _Slot(buffer=AccumulationBuffer(query_key=query_key))
                self._slots[query_key] = slot
            return slot

    def _close(self, slot: _Slot) -> None:
        slot.closed = True
        with self._lock:
            if self._slots.get(slot.buffer.query_key) is slot:
                del self._slots[slot.buffer.query_key]

    def active_keys(self) -> list[QueryKey]:
        with self._lock:
            return list(self._slots)

    def undelivered(self, query_key: QueryKey) -> list[ArticleTopics]:
        """Results computed for the key that have not reached the requester yet."""
        return self.results.pending(query_key)

    def buffered(self, query_key: QueryKey) -> list[Article]:
        with self._lock:
            slot = self._slots.get(query_key)
        if slot is None:
            return []
        with slot.lock:
            return list(slot.buffer.items)

    def accept(
        self,
        query_key: QueryKey,
        items: Iterable[Article],
        end_of_stream: bool = False,
        parameters: TopicParameters | None = None,
    ) -> FlushOutcome | None:
        """Append items to the key's buffer and flush when due.

        Returns the flush outcome, or None when the buffer did not flush.
        """
        items = [item for item in items if item is not None]
        while True:
            slot = self._slot(query_key)
            with slot.lock:
                if slot.closed:
                    continue
                buffer = slot.buffer
                buffer.items.extend(items)
                if end_of_stream:
                    buffer.end_of_stream = True
                if parameters is not None:
                    buffer.parameters = parameters

                if len(buffer) < self.threshold and not buffer.end_of_stream:
                    logger.debug("Buffered %d/%d articles for %s", len(buffer), self.threshold, query_key)
                    return None
                return self._flush(slot)

    def flush(self, query_key: QueryKey) -> FlushOutcome | None:
        """Flush a retained buffer now, whatever its size. None if nothing is buffered."""
        with self._lock:
            slot = self._slots.get(query_key)
        if slot is None:
            return None
        with slot.lock:
            if slot.closed or (not slot.buffer.items and not slot.buffer.end_of_stream):
                return None
            return self._flush(slot)

    def _flush(self, slot: _Slot) -> FlushOutcome:
        # Caller holds slot.lock.
        buffer = slot.buffer
        query_key = buffer.query_key
        items = list(buffer.items)

        if items:
            logger.info("Flushing %d articles for %s", len(items), query_key)
        else:
            logger.warning("No articles to process for %s", query_key)

        try:
            results = self.compute.run(items, buffer.parameters)
        except ComputeFailure as e:
            logger.error("Topic extraction failed for %s, keeping %d articles: %s", query_key, len(items), e)
            return FlushOutcome(query_key=query_key, flushed=False, items=items, error=e)

        buffer.items.clear()
        self.results.deliver(query_key, results)

        if buffer.end_of_stream:
            logger.info("Stream ended for %s, releasing its buffer", query_key)
            self._close(slot)

        return FlushOutcome(query_key=query_key, flushed=True, items=items, results=results)
