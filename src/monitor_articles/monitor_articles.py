"""Poll the source for one monitoring query over an advancing time window."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from accumulate_articles.accumulator import Accumulator
from common.datetime import format_timestamp, utc_now
from common.errors import DeliveryExhausted, RateLimitExceeded
from common.retry import RetryPolicy
from dispatch_results.dispatch_results import notify_safely
from dispatch_results.notifications import STATUS_MONITORING, STATUS_RATE_LIMITED, NotificationSink
from monitor_articles.fetch_articles.fetch_articles import WindowHarvest, fetch_window_articles
from monitor_articles.fetch_articles.guardian_api import SourceAPI
from monitor_articles.models import MonitoringWindow, WindowState
from store_articles.store_articles import ArticleStore

logger = logging.getLogger(__name__)


class SourcePoller:
    """State machine ``Idle -> Polling -> Sleeping -> (Polling | Completed)``.

    Each cycle searches ``[cursor, upper_edge]``, stores the harvested
    articles, moves the cursor to the upper edge and then forwards the
    articles to the accumulator, even when some bodies could not be fetched.
    After the first cycle the lower edge is exclusive. A bounded window
    completes once the bound has been polled and nothing is left to store or
    deliver; an open window polls until ``stop`` is called.
    """

    def __init__(
        self,
        window: MonitoringWindow,
        source: SourceAPI,
        store: ArticleStore,
        accumulator: Accumulator,
        notifier: NotificationSink,
        retry_policy: RetryPolicy,
        poll_interval: float,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.window = window
        self.source = source
        self.store = store
        self.accumulator = accumulator
        self.notifier = notifier
        self.retry_policy = retry_policy
        self.poll_interval = poll_interval
        self.clock = clock
        self._stop_event = threading.Event()
        self._cursor_polled = False

    @property
    def query_key(self):
        return self.window.query_key

    @property
    def state(self) -> WindowState:
        return self.window.state

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request a stop. A sleeping poller wakes at once; a polling one finishes its fetch first."""
        logger.info("Stop requested for %s", self.query_key)
        self._stop_event.set()

    def poll_once(self) -> WindowHarvest | None:
        """Run one Polling cycle. Returns None when the search could not be completed."""
        window = self.window
        window.state = WindowState.POLLING
        upper_edge = window.upper_edge(self.clock())
        logger.info(
            "Polling %s from %s to %s",
            self.query_key,
            format_timestamp(window.cursor),
            format_timestamp(upper_edge),
        )

        try:
            harvest = fetch_window_articles(
                self.source,
                self.query_key,
                window.cursor,
                upper_edge,
                self.retry_policy,
                stop_event=self._stop_event,
                exclusive_start=self._cursor_polled,
            )
        except DeliveryExhausted as e:
            logger.error("Search failed for %s, window kept at %s: %s", self.query_key, format_timestamp(window.cursor), e)
            if isinstance(e.last_error, RateLimitExceeded):
                notify_safely(
                    self.notifier,
                    self.retry_policy,
                    self.query_key,
                    STATUS_RATE_LIMITED,
                    "API rate limit exceeded",
                )
            return None

        if harvest.interrupted:
            return harvest

        # Also resends whatever earlier cycles could not store.
        if harvest.articles or self.store.pending:
            self.store.store(harvest.articles, stop_event=self._stop_event)

        window.advance(upper_edge)
        self._cursor_polled = True

        if harvest.articles:
            self.accumulator.accept(self.query_key, harvest.articles)

        if window.exhausted:
            self._complete()
        return harvest

    def _complete(self) -> None:
        """Close the stream and finish, unless data is still waiting for delivery.

        A deferred completion is retried on the next cycle.
        """
        if self.store.pending:
            logger.warning(
                "%d articles for %s not stored yet, completion deferred", self.store.pending, self.query_key
            )
            return

        outcome = self.accumulator.accept(self.query_key, [], end_of_stream=True)
        if outcome is not None and not outcome.flushed:
            logger.warning("Final flush for %s failed, completion deferred", self.query_key)
            return

        undelivered = self.accumulator.undelivered(self.query_key)
        if undelivered:
            logger.warning(
                "%d results for %s not delivered yet, completion deferred", len(undelivered), self.query_key
            )
            return

        self.window.state = WindowState.COMPLETED
        logger.info("Monitoring completed for %s", self.query_key)
        notify_safely(
            self.notifier,
            self.retry_policy,
            self.query_key,
            STATUS_MONITORING,
            f"Monitoring completed for {self.query_key.issue_query}",
        )

    def run(self) -> None:
        """Poll until the window completes or a stop is requested."""
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Poll cycle failed for %s", self.query_key)

            if self.window.state == WindowState.COMPLETED:
                return
            if self._stop_event.is_set():
                break

            self.window.state = WindowState.SLEEPING
            if self._stop_event.wait(self.poll_interval):
                break

        self.window.state = WindowState.STOPPED
        logger.info("Monitoring stopped for %s", self.query_key)
