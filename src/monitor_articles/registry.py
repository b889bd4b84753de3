"""Process-wide map of active monitoring queries."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from common.errors import ValidationError
from monitor_articles.models import MonitoringRequest, MonitoringWindow, QueryKey
from monitor_articles.monitor_articles import SourcePoller

logger = logging.getLogger(__name__)


class MonitoringRegistry:
    """Run one poller thread per query key and forget it once it finishes."""

    def __init__(self, poller_factory: Callable[[MonitoringWindow], SourcePoller]):
        self.poller_factory = poller_factory
        self._active: dict[QueryKey, tuple[SourcePoller, threading.Thread]] = {}
        self._lock = threading.Lock()

    def start(self, request: MonitoringRequest) -> SourcePoller:
        """Start monitoring a validated request.

        Raises:
            ValidationError: If the same query key is already being monitored.
        """
        query_key = request.query_key
        with self._lock:
            if query_key in self._active:
                raise ValidationError(f"{query_key} is already being monitored")
            poller = self.poller_factory(request.to_window())
            thread = threading.Thread(
                target=self._run,
                args=(poller,),
                name=f"monitor-{query_key.label}",
                daemon=True,
            )
            self._active[query_key] = (poller, thread)

        thread.start()
        logger.info("Monitoring started for %s", query_key)
        return poller

    def _run(self, poller: SourcePoller) -> None:
        try:
            poller.run()
        finally:
            with self._lock:
                entry = self._active.get(poller.query_key)
                if entry is not None and entry[0] is poller:
                    del self._active[poller.query_key]

    def active_keys(self) -> list[QueryKey]:
        with self._lock:
            return list(self._active)

    def get(self, query_key: QueryKey) -> SourcePoller | None:
        with self._lock:
            entry = self._active.get(query_key)
        return entry[0] if entry else None

    def stop(self, query_key: QueryKey, timeout: float | None = None) -> bool:
        """Stop one query and wait for its thread. Returns False if it was not active."""
        with self._lock:
            entry = self._active.get(query_key)
        if entry is None:
            return False
        poller, thread = entry
        poller.stop()
        thread.join(timeout)
        return True

    def stop_all(self, timeout: float | None = None) -> None:
        for query_key in self.active_keys():
            self.stop(query_key, timeout)

    def wait(self, query_key: QueryKey, timeout: float | None = None) -> bool:
        """Block until the query's poller finishes. Returns True once it is gone."""
        with self._lock:
            entry = self._active.get(query_key)
        if entry is None:
            return True
        entry[1].join(timeout)
        return not entry[1].is_alive()
