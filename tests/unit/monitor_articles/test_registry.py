"""Tests for monitor_articles.registry module."""

import threading
from datetime import datetime, timezone

import pytest

from common.errors import ValidationError
from monitor_articles.models import MonitoringRequest, QueryKey
from monitor_articles.registry import MonitoringRegistry

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class BlockingPoller:
    """Poller stand-in that runs until stopped."""

    def __init__(self, window):
        self.window = window
        self.started = threading.Event()
        self._stop_event = threading.Event()

    @property
    def query_key(self):
        return self.window.query_key

    def stop(self):
        self._stop_event.set()

    def run(self):
        self.started.set()
        self._stop_event.wait(10)


class TestMonitoringRegistry:
    def test_start_runs_poller_in_thread(self) -> None:
        registry = MonitoringRegistry(BlockingPoller)
        poller = registry.start(MonitoringRequest("climate", "climate", START))

        assert poller.started.wait(5)
        assert registry.active_keys() == [QueryKey("climate", "climate")]
        assert registry.get(QueryKey("climate", "climate")) is poller

        assert registry.stop(QueryKey("climate", "climate"), timeout=5)
        assert registry.wait(QueryKey("climate", "climate"), timeout=5)
        assert registry.active_keys() == []

    def test_rejects_duplicate_query_key(self) -> None:
        registry = MonitoringRegistry(BlockingPoller)
        registry.start(MonitoringRequest("climate", "climate", START))
        try:
            with pytest.raises(ValidationError):
                registry.start(MonitoringRequest("climate", "climate", START))
        finally:
            registry.stop_all(timeout=5)

    def test_different_keys_run_independently(self) -> None:
        registry = MonitoringRegistry(BlockingPoller)
        first = registry.start(MonitoringRequest("climate", "climate", START))
        second = registry.start(MonitoringRequest("floods", "floods", START))
        assert first.started.wait(5) and second.started.wait(5)

        registry.stop(first.query_key, timeout=5)
        registry.wait(first.query_key, timeout=5)
        assert registry.active_keys() == [second.query_key]

        registry.stop_all(timeout=5)
        assert registry.wait(second.query_key, timeout=5)
        assert registry.active_keys() == []

    def test_stop_unknown_key(self) -> None:
        assert not MonitoringRegistry(BlockingPoller).stop(QueryKey("x", "y"))
