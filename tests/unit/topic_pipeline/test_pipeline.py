"""Tests for topic_pipeline.pipeline module."""

from datetime import datetime, timezone

import pytest

from common.config import parse_config
from dispatch_results.notifications import (
    STATUS_MONITORING,
    STATUS_RESULT,
    HttpNotificationSink,
    InMemoryNotificationSink,
)
from extract_topics.engine import HttpComputeEngine, LdaComputeEngine
from monitor_articles.models import MonitoringRequest
from store_articles.adapters import (
    HttpStorageAdapter,
    InMemorySearchIndex,
    InMemoryStorage,
    LocalJsonlStorage,
)
from topic_pipeline.pipeline import (
    build_engine,
    build_notifier,
    build_pipeline,
    build_search,
    build_storage,
)

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 1, 2, tzinfo=timezone.utc)


class KeywordEngine:
    def extract_topics(self, corpus, num_topics, num_top_words):
        return [{"id": doc.id, "topWords": doc.text.lower().split()[:num_top_words]} for doc in corpus]


def make_config(**sections):
    data = {"retry": {"max_attempts": 2, "base_delay": 0}, "accumulator": {"threshold": 2}}
    data.update(sections)
    return parse_config(data)


class TestBuilders:
    def test_memory_backends_by_default(self) -> None:
        config = make_config()
        assert isinstance(build_storage(config), InMemoryStorage)
        assert isinstance(build_search(config), InMemorySearchIndex)
        assert isinstance(build_notifier(config), InMemoryNotificationSink)

    def test_http_backends_from_endpoints(self) -> None:
        config = make_config(
            storage={"backend": "http"},
            endpoints={"storage_url": "http://storage", "notification_url": "http://client/notify"},
        )
        assert isinstance(build_storage(config), HttpStorageAdapter)
        assert isinstance(build_notifier(config), HttpNotificationSink)

    def test_local_storage(self, tmp_path) -> None:
        config = make_config(storage={"backend": "local", "local_path": str(tmp_path)})
        assert isinstance(build_storage(config), LocalJsonlStorage)

    def test_http_storage_needs_url(self) -> None:
        with pytest.raises(ValueError):
            build_storage(make_config(storage={"backend": "http"}))

    def test_unknown_storage_backend(self) -> None:
        with pytest.raises(ValueError):
            build_storage(make_config(storage={"backend": "s3"}))

    def test_engine_selection(self) -> None:
        assert isinstance(build_engine(make_config()), LdaComputeEngine)
        remote = build_engine(make_config(endpoints={"compute_url": "http://compute"}))
        assert isinstance(remote, HttpComputeEngine)


class TestMonitoringEndToEnd:
    def test_bounded_query_flows_to_results(self, fake_source, make_match) -> None:
        source = fake_source(matches=[make_match("a1"), make_match("a2"), make_match("a3")], failing={"a3"})
        pipeline = build_pipeline(make_config(), source=source, engine=KeywordEngine(), sleep=lambda s: None)
        request = MonitoringRequest("climate change", "climate", START, END)

        pipeline.registry.start(request)
        assert pipeline.registry.wait(request.query_key, timeout=10)

        assert set(pipeline.storage.collection("climate")) == {"a1", "a2"}
        assert pipeline.search.query("glaciers", "climate") == ["a1", "a2"]

        delivered = pipeline.results.results[request.query_key]
        assert set(delivered) == {"a1", "a2"}
        assert delivered["a1"].top_words[:3] == ["body", "of", "a1"]

        statuses = [n[1] for n in pipeline.notifier.notifications]
        assert statuses == [STATUS_RESULT, STATUS_RESULT, STATUS_MONITORING]
        assert pipeline.accumulator.active_keys() == []
        assert pipeline.registry.active_keys() == []

    def test_missing_api_key_is_rejected_on_start(self, monkeypatch) -> None:
        monkeypatch.delenv("GUARDIAN_API_KEY", raising=False)
        pipeline = build_pipeline(make_config(), engine=KeywordEngine())

        with pytest.raises(ValueError):
            pipeline.registry.start(MonitoringRequest("climate change", "climate", START, END))
        assert pipeline.registry.active_keys() == []
