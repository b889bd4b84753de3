"""Tests for the monitor_articles and query_topics CLIs."""

import time
from unittest.mock import patch

import pytest

from common.config import parse_config
from common.errors import TransientDeliveryError
from dispatch_results.notifications import InMemoryResultSink
from monitor_articles import cli as monitor_cli
from query_topics import cli as query_cli
from store_articles.adapters import InMemoryStorage
from topic_pipeline.pipeline import build_pipeline


class KeywordEngine:
    def extract_topics(self, corpus, num_topics, num_top_words):
        return [{"id": doc.id, "topWords": ["ice", "sea"][:num_top_words]} for doc in corpus]


class DownStorage(InMemoryStorage):
    def save(self, batch, collection_name):
        raise TransientDeliveryError("503", status_code=503)


class DownResultSink(InMemoryResultSink):
    def deliver(self, query_key, batch):
        raise TransientDeliveryError("503", status_code=503)


def interrupt_when(pipeline, condition):
    """Replace the registry wait with one that interrupts once ``condition`` holds."""

    def wait(query_key, timeout=None):
        for _ in range(500):
            poller = pipeline.registry.get(query_key)
            if poller is not None and condition(poller):
                break
            time.sleep(0.01)
        raise KeyboardInterrupt

    pipeline.registry.wait = wait


def make_config(tmp_path):
    return parse_config(
        {
            "retry": {"max_attempts": 1, "base_delay": 0},
            "accumulator": {"threshold": 10},
            "storage": {"backend": "memory", "local_path": str(tmp_path)},
        }
    )


class TestMonitorArticlesCli:
    @patch("monitor_articles.cli.build_pipeline")
    @patch("monitor_articles.cli.load_config")
    def test_bounded_monitoring_runs_to_completion(
        self, mock_load_config, mock_build_pipeline, tmp_path, fake_source, make_match
    ) -> None:
        config = make_config(tmp_path)
        mock_load_config.return_value = config
        pipeline = build_pipeline(config, source=fake_source(matches=[make_match("a1")]), engine=KeywordEngine())
        mock_build_pipeline.return_value = pipeline

        monitor_cli.main(
            ["--issue-query", "climate change", "--label", "climate", "--start-date", "01/01/2024", "--end-date", "02/01/2024"]
        )

        assert set(pipeline.storage.collection("climate")) == {"a1"}
        assert pipeline.notifier.notifications[-1][1] == "MONITORING"

    @patch("monitor_articles.cli.build_pipeline")
    @patch("monitor_articles.cli.load_config")
    def test_end_before_start_exits(self, mock_load_config, mock_build_pipeline, tmp_path, fake_source) -> None:
        config = make_config(tmp_path)
        mock_load_config.return_value = config
        mock_build_pipeline.return_value = build_pipeline(config, source=fake_source(), engine=KeywordEngine())

        with pytest.raises(SystemExit) as exc_info:
            monitor_cli.main(
                ["--issue-query", "q", "--label", "l", "--start-date", "02/01/2024", "--end-date", "01/01/2024"]
            )
        assert exc_info.value.code == 2

    @patch("monitor_articles.cli.build_pipeline")
    @patch("monitor_articles.cli.load_config")
    def test_unstored_articles_exit_non_zero(
        self, mock_load_config, mock_build_pipeline, tmp_path, fake_source, make_match
    ) -> None:
        config = make_config(tmp_path)
        mock_load_config.return_value = config
        pipeline = build_pipeline(
            config, source=fake_source(matches=[make_match("a1")]), storage=DownStorage(), engine=KeywordEngine()
        )
        interrupt_when(pipeline, lambda poller: poller.store.pending > 0)
        mock_build_pipeline.return_value = pipeline

        with pytest.raises(SystemExit) as exc_info:
            monitor_cli.main(
                ["--issue-query", "climate change", "--label", "climate", "--start-date", "01/01/2024", "--end-date", "02/01/2024"]
            )

        assert exc_info.value.code == 1
        assert "MONITORING" not in [n[1] for n in pipeline.notifier.notifications]

    @patch("monitor_articles.cli.build_pipeline")
    @patch("monitor_articles.cli.load_config")
    def test_undelivered_results_exit_non_zero(
        self, mock_load_config, mock_build_pipeline, tmp_path, fake_source, make_match, query_key
    ) -> None:
        config = make_config(tmp_path)
        mock_load_config.return_value = config
        pipeline = build_pipeline(
            config, source=fake_source(matches=[make_match("a1")]), results=DownResultSink(), engine=KeywordEngine()
        )
        interrupt_when(pipeline, lambda poller: pipeline.result_dispatcher.pending(query_key))
        mock_build_pipeline.return_value = pipeline

        with pytest.raises(SystemExit) as exc_info:
            monitor_cli.main(
                ["--issue-query", "climate change", "--label", "climate", "--start-date", "01/01/2024", "--end-date", "02/01/2024"]
            )

        assert exc_info.value.code == 1
        assert [r.id for r in pipeline.result_dispatcher.pending(query_key)] == ["a1"]


class TestQueryTopicsCli:
    @patch("query_topics.cli.build_pipeline")
    @patch("query_topics.cli.load_config")
    def test_prints_and_saves_topics(
        self, mock_load_config, mock_build_pipeline, tmp_path, make_article, capsys
    ) -> None:
        config = make_config(tmp_path)
        mock_load_config.return_value = config
        pipeline = build_pipeline(config, engine=KeywordEngine())
        articles = [make_article("a1"), make_article("a2")]
        pipeline.storage.save(articles, "climate")
        pipeline.search.index(articles, "climate")
        mock_build_pipeline.return_value = pipeline

        query_cli.main(["--query", "glaciers", "--corpus", "climate", "--num-top-words", "2", "--load-local"])

        out = capsys.readouterr().out
        assert "a1: ice, sea" in out
        assert "a2: ice, sea" in out
        assert len(list(tmp_path.glob("topics_climate_*.jsonl"))) == 1

    @patch("query_topics.cli.build_pipeline")
    @patch("query_topics.cli.load_config")
    def test_failed_flush_exits_non_zero(self, mock_load_config, mock_build_pipeline, tmp_path, make_article) -> None:
        config = make_config(tmp_path)
        mock_load_config.return_value = config

        class BrokenEngine:
            def extract_topics(self, corpus, num_topics, num_top_words):
                return []

        pipeline = build_pipeline(config, engine=BrokenEngine())
        pipeline.storage.save([make_article("a1")], "climate")
        pipeline.search.index([make_article("a1")], "climate")
        mock_build_pipeline.return_value = pipeline

        with pytest.raises(SystemExit) as exc_info:
            query_cli.main(["--query", "glaciers", "--corpus", "climate"])
        assert exc_info.value.code == 1
