"""Wire the pipeline components together from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from accumulate_articles.accumulator import Accumulator
from common.batching import BatchDispatcher
from common.config import Config
from common.retry import RetryPolicy
from dispatch_results.dispatch_results import ResultDispatcher
from dispatch_results.notifications import (
    HttpNotificationSink,
    HttpResultSink,
    InMemoryNotificationSink,
    InMemoryResultSink,
    NotificationSink,
    ResultSink,
)
from extract_topics.engine import ComputeEngine, HttpComputeEngine, LdaComputeEngine
from extract_topics.extract_topics import ComputeTrigger
from extract_topics.models import TopicParameters
from monitor_articles.fetch_articles.guardian_api import GuardianSourceAPI, SourceAPI
from monitor_articles.models import MonitoringWindow
from monitor_articles.monitor_articles import SourcePoller
from monitor_articles.registry import MonitoringRegistry
from store_articles.adapters import (
    HttpSearchAdapter,
    HttpStorageAdapter,
    InMemorySearchIndex,
    InMemoryStorage,
    LocalJsonlStorage,
    SearchAdapter,
    StorageAdapter,
)
from store_articles.store_articles import ArticleStore

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    config: Config
    retry_policy: RetryPolicy
    dispatcher: BatchDispatcher
    storage: StorageAdapter
    search: SearchAdapter
    notifier: NotificationSink
    results: ResultSink
    compute: ComputeTrigger
    result_dispatcher: ResultDispatcher
    accumulator: Accumulator
    registry: MonitoringRegistry


def build_storage(config: Config) -> StorageAdapter:
    backend = config.storage.backend
    if backend == "http":
        if not config.endpoints.storage_url:
            raise ValueError("storage backend 'http' needs endpoints.storage_url")
        return HttpStorageAdapter(config.endpoints.storage_url, config.endpoints.request_timeout)
    if backend == "local":
        return LocalJsonlStorage(config.storage.local_path)
    if backend == "memory":
        return InMemoryStorage()
    raise ValueError(f"Unknown storage backend: {backend}")


def build_search(config: Config) -> SearchAdapter:
    if config.endpoints.search_url:
        return HttpSearchAdapter(config.endpoints.search_url, config.endpoints.request_timeout)
    return InMemorySearchIndex()


def build_engine(config: Config) -> ComputeEngine:
    if config.endpoints.compute_url:
        return HttpComputeEngine(config.endpoints.compute_url, config.topics.request_timeout)
    return LdaComputeEngine(iterations=config.topics.iterations, seed=config.topics.seed)


def build_notifier(config: Config) -> NotificationSink:
    if config.endpoints.notification_url:
        return HttpNotificationSink(config.endpoints.notification_url, config.endpoints.request_timeout)
    return InMemoryNotificationSink()


def build_results(config: Config) -> ResultSink:
    if config.endpoints.result_url:
        return HttpResultSink(config.endpoints.result_url, config.endpoints.request_timeout)
    return InMemoryResultSink()


def build_source(config: Config) -> SourceAPI:
    return GuardianSourceAPI(
        api_key=config.guardian_api_key,
        api_url=config.source.api_url,
        page_size=config.source.page_size,
        timeout=config.source.request_timeout,
    )


def build_pipeline(
    config: Config,
    source: SourceAPI | None = None,
    storage: StorageAdapter | None = None,
    search: SearchAdapter | None = None,
    engine: ComputeEngine | None = None,
    notifier: NotificationSink | None = None,
    results: ResultSink | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Pipeline:
    """Build every component. Explicit collaborators override the configured ones.

    The source is only built when a poller is created, so query-only use
    does not need a Guardian API key.
    """
    retry_policy = RetryPolicy(
        max_attempts=config.retry.max_attempts,
        base_delay=config.retry.base_delay,
        sleep=sleep,
    )
    dispatcher = BatchDispatcher(retry_policy)
    storage = storage or build_storage(config)
    search = search or build_search(config)
    notifier = notifier or build_notifier(config)
    results = results or build_results(config)

    compute = ComputeTrigger(
        engine or build_engine(config),
        retry_policy,
        TopicParameters(config.topics.num_topics, config.topics.num_top_words),
    )
    result_dispatcher = ResultDispatcher(dispatcher, results, notifier, config.batching.batch_size)
    accumulator = Accumulator(compute, result_dispatcher, config.accumulator.threshold)

    sources: list[SourceAPI] = [source] if source is not None else []

    def make_poller(window: MonitoringWindow) -> SourcePoller:
        if not sources:
            sources.append(build_source(config))
        store = ArticleStore(
            window.query_key.label,
            dispatcher,
            storage,
            search,
            config.batching.batch_size,
        )
        return SourcePoller(
            window=window,
            source=sources[0],
            store=store,
            accumulator=accumulator,
            notifier=notifier,
            retry_policy=retry_policy,
            poll_interval=config.polling.poll_interval,
        )

    logger.info(
        "Pipeline ready (storage=%s, threshold=%d, batch_size=%d)",
        config.storage.backend,
        config.accumulator.threshold,
        config.batching.batch_size,
    )
    return Pipeline(
        config=config,
        retry_policy=retry_policy,
        dispatcher=dispatcher,
        storage=storage,
        search=search,
        notifier=notifier,
        results=results,
        compute=compute,
        result_dispatcher=result_dispatcher,
        accumulator=accumulator,
        registry=MonitoringRegistry(make_poller),
    )
