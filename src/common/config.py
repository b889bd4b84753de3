"""Configuration loading for the topic pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "configs"


@dataclass
class SourceConfig:
    api_url: str = "https://content.guardianapis.com"
    page_size: int = 50
    request_timeout: float = 30.0


@dataclass
class RetryConfig:
    max_attempts: int = 5
    base_delay: float = 2.0


@dataclass
class BatchingConfig:
    batch_size: int = 10


@dataclass
class PollingConfig:
    poll_interval: float = 300.0


@dataclass
class AccumulatorConfig:
    threshold: int = 50


@dataclass
class TopicsConfig:
    num_topics: int = 5
    num_top_words: int = 10
    iterations: int = 50
    seed: int | None = None
    request_timeout: float = 300.0


@dataclass
class EndpointsConfig:
    """Collaborator base URLs. An empty value selects the in-memory adapter."""

    storage_url: str = ""
    search_url: str = ""
    compute_url: str = ""
    notification_url: str = ""
    result_url: str = ""
    request_timeout: float = 30.0


@dataclass
class StorageConfig:
    backend: str = "memory"  # "http", "memory" or "local"
    local_path: str = "output"


@dataclass
class Config:
    source: SourceConfig = field(default_factory=SourceConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    batching: BatchingConfig = field(default_factory=BatchingConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    accumulator: AccumulatorConfig = field(default_factory=AccumulatorConfig)
    topics: TopicsConfig = field(default_factory=TopicsConfig)
    endpoints: EndpointsConfig = field(default_factory=EndpointsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    guardian_api_key: str = ""


def find_config_path(
    config_name: str | None,
    config_dir: Path,
    default_name: str = "prod",
    env_var: str | None = None,
) -> Path:
    """Find config file path, checking env var and defaults.

    Args:
        config_name: Name of config (without .yaml) or None for default
        config_dir: Directory containing config files
        default_name: Default config name if config_name is None
        env_var: Environment variable to check for config name

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    config_path = config_dir / f"{config_name}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(config_name: str | None = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses CONFIG_ENV env var or "prod".

    Returns:
        Loaded Config object
    """
    config_dir = Path(os.environ.get("CONFIG_DIR", CONFIG_DIR))
    path = find_config_path(config_name, config_dir, env_var="CONFIG_ENV")
    return parse_config(load_yaml(path))


def parse_config(data: dict) -> Config:
    """Parse config dictionary into Config object."""
    source = data.get("source", {})
    retry = data.get("retry", {})
    batching = data.get("batching", {})
    polling = data.get("polling", {})
    accumulator = data.get("accumulator", {})
    topics = data.get("topics", {})
    endpoints = data.get("endpoints", {})
    storage = data.get("storage", {})

    return Config(
        source=SourceConfig(
            api_url=source.get("api_url", "https://content.guardianapis.com"),
            page_size=source.get("page_size", 50),
            request_timeout=source.get("request_timeout", 30.0),
        ),
        retry=RetryConfig(
            max_attempts=retry.get("max_attempts", 5),
            base_delay=retry.get("base_delay", 2.0),
        ),
        batching=BatchingConfig(batch_size=batching.get("batch_size", 10)),
        polling=PollingConfig(poll_interval=polling.get("poll_interval", 300.0)),
        accumulator=AccumulatorConfig(threshold=accumulator.get("threshold", 50)),
        topics=TopicsConfig(
            num_topics=topics.get("num_topics", 5),
            num_top_words=topics.get("num_top_words", 10),
            iterations=topics.get("iterations", 50),
            seed=topics.get("seed"),
            request_timeout=topics.get("request_timeout", 300.0),
        ),
        endpoints=EndpointsConfig(
            storage_url=endpoints.get("storage_url", ""),
            search_url=endpoints.get("search_url", ""),
            compute_url=endpoints.get("compute_url", ""),
            notification_url=endpoints.get("notification_url", ""),
            result_url=endpoints.get("result_url", ""),
            request_timeout=endpoints.get("request_timeout", 30.0),
        ),
        storage=StorageConfig(
            backend=storage.get("backend", "memory"),
            local_path=storage.get("local_path", "output"),
        ),
        guardian_api_key=os.environ.get("GUARDIAN_API_KEY", ""),
    )
