"""HTTP helpers for talking to collaborator services."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import requests

from common.errors import RateLimitExceeded, TransientDeliveryError
from common.serialization import from_jsonl, to_jsonl

logger = logging.getLogger(__name__)

USER_AGENT = "topic-pipeline/1.0"
JSONL_CONTENT_TYPE = "application/x-ndjson"


def _check_response(response: requests.Response, url: str) -> requests.Response:
    if response.status_code == 429:
        raise RateLimitExceeded(f"Rate limit exceeded for {url}", status_code=429)
    if not 200 <= response.status_code < 300:
        raise TransientDeliveryError(
            f"{url} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return response


def post_jsonl(
    url: str,
    records: Iterable[Mapping[str, Any]],
    timeout: float,
    params: Mapping[str, Any] | None = None,
) -> requests.Response:
    """POST records as line-delimited JSON.

    Raises:
        TransientDeliveryError: On any non-2xx response.
        requests.RequestException: On transport failure or timeout.
    """
    response = requests.post(
        url,
        data=to_jsonl(records).encode("utf-8"),
        params=params,
        timeout=timeout,
        headers={"Content-Type": JSONL_CONTENT_TYPE, "User-Agent": USER_AGENT},
    )
    return _check_response(response, url)


def post_jsonl_for_records(
    url: str,
    records: Iterable[Mapping[str, Any]],
    timeout: float,
    params: Mapping[str, Any] | None = None,
) -> list[dict]:
    """POST records as line-delimited JSON and decode a line-delimited JSON reply.

    Raises:
        TransientDeliveryError: Also when the reply is not line-delimited JSON objects.
    """
    response = post_jsonl(url, records, timeout, params=params)
    try:
        decoded = from_jsonl(response.text)
    except ValueError as e:
        raise TransientDeliveryError(f"{url} returned malformed JSONL: {e}") from e
    if not all(isinstance(record, dict) for record in decoded):
        raise TransientDeliveryError(f"{url} returned non-object JSONL records")
    return decoded


def get_json(url: str, params: Mapping[str, Any], timeout: float) -> requests.Response:
    """GET a JSON resource. 404 responses are returned, other failures raise."""
    response = requests.get(
        url,
        params=params,
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
    )
    if response.status_code == 404:
        return response
    return _check_response(response, url)
