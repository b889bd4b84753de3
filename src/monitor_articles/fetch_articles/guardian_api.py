"""Client for The Guardian Open Platform content API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from common.datetime import format_timestamp, parse_datetime
from common.errors import TransientDeliveryError
from common.http_client import get_json
from monitor_articles.models import SearchMatch

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://content.guardianapis.com"


class SourceAPI(Protocol):
    """Search and body lookup on an external content source."""

    def search(self, issue_query: str, window_start: datetime, window_end: datetime) -> list[SearchMatch]:
        ...

    def fetch_body(self, url: str) -> str | None:
        """Return the body text, or None when the content does not exist."""
        ...


def response_body(response, url: str) -> dict[str, Any]:
    """Return the ``response`` object of a content API reply.

    Raises:
        TransientDeliveryError: If the reply is not JSON or lacks a ``response`` object.
    """
    try:
        payload = response.json()
    except ValueError as e:
        raise TransientDeliveryError(f"{url} returned malformed JSON: {e}") from e
    body = payload.get("response") if isinstance(payload, dict) else None
    if not isinstance(body, dict):
        raise TransientDeliveryError(f"{url} returned no response object")
    return body


def parse_search_result(result: dict[str, Any]) -> SearchMatch | None:
    """Parse one search result. Returns None for results missing required fields."""
    if not isinstance(result, dict):
        logger.warning("Skipping malformed search result %r", result)
        return None
    try:
        return SearchMatch(
            id=result["id"],
            title=result["webTitle"],
            url=result["webUrl"],
            api_url=result["apiUrl"],
            section_id=result.get("sectionId") or "",
            section_name=result.get("sectionName") or "",
            published_at=parse_datetime(result["webPublicationDate"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed search result %s: %s", result.get("id"), e)
        return None


class GuardianSourceAPI:
    """SourceAPI implementation backed by the Guardian content API."""

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        page_size: int = 50,
        timeout: float = 30.0,
    ):
        if not api_key:
            raise ValueError("The Guardian API key is not set (GUARDIAN_API_KEY)")
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout

    def search(self, issue_query: str, window_start: datetime, window_end: datetime) -> list[SearchMatch]:
        """Return every article matching ``issue_query`` published in the window.

        Walks all result pages. Results outside ``[window_start, window_end]``
        are dropped since the API filters on dates only.
        """
        matches: list[SearchMatch] = []
        page = 1
        pages = 1

        while page <= pages:
            response = get_json(
                f"{self.api_url}/search",
                params={
                    "q": issue_query,
                    "from-date": format_timestamp(window_start),
                    "to-date": format_timestamp(window_end),
                    "order-by": "oldest",
                    "page-size": self.page_size,
                    "page": page,
                    "api-key": self.api_key,
                },
                timeout=self.timeout,
            )
            if response.status_code == 404:
                break

            body = response_body(response, f"{self.api_url}/search")
            results = body.get("results") or []
            try:
                pages = int(body.get("pages") or 0)
            except (TypeError, ValueError) as e:
                raise TransientDeliveryError(f"search returned an invalid page count: {e}") from e
            if not isinstance(results, list):
                raise TransientDeliveryError("search returned malformed results")
            for result in results:
                match = parse_search_result(result)
                if match is None:
                    continue
                if window_start <= match.published_at <= window_end:
                    matches.append(match)
            page += 1

        logger.info(
            "Found %d articles for %r between %s and %s",
            len(matches),
            issue_query,
            format_timestamp(window_start),
            format_timestamp(window_end),
        )
        return matches

    def fetch_body(self, url: str) -> str | None:
        response = get_json(
            url,
            params={"api-key": self.api_key, "show-fields": "bodyText"},
            timeout=self.timeout,
        )
        if response.status_code == 404:
            return None

        content = response_body(response, url).get("content") or {}
        fields = (content.get("fields") or {}) if isinstance(content, dict) else None
        if not isinstance(fields, dict):
            raise TransientDeliveryError(f"{url} returned malformed content")
        text = fields.get("bodyText")
        return text if isinstance(text, str) and text.strip() else None
