from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from firecache.config import settings
from firecache.errors import RetrievalError
from firecache.models.schemas import Source

REQUEST_ID_HEADER = "X-Request-ID"

SOURCE_FIELDS = (
    "description",
    "content",
    "markdown",
    "publishedDate",
    "author",
    "image",
    "favicon",
    "siteName",
)


def map_sources(payload: Any, *, log=logger) -> list[Source]:
    """Map the search service's JSON array into ``Source`` records.

    Order is preserved; it defines citation numbering downstream.
    """
    if not isinstance(payload, list):
        raise RetrievalError(
            f"Search and scrape service returned {type(payload).__name__}, expected a list"
        )

    sources: list[Source] = []
    for position, item in enumerate(payload):
        url = item.get("url") if isinstance(item, dict) else None
        if not isinstance(url, str) or not url:
            log.warning(f"Dropping search result #{position} without a url")
            continue
        fields: dict[str, Any] = {"url": url, "title": str(item.get("title") or url)}
        for name in SOURCE_FIELDS:
            value = item.get(name)
            if value is not None:
                fields[name] = str(value)
        sources.append(Source.model_validate(fields))
    return sources


async def search(
    query: str,
    *,
    request_id: str,
    limit: int | None = None,
    http_client: httpx.AsyncClient | None = None,
    log=logger,
) -> list[Source]:
    """POST the query to the search/scrape service and return mapped sources."""
    body = {
        "query": query,
        "limit": limit if limit is not None else settings.search_result_limit,
    }
    headers = {
        "Content-Type": "application/json",
        REQUEST_ID_HEADER: request_id,
    }

    try:
        if http_client is not None:
            response = await http_client.post(settings.search_service_url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
                response = await client.post(settings.search_service_url, json=body, headers=headers)
    except httpx.HTTPError as exc:
        log.error(f"Search service request failed: {exc!r}")
        raise RetrievalError(f"Search and scrape service unreachable: {exc}") from exc

    if not response.is_success:
        error_body = response.text
        log.error(f"Search service error: {response.status_code} {response.reason_phrase} {error_body[:500]}")
        raise RetrievalError.from_response(response.status_code, response.reason_phrase, error_body)

    try:
        payload = response.json()
    except ValueError as exc:
        raise RetrievalError("Search and scrape service returned invalid JSON") from exc

    sources = map_sources(payload, log=log)
    log.info(f"Search service returned {len(sources)} sources")
    return sources
