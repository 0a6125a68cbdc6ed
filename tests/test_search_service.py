from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from firecache.errors import RetrievalError
from firecache.tools import search_service
from firecache.tools.search_service import map_sources


def test_map_sources_preserves_order_and_defaults_title(raw_search_results):
    sources = map_sources(raw_search_results)

    assert [s.url for s in sources] == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]
    assert sources[0].title == "Alpha"
    assert sources[1].title == "https://example.com/b"
    assert sources[0].markdown == "# Alpha\nAlpha body"
    assert sources[0].content == "Alpha plain"
    assert sources[0].site_name == "Example"
    assert sources[1].published_date == "2024-05-01"


def test_map_sources_is_pure(raw_search_results):
    snapshot = [dict(item) for item in raw_search_results]

    first = map_sources(raw_search_results)
    second = map_sources(raw_search_results)

    assert first == second
    assert raw_search_results == snapshot


def test_map_sources_treats_empty_title_as_missing():
    sources = map_sources([{"url": "https://x.com", "title": ""}, {"url": "https://y.com", "title": None}])

    assert [s.title for s in sources] == ["https://x.com", "https://y.com"]


def test_map_sources_keeps_records_with_non_string_fields():
    sources = map_sources(
        [{"url": "https://x.com", "title": 2024, "publishedDate": 20240101, "siteName": "X"}]
    )

    assert len(sources) == 1
    assert sources[0].title == "2024"
    assert sources[0].published_date == "20240101"
    assert sources[0].to_wire()["title"] == "2024"


def test_map_sources_drops_entries_without_url():
    sources = map_sources([{"title": "No url"}, "junk", {"url": "https://ok.com"}])

    assert [s.url for s in sources] == ["https://ok.com"]


def test_map_sources_rejects_non_list_payload():
    with pytest.raises(RetrievalError):
        map_sources({"results": []})


def test_source_wire_shape_uses_camel_case(raw_search_results):
    wire = map_sources(raw_search_results)[1].to_wire()

    assert wire["publishedDate"] == "2024-05-01"
    assert "published_date" not in wire
    assert "markdown" not in wire


@pytest.mark.asyncio
async def test_search_posts_query_limit_and_request_id(search_http_factory, raw_search_results):
    http = search_http_factory(payload=raw_search_results)

    with patch.object(search_service.settings, "search_service_url", "http://search.local/search"):
        sources = await search_service.search("what is rust", request_id="abc1234", limit=5, http_client=http)

    assert len(sources) == 3
    assert http.calls == [
        {
            "url": "http://search.local/search",
            "json": {"query": "what is rust", "limit": 5},
            "headers": {"Content-Type": "application/json", "X-Request-ID": "abc1234"},
        }
    ]


@pytest.mark.asyncio
async def test_search_uses_configured_limit_by_default(search_http_factory):
    http = search_http_factory(payload=[])

    with patch.object(search_service.settings, "search_result_limit", 5):
        sources = await search_service.search("q", request_id="r", http_client=http)

    assert sources == []
    assert http.calls[0]["json"]["limit"] == 5


@pytest.mark.asyncio
async def test_search_raises_retrieval_error_with_upstream_detail(search_http_factory):
    http = search_http_factory(status_code=503, text="scraper overloaded")

    with pytest.raises(RetrievalError) as exc_info:
        await search_service.search("q", request_id="r", http_client=http)

    err = exc_info.value
    assert err.upstream_status == 503
    assert err.body == "scraper overloaded"
    assert err.message == "Search and scrape service error: Service Unavailable - scraper overloaded"


@pytest.mark.asyncio
async def test_search_wraps_transport_errors(search_http_factory):
    http = search_http_factory(error=httpx.ConnectError("connection refused"))

    with pytest.raises(RetrievalError) as exc_info:
        await search_service.search("q", request_id="r", http_client=http)

    assert exc_info.value.upstream_status is None
    assert "unreachable" in exc_info.value.message


@pytest.mark.asyncio
async def test_search_rejects_invalid_json(search_http_factory):
    http = search_http_factory(text="<html>not json</html>")

    with pytest.raises(RetrievalError):
        await search_service.search("q", request_id="r", http_client=http)


@pytest.mark.asyncio
async def test_search_opens_its_own_client_when_none_given(search_http_factory, raw_search_results):
    http = search_http_factory(payload=raw_search_results)

    with patch("firecache.tools.search_service.httpx.AsyncClient", return_value=http) as client_cls:
        sources = await search_service.search("q", request_id="r")

    client_cls.assert_called_once()
    assert len(sources) == 3
