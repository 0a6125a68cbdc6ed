from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest

from firecache.config import settings
from firecache.llm_client import Completion, TextStream, Usage
from firecache.models.schemas import Source


def text_chunk(text: str | None, usage=None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=text))],
        usage=usage,
    )


class FakeChunkStream:
    def __init__(self, chunks: list[SimpleNamespace], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


class FakeChatClient:
    """Stands in for ``ChatClient``: scripted answer chunks and follow-up text."""

    def __init__(
        self,
        answer_chunks: list[str] | None = None,
        follow_up_text: str = "",
        *,
        answer_error: Exception | None = None,
        follow_up_error: Exception | None = None,
        follow_up_delay: float = 0.0,
    ):
        self.answer_chunks = answer_chunks if answer_chunks is not None else ["Hello ", "world [1]"]
        self.follow_up_text = follow_up_text
        self.answer_error = answer_error
        self.follow_up_error = follow_up_error
        self.follow_up_delay = follow_up_delay
        self.stream_calls: list[dict] = []
        self.complete_calls: list[dict] = []
        self.follow_up_finished = False

    def stream(self, **kwargs) -> TextStream:
        self.stream_calls.append(kwargs)
        chunks = [text_chunk(t) for t in self.answer_chunks]
        chunks.append(
            SimpleNamespace(
                choices=[],
                usage=SimpleNamespace(prompt_tokens=10, completion_tokens=len(self.answer_chunks)),
            )
        )

        async def open_stream():
            return FakeChunkStream(chunks, error=self.answer_error)

        return TextStream(open_stream())

    async def complete(self, **kwargs) -> Completion:
        self.complete_calls.append(kwargs)
        try:
            if self.follow_up_delay:
                await asyncio.sleep(self.follow_up_delay)
            if self.follow_up_error is not None:
                raise self.follow_up_error
            return Completion(text=self.follow_up_text, usage=Usage(input_tokens=5, output_tokens=7))
        finally:
            self.follow_up_finished = True


class FakeSearchHttpClient:
    """Minimal ``httpx.AsyncClient`` replacement that records POSTs."""

    def __init__(self, status_code: int = 200, payload=None, text: str | None = None, error=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else []
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def post(self, url, json=None, headers=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        request = httpx.Request("POST", url)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text, request=request)
        return httpx.Response(self.status_code, json=self.payload, request=request)


@pytest.fixture
def chat_client_factory():
    return FakeChatClient


@pytest.fixture
def search_http_factory():
    return FakeSearchHttpClient


@pytest.fixture
def raw_search_results() -> list[dict]:
    return [
        {
            "url": "https://example.com/a",
            "title": "Alpha",
            "markdown": "# Alpha\nAlpha body",
            "content": "Alpha plain",
            "siteName": "Example",
        },
        {
            "url": "https://example.com/b",
            "content": "Beta plain",
            "publishedDate": "2024-05-01",
        },
        {
            "url": "https://example.com/c",
            "title": "Gamma",
        },
    ]


@pytest.fixture
def sample_sources(raw_search_results) -> list[Source]:
    from firecache.tools.search_service import map_sources

    return map_sources(raw_search_results)


@pytest.fixture
def no_render_delay():
    with patch.object(settings, "sources_render_delay_ms", 0):
        yield
