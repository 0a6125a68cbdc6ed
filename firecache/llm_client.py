"""OpenAI-compatible generation client: one streaming and one batch call shape."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator

from firecache.config import settings
from firecache.errors import ConfigurationError


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class Completion:
    text: str
    usage: Usage


def _usage_from(raw: Any) -> Usage:
    return Usage(
        input_tokens=getattr(raw, "prompt_tokens", 0) or 0,
        output_tokens=getattr(raw, "completion_tokens", 0) or 0,
    )


class TextStream:
    """Wraps a chat-completion chunk stream as an async text iterator.

    The full text and token usage are available once iteration finishes.
    """

    def __init__(self, stream_coro: Any):
        self._stream_coro = stream_coro
        self._stream: Any | None = None
        self._parts: list[str] = []
        self.usage = Usage()
        self.finished = False

    async def __aenter__(self) -> "TextStream":
        self._stream = await self._stream_coro
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._stream is not None and hasattr(self._stream, "close"):
            await self._stream.close()

    async def _iter_text(self) -> AsyncIterator[str]:
        if self._stream is None:
            return
        async for chunk in self._stream:
            usage = getattr(chunk, "usage", None)
            if usage:
                self.usage = _usage_from(usage)

            choices = getattr(chunk, "choices", None) or []
            if not choices:
                continue
            delta = getattr(choices[0], "delta", None)
            text = getattr(delta, "content", None) if delta else None
            if text:
                self._parts.append(text)
                yield text
        self.finished = True

    @property
    def text_stream(self) -> AsyncIterator[str]:
        return self._iter_text()

    @property
    def text(self) -> str:
        return "".join(self._parts)


class ChatClient:
    def __init__(self, openai_client: Any):
        self._client = openai_client

    def stream(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> TextStream:
        stream = self._client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
            stream_options={"include_usage": True},
        )
        return TextStream(stream)

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        response = await self._client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        choices = getattr(response, "choices", None) or []
        text = ""
        if choices:
            text = getattr(choices[0].message, "content", None) or ""
        return Completion(text=text, usage=_usage_from(getattr(response, "usage", None)))


def ensure_configured() -> None:
    if not settings.openai_api_key.strip():
        raise ConfigurationError("OpenAI API key not configured")


def get_client() -> ChatClient:
    """Build a client from settings; fails when the credential is missing."""
    from openai import AsyncOpenAI

    ensure_configured()
    kwargs: dict[str, Any] = {"api_key": settings.openai_api_key}
    if settings.openai_base_url.strip():
        kwargs["base_url"] = settings.openai_base_url.strip()
    return ChatClient(AsyncOpenAI(**kwargs))


def get_model() -> str:
    return settings.answer_model


_client: ChatClient | None = None


def client() -> ChatClient:
    """Get or create the shared generation client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
