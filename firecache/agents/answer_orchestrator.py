from __future__ import annotations

import asyncio
import time
from functools import partial
from typing import AsyncGenerator, AsyncIterator

import httpx

from firecache.config import settings
from firecache.errors import FireCacheError, GenerationError, UnknownError
from firecache.llm_client import ChatClient, Usage, client as llm_client, get_model
from firecache.models.events import StreamEvent
from firecache.services import logger as log_service
from firecache.services import streaming
from firecache.services.prompting import (
    build_answer_messages,
    build_context,
    build_follow_up_messages,
    parse_follow_up_questions,
)
from firecache.services.request_context import RequestContext
from firecache.tools import search_service
from firecache.tools.ticker import detect_company_ticker

# Marks the end of the answer stream on the chunk queue.
_END_OF_ANSWER = None


def _log_orphaned_result(log, task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.warning(f"Generation task finished after the stream closed: {exc!r}")


class AnswerOrchestrator:
    """Runs one search request and yields its events in protocol order.

    Flow:
      1. status, status
      2. retrieval -> sources
      3. render hold (fixed delay so the client draws sources first)
      4. status, optional ticker
      5. answer and follow-up generation started together; answer chunks are
         forwarded as they arrive, follow-ups are buffered
      6. join both -> follow_up_questions, complete

    Any failure ends the stream with a single error event.
    """

    def __init__(
        self,
        model: str | None = None,
        *,
        chat_client: ChatClient | None = None,
        http_client: httpx.AsyncClient | None = None,
        render_delay_ms: int | None = None,
    ):
        self.model = model or get_model()
        self.chat_client = chat_client
        self.http_client = http_client
        self.render_delay_ms = (
            settings.sources_render_delay_ms if render_delay_ms is None else render_delay_ms
        )
        self.search_result_limit = max(int(settings.search_result_limit), 1)
        self.source_char_limit = max(int(settings.source_char_limit), 1)
        self.max_follow_up_questions = max(int(settings.max_follow_up_questions), 0)
        self.temperature = float(settings.answer_temperature)
        self.answer_max_tokens = int(settings.answer_max_tokens)
        self.follow_up_max_tokens = int(settings.follow_up_max_tokens)

    async def stream(self, ctx: RequestContext) -> AsyncGenerator[StreamEvent, None]:
        try:
            async for event in self._execute(ctx):
                yield event
        except FireCacheError as exc:
            ctx.log.error(f"Stream error ({type(exc).__name__}): {exc.message}")
            yield streaming.error(exc.message)
        except Exception as exc:
            ctx.log.exception("Unexpected stream error")
            yield streaming.error(UnknownError.wrap(exc).message)

    async def _execute(self, ctx: RequestContext) -> AsyncGenerator[StreamEvent, None]:
        yield streaming.status(streaming.STARTING_SEARCH)
        yield streaming.status(streaming.SEARCHING_SOURCES)

        ctx.sources = await search_service.search(
            ctx.query,
            request_id=ctx.request_id,
            limit=self.search_result_limit,
            http_client=self.http_client,
            log=ctx.log,
        )
        if not ctx.sources:
            ctx.log.warning("Search returned no sources; generating with an empty context")
        yield streaming.sources(ctx.sources)

        await self._hold_for_source_render()

        yield streaming.status(streaming.GENERATING_ANSWER)

        symbol = detect_company_ticker(ctx.query)
        ctx.log.info(f"Detected ticker: {symbol}")
        if symbol:
            yield streaming.ticker(symbol)

        ctx.context = build_context(ctx.sources, self.source_char_limit)
        ctx.log.info(f"Context assembled: {len(ctx.sources)} sources, {len(ctx.context)} chars")

        chat = self.chat_client or llm_client()
        chunks: asyncio.Queue[str | None] = asyncio.Queue()
        follow_up_task = asyncio.create_task(self._generate_follow_ups(ctx, chat))
        answer_task = asyncio.create_task(self._stream_answer(ctx, chat, chunks))

        try:
            async for chunk in self._drain(chunks):
                yield streaming.text(chunk)

            usage, questions = await self._join(answer_task, follow_up_task)
        finally:
            for task in (answer_task, follow_up_task):
                if not task.done():
                    task.add_done_callback(partial(_log_orphaned_result, ctx.log))

        yield streaming.follow_up_questions(questions, answer_usage=usage)
        yield streaming.complete()
        log_service.log_event(
            ctx.log,
            event_type="search_complete",
            message="Answer stream complete",
            sources=len(ctx.sources),
            follow_ups=len(questions),
        )

    async def _hold_for_source_render(self) -> None:
        """Keep the sources event ahead of answer text on the client.

        Clients render the source list asynchronously; without this pause the
        first answer tokens can be drawn before the list they cite.
        """
        if self.render_delay_ms > 0:
            await asyncio.sleep(self.render_delay_ms / 1000)

    @staticmethod
    async def _drain(chunks: asyncio.Queue[str | None]) -> AsyncIterator[str]:
        while True:
            chunk = await chunks.get()
            if chunk is _END_OF_ANSWER:
                return
            yield chunk

    @staticmethod
    async def _join(
        answer_task: asyncio.Task,
        follow_up_task: asyncio.Task,
    ) -> tuple[Usage, list[str]]:
        """Wait for both tasks; the answer task's failure takes precedence."""
        answer, questions = await asyncio.gather(
            answer_task, follow_up_task, return_exceptions=True
        )
        for outcome in (answer, questions):
            if isinstance(outcome, BaseException):
                raise outcome
        return answer, questions

    async def _stream_answer(
        self,
        ctx: RequestContext,
        chat: ChatClient,
        chunks: asyncio.Queue[str | None],
    ) -> Usage:
        """Sole writer to ``chunks``; always terminates the queue."""
        t0 = time.monotonic()
        try:
            messages = build_answer_messages(ctx)
            ctx.log.info(f"Streaming answer with {len(messages)} messages")
            async with chat.stream(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.answer_max_tokens,
            ) as answer:
                async for text in answer.text_stream:
                    chunks.put_nowait(text)
        except Exception as exc:
            log_service.log_llm_call(
                ctx.log,
                model=self.model,
                caller="answer",
                duration_ms=int((time.monotonic() - t0) * 1000),
                error=str(exc),
            )
            raise GenerationError(f"Answer generation failed: {exc}") from exc
        finally:
            chunks.put_nowait(_END_OF_ANSWER)

        log_service.log_llm_call(
            ctx.log,
            model=self.model,
            caller="answer",
            input_tokens=answer.usage.input_tokens,
            output_tokens=answer.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return answer.usage

    async def _generate_follow_ups(self, ctx: RequestContext, chat: ChatClient) -> list[str]:
        t0 = time.monotonic()
        try:
            completion = await chat.complete(
                model=self.model,
                messages=build_follow_up_messages(ctx, self.max_follow_up_questions),
                temperature=self.temperature,
                max_tokens=self.follow_up_max_tokens,
            )
        except Exception as exc:
            log_service.log_llm_call(
                ctx.log,
                model=self.model,
                caller="follow_ups",
                duration_ms=int((time.monotonic() - t0) * 1000),
                error=str(exc),
            )
            raise GenerationError(f"Follow-up generation failed: {exc}") from exc

        log_service.log_llm_call(
            ctx.log,
            model=self.model,
            caller="follow_ups",
            input_tokens=completion.usage.input_tokens,
            output_tokens=completion.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return parse_follow_up_questions(completion.text, self.max_follow_up_questions)
