from __future__ import annotations

import json
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from sse_starlette.sse import EventSourceResponse

from firecache.agents.answer_orchestrator import AnswerOrchestrator
from firecache.config import settings
from firecache.errors import ValidationError
from firecache.llm_client import ensure_configured
from firecache.models.events import StreamEvent
from firecache.services import logger as log_service
from firecache.services import wire
from firecache.services.request_context import (
    RequestContext,
    build_request_context,
    new_request_id,
    parse_search_request,
)

router = APIRouter(prefix="/api/fire-cache", tags=["search"])


def _wants_sse(request: Request) -> bool:
    return "text/event-stream" in request.headers.get("accept", "").lower()


async def _read_body(request: Request) -> object:
    raw = await request.body()
    try:
        return json.loads(raw or b"{}")
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc


async def _traced(ctx: RequestContext, events: AsyncIterator[StreamEvent]) -> AsyncIterator[StreamEvent]:
    async for event in events:
        if event.is_terminal:
            ctx.log.info(f"Stream finished with {event.event.value}")
        elif not event.is_text:
            ctx.log.debug(f"Emitting {event.event.value} event")
        yield event


@router.post("/search")
async def search(request: Request):
    """Answer a conversational query as a typed event stream.

    Validation and configuration failures are returned as JSON before any
    streaming starts; later failures arrive as a terminal ``error`` event.
    """
    request_id = new_request_id()
    log = log_service.bind_request(request_id)
    log.info("Fire Cache search called")

    body = await _read_body(request)
    ctx = build_request_context(parse_search_request(body), request_id=request_id)
    ensure_configured()

    log_service.log_event(
        ctx.log,
        event_type="search_started",
        message="Opening answer stream",
        query=ctx.query[:100],
        follow_up=ctx.is_follow_up,
    )

    events = _traced(ctx, AnswerOrchestrator().stream(ctx))
    headers = {wire.PROTOCOL_HEADER: settings.stream_protocol_version}

    if _wants_sse(request):
        return EventSourceResponse(wire.encode_sse(events), headers=headers)
    return StreamingResponse(
        wire.encode_data_stream(events),
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )
