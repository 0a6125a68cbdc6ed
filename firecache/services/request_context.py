"""Intake: turn a raw request body into per-request state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import pydantic

from firecache.errors import ValidationError
from firecache.models.schemas import ChatMessage, SearchRequest, Source
from firecache.services.logger import bind_request

REQUEST_ID_LENGTH = 7


def new_request_id() -> str:
    """Short random token used to correlate logs and downstream calls."""
    return uuid4().hex[:REQUEST_ID_LENGTH]


@dataclass
class RequestContext:
    request_id: str
    query: str
    messages: list[ChatMessage] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    context: str = ""

    def __post_init__(self) -> None:
        self.log = bind_request(self.request_id)

    @property
    def is_follow_up(self) -> bool:
        return len(self.messages) > 2

    @property
    def prior_messages(self) -> list[ChatMessage]:
        """History replayed in follow-up mode: everything but the latest turn."""
        return self.messages[:-1]


def parse_search_request(payload: Any) -> SearchRequest:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return SearchRequest.model_validate(payload)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        detail = first.get("msg", "invalid request body")
        raise ValidationError(f"Invalid request body at '{location}': {detail}") from exc


def resolve_query(request: SearchRequest) -> str | None:
    """Latest message content wins when non-empty; the raw ``query`` field is the fallback.

    A whitespace-only result counts as no query.
    """
    query = (request.messages[-1].content if request.messages else "") or request.query
    if query and query.strip():
        return query
    return None


def build_request_context(
    request: SearchRequest,
    *,
    request_id: str | None = None,
) -> RequestContext:
    request_id = request_id or new_request_id()
    query = resolve_query(request)
    log = bind_request(request_id)
    if query is None:
        log.warning("Rejected request without a query")
        raise ValidationError("Query is required")

    ctx = RequestContext(
        request_id=request_id,
        query=query,
        messages=list(request.messages),
    )
    log.info(
        f"Query received: {query[:200]!r} "
        f"(messages={len(ctx.messages)}, follow_up={ctx.is_follow_up})"
    )
    return ctx
