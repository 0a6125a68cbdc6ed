from __future__ import annotations

from firecache.llm_client import Usage
from firecache.models.events import EventType, StreamEvent
from firecache.models.schemas import Source

STARTING_SEARCH = "Starting search..."
SEARCHING_SOURCES = "Searching for relevant sources..."
GENERATING_ANSWER = "Analyzing sources and generating answer..."


def status(message: str) -> StreamEvent:
    return StreamEvent(event=EventType.STATUS, data={"message": message})


def sources(items: list[Source]) -> StreamEvent:
    """Emit the ordered source list; position N is citation ``[N+1]``."""
    return StreamEvent(
        event=EventType.SOURCES,
        data={"sources": [s.to_wire() for s in items]},
    )


def ticker(symbol: str) -> StreamEvent:
    return StreamEvent(event=EventType.TICKER, data={"symbol": symbol})


def text(chunk: str) -> StreamEvent:
    return StreamEvent(event=EventType.TEXT, data={"text": chunk})


def follow_up_questions(questions: list[str], answer_usage: Usage | None = None) -> StreamEvent:
    """Buffered follow-ups; also closes the answer segment with its token usage."""
    usage = None
    if answer_usage is not None:
        usage = {
            "promptTokens": answer_usage.input_tokens,
            "completionTokens": answer_usage.output_tokens,
        }
    return StreamEvent(
        event=EventType.FOLLOW_UP_QUESTIONS,
        data={"questions": list(questions)},
        answer_usage=usage,
    )


def complete() -> StreamEvent:
    return StreamEvent(event=EventType.COMPLETE)


def error(message: str) -> StreamEvent:
    return StreamEvent(event=EventType.ERROR, data={"error": message})
