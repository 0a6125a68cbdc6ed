"""Wire encodings for the outbound event stream.

Two encodings carry the same ordered event sequence:

* the data-stream protocol (default): one line per part, ``0:`` for answer
  text, ``2:`` for typed data records, with the answer segment framed by
  ``f:`` (start) and ``e:``/``d:`` (finish) parts;
* server-sent events, for clients that ask for ``text/event-stream``.
"""
from __future__ import annotations

import json
from typing import Any, AsyncIterator
from uuid import uuid4

from firecache.models.events import EventType, StreamEvent

PROTOCOL_HEADER = "x-vercel-ai-data-stream"

TEXT_PART = "0"
DATA_PART = "2"
START_STEP_PART = "f"
FINISH_STEP_PART = "e"
FINISH_MESSAGE_PART = "d"


def _part(code: str, value: Any) -> str:
    return f"{code}:{json.dumps(value, separators=(',', ':'))}\n"


_NO_USAGE = {"promptTokens": 0, "completionTokens": 0}


class DataStreamEncoder:
    """Stateful encoder; tracks whether an answer segment is open.

    The answer segment opens with ``f:`` before its first text part and is
    closed by the next data event. An event carrying ``answer_usage`` marks a
    finished answer: the segment is framed even when no text arrived, and the
    finish parts report that usage. A segment cut short (an error event) is
    closed with reason ``error`` and zero usage.
    """

    def __init__(self, message_id: str | None = None):
        self.message_id = message_id or f"msg-{uuid4().hex[:24]}"
        self._answer_open = False

    def _open_answer(self) -> str:
        self._answer_open = True
        return _part(START_STEP_PART, {"messageId": self.message_id})

    def encode(self, event: StreamEvent) -> str:
        if event.is_text:
            prefix = "" if self._answer_open else self._open_answer()
            return prefix + _part(TEXT_PART, event.data.get("text", ""))

        prefix = ""
        if event.answer_usage is not None:
            if not self._answer_open:
                prefix = self._open_answer()
            prefix += self._close_answer("stop", event.answer_usage)
        elif self._answer_open:
            reason = "error" if event.event == EventType.ERROR else "stop"
            prefix = self._close_answer(reason, _NO_USAGE)
        return prefix + _part(DATA_PART, [event.payload()])

    def _close_answer(self, finish_reason: str, usage: dict[str, int]) -> str:
        self._answer_open = False
        return _part(
            FINISH_STEP_PART,
            {"finishReason": finish_reason, "usage": usage, "isContinued": False},
        ) + _part(FINISH_MESSAGE_PART, {"finishReason": finish_reason, "usage": usage})


async def encode_data_stream(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    encoder = DataStreamEncoder()
    async for event in events:
        yield encoder.encode(event)


def to_sse(event: StreamEvent) -> dict[str, str]:
    return {"event": event.event.value, "data": json.dumps(event.data)}


async def encode_sse(events: AsyncIterator[StreamEvent]) -> AsyncIterator[dict[str, str]]:
    async for event in events:
        yield to_sse(event)
