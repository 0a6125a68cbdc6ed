from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    STATUS = "status"
    SOURCES = "sources"
    TICKER = "ticker"
    TEXT = "text"
    FOLLOW_UP_QUESTIONS = "follow_up_questions"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENTS = frozenset({EventType.COMPLETE, EventType.ERROR})


@dataclass
class StreamEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)
    # Set on the first event after a finished answer. Read by the data-stream
    # encoder for the finish parts; never part of the payload.
    answer_usage: dict[str, int] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS

    @property
    def is_text(self) -> bool:
        return self.event == EventType.TEXT

    def payload(self) -> dict[str, Any]:
        """Typed record as written to the data channel: ``{"type": ..., **data}``."""
        return {"type": self.event.value, **self.data}
