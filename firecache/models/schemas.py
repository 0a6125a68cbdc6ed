from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# --- Requests ---


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "system", "assistant"]
    content: str


class SearchRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    query: str | None = None

    @field_validator("messages", mode="before")
    @classmethod
    def _null_messages_to_empty(cls, value):
        return [] if value is None else value


# --- Retrieval ---


class Source(BaseModel):
    """A retrieved document, used both as prompt context and citation target."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str
    title: str = ""
    description: str | None = None
    content: str | None = None
    markdown: str | None = None
    published_date: str | None = Field(default=None, alias="publishedDate")
    author: str | None = None
    image: str | None = None
    favicon: str | None = None
    site_name: str | None = Field(default=None, alias="siteName")

    @model_validator(mode="before")
    @classmethod
    def _default_title_to_url(cls, data):
        if isinstance(data, dict) and not data.get("title"):
            data = {**data, "title": data.get("url")}
        return data

    @property
    def body_text(self) -> str:
        return self.markdown or self.content or ""

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Responses ---


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
    details: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
