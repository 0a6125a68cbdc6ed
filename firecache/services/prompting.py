"""Context assembly and prompt construction.

The ``[N]`` labels written by ``build_context`` are the only link between the
citation markers the model emits and the ``sources`` event: block N is
``sources[N - 1]``.
"""
from __future__ import annotations

from firecache.models.schemas import Source
from firecache.services.prompt_store import render_prompt
from firecache.services.request_context import RequestContext

DEFAULT_SOURCE_CHAR_LIMIT = 2000
TRUNCATION_MARKER = "..."
SOURCE_SEPARATOR = "\n\n---\n\n"
DEFAULT_FOLLOW_UP_LIMIT = 5


def truncate_source_text(text: str, limit: int = DEFAULT_SOURCE_CHAR_LIMIT) -> str:
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def format_source_block(index: int, source: Source, limit: int = DEFAULT_SOURCE_CHAR_LIMIT) -> str:
    body = truncate_source_text(source.body_text, limit)
    return f"[{index + 1}] {source.title}\nURL: {source.url}\n{body}"


def build_context(sources: list[Source], limit: int = DEFAULT_SOURCE_CHAR_LIMIT) -> str:
    return SOURCE_SEPARATOR.join(
        format_source_block(index, source, limit) for index, source in enumerate(sources)
    )


def build_answer_messages(ctx: RequestContext) -> list[dict[str, str]]:
    final_turn = {
        "role": "user",
        "content": render_prompt("answer.user_prompt", query=ctx.query, context=ctx.context),
    }
    if not ctx.is_follow_up:
        return [
            {"role": "system", "content": render_prompt("answer.search_system_prompt")},
            final_turn,
        ]

    history = [{"role": m.role, "content": m.content} for m in ctx.prior_messages]
    return [
        {"role": "system", "content": render_prompt("answer.conversation_system_prompt")},
        *history,
        final_turn,
    ]


def conversation_preview(ctx: RequestContext) -> str:
    if not ctx.is_follow_up:
        return f"user: {ctx.query}"
    return "\n\n".join(f"{m.role}: {m.content}" for m in ctx.messages)


def build_follow_up_messages(
    ctx: RequestContext,
    count: int = DEFAULT_FOLLOW_UP_LIMIT,
) -> list[dict[str, str]]:
    history_note = render_prompt("follow_ups.history_note") if ctx.is_follow_up else ""
    source_titles = ""
    if ctx.sources:
        source_titles = render_prompt(
            "follow_ups.source_titles",
            titles=", ".join(s.title for s in ctx.sources),
        )
    return [
        {
            "role": "system",
            "content": render_prompt(
                "follow_ups.system_prompt",
                count=count,
                history_note=history_note,
            ),
        },
        {
            "role": "user",
            "content": render_prompt(
                "follow_ups.user_prompt",
                query=ctx.query,
                conversation=conversation_preview(ctx),
                source_titles=source_titles,
                count=count,
            ),
        },
    ]


def parse_follow_up_questions(text: str, limit: int = DEFAULT_FOLLOW_UP_LIMIT) -> list[str]:
    questions = [line.strip() for line in (text or "").split("\n")]
    return [q for q in questions if q][:limit]
