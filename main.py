"""Fire Cache - streaming search answers

Simple CLI for running one search request against the configured services.
"""

import argparse
import asyncio
import sys

from firecache.agents.answer_orchestrator import AnswerOrchestrator
from firecache.errors import FireCacheError
from firecache.models.schemas import ChatMessage, SearchRequest
from firecache.services.request_context import build_request_context


def parse_history(entries: list[str]) -> list[ChatMessage]:
    """Parse ``role:content`` entries into chat messages."""
    messages = []
    for entry in entries:
        role, sep, content = entry.partition(":")
        if not sep:
            raise argparse.ArgumentTypeError(f"History entry must be role:content, got {entry!r}")
        messages.append(ChatMessage(role=role.strip(), content=content.strip()))
    return messages


async def run_search(query: str, history: list[ChatMessage], model: str | None = None) -> int:
    """Run one search and print its events. Returns a process exit code."""
    messages = [*history, ChatMessage(role="user", content=query)] if history else []
    ctx = build_request_context(SearchRequest(messages=messages, query=query))

    print(f"Search query: {query}")
    print("-" * 50)

    orchestrator = AnswerOrchestrator(model=model)
    exit_code = 0
    async for event in orchestrator.stream(ctx):
        event_type = event.event.value
        data = event.data

        if event_type == "status":
            print(f"[~] {data.get('message')}")

        elif event_type == "sources":
            sources = data.get("sources", [])
            print(f"\n[*] Sources ({len(sources)}):")
            for i, source in enumerate(sources, 1):
                print(f"  [{i}] {source.get('title', '')[:80]}")
                print(f"      {source.get('url')}")
            print()

        elif event_type == "ticker":
            print(f"[$] Ticker: {data.get('symbol')}\n")

        elif event_type == "text":
            print(data.get("text", ""), end="", flush=True)

        elif event_type == "follow_up_questions":
            questions = data.get("questions", [])
            print(f"\n\n[?] Follow-up questions ({len(questions)}):")
            for question in questions:
                print(f"  - {question}")

        elif event_type == "complete":
            print("\n[+] Complete")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('error', 'Unknown error')}")
            exit_code = 1

    return exit_code


def main():
    parser = argparse.ArgumentParser(description="Fire Cache search")
    parser.add_argument("--query", "-q", required=True, help="Search query")
    parser.add_argument(
        "--history",
        action="append",
        default=[],
        metavar="ROLE:CONTENT",
        help="Prior conversation turn (repeatable, oldest first)",
    )
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")

    args = parser.parse_args()

    try:
        history = parse_history(args.history)
        sys.exit(asyncio.run(run_search(args.query, history, args.model)))
    except (argparse.ArgumentTypeError, FireCacheError, ValueError) as exc:
        print(f"[!] {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
