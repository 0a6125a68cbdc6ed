"""Prompt catalog for answer and follow-up generation.

``prompts.json`` groups prompts by purpose (``answer``, ``follow_ups``); long
prompts are stored as a list of lines. The whole catalog is compiled into
``string.Template`` objects, keyed by dotted name, the first time a prompt is
rendered.
"""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any, Iterator

from firecache.errors import ConfigurationError

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"

_templates: dict[str, Template] | None = None


def _flatten(node: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, str]]:
    for name, value in node.items():
        key = f"{prefix}{name}"
        if isinstance(value, dict):
            yield from _flatten(value, f"{key}.")
        elif isinstance(value, list) and all(isinstance(line, str) for line in value):
            yield key, "\n".join(value)
        elif isinstance(value, str):
            yield key, value
        else:
            raise ConfigurationError(f"Prompt '{key}' must be a string or a list of lines")


def templates() -> dict[str, Template]:
    global _templates
    if _templates is None:
        catalog = json.loads(PROMPTS_PATH.read_text(encoding="utf-8"))
        if not isinstance(catalog, dict):
            raise ConfigurationError(f"Prompt catalog must be a JSON object: {PROMPTS_PATH}")
        _templates = {key: Template(text) for key, text in _flatten(catalog)}
    return _templates


def render_prompt(key: str, **values: Any) -> str:
    template = templates().get(key)
    if template is None:
        raise ConfigurationError(f"Unknown prompt: {key}")
    try:
        return template.substitute(values)
    except KeyError as exc:
        raise ConfigurationError(f"Prompt '{key}' needs a value for '{exc.args[0]}'") from exc
    except ValueError as exc:
        raise ConfigurationError(f"Prompt '{key}' has a malformed placeholder: {exc}") from exc


def reset_prompts() -> None:
    """Drop compiled templates so the next render re-reads ``PROMPTS_PATH``."""
    global _templates
    _templates = None
