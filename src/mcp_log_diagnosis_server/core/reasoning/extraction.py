"""Locate the JSON object inside a free-form model reply."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

from ..errors import InvalidReasoningResponse


def _iter_top_level_objects(text: str) -> Iterator[str]:
    """Yield balanced top-level ``{...}`` spans, ignoring braces inside strings."""
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if depth == 0:
            if ch == "{":
                depth = 1
                start = i
            continue

        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]


def _loads_object(candidate: str) -> dict[str, Any] | None:
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first JSON object found in text.

    The whole reply is tried first; otherwise the first balanced top-level
    object that parses wins (prose and fenced code blocks are skipped).
    """
    whole = _loads_object(text.strip())
    if whole is not None:
        return whole

    for span in _iter_top_level_objects(text):
        obj = _loads_object(span)
        if obj is not None:
            return obj

    raise InvalidReasoningResponse("no JSON object found in reply", op="extract_json")
