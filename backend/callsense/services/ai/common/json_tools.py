"""JSON extraction from LLM responses using brace-depth scanning."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """Return the first balanced top-level ``{...}`` object in *text*, parsed.

    The scan starts at the first ``{`` and tracks nesting depth, ignoring
    braces inside JSON strings (including escaped quotes). The object that
    closes depth zero is parsed; if it is not valid JSON the result is
    ``None``. Later objects in the text are not tried.
    """
    if not text or not text.strip():
        return None

    start = text.find("{")
    if start == -1:
        return None

    candidate = _balanced_span(text, start)
    if candidate is None:
        return None

    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        logger.debug("Balanced span is not valid JSON: %.80s", candidate)
        return None

    if not isinstance(parsed, dict):
        return None
    return parsed


def _balanced_span(text: str, start: int) -> str | None:
    """Return ``text[start:end]`` where *end* closes the object opened at *start*."""
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None
