"""Pull a JSON object out of free-form model output."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class ParseFailure:
    reason: str


def extract_json_payload(text: Optional[str]) -> Union[Dict[str, Any], ParseFailure]:
    """Return the JSON object carried by ``text`` or a ``ParseFailure``.

    The whole text is tried first. Models often wrap the payload in prose or a
    code fence, so on failure the first balanced ``{...}`` span is parsed
    instead. Nothing is raised.
    """
    if not text or not text.strip():
        return ParseFailure("empty response")

    text = text.strip()
    try:
        parsed = json.loads(text)
    except ValueError:
        pass
    else:
        if isinstance(parsed, dict):
            return parsed
        return ParseFailure(f"expected a JSON object, got {type(parsed).__name__}")

    span = _first_balanced_object(text)
    if span is None:
        return ParseFailure("no balanced JSON object found")
    try:
        parsed = json.loads(span)
    except ValueError as exc:
        return ParseFailure(f"embedded JSON object is invalid: {exc}")
    if not isinstance(parsed, dict):
        return ParseFailure("embedded JSON is not an object")
    return parsed


def _first_balanced_object(text: str) -> str | None:
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
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
                return text[start:pos + 1]
    return None
