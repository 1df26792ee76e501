"""Helpers for decoding loosely structured JSON payloads."""

from __future__ import annotations

import json
import re
from typing import Any, List, Mapping, Optional

_DECODER = json.JSONDecoder()
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_DELIMITER_RE = re.compile(r"[,;]")


def decode_json(raw: str) -> Any:
    """Decode ``raw`` as JSON, returning None when it is not valid JSON."""
    content = raw.strip()
    fenced = _CODE_FENCE_RE.match(content)
    if fenced:
        content = fenced.group(1).strip()
    if not content:
        return None
    try:
        return json.loads(content)
    except (json.JSONDecodeError, RecursionError):
        return None


def decode_object_at(text: str, start: int) -> Optional[str]:
    """Return the raw text of the JSON object starting at or after ``start``.

    Script assignments like ``window.x = {...};`` can contain ``};`` inside
    strings, so the object boundary is found by decoding, not by regex.
    """
    brace = text.find("{", start)
    if brace == -1:
        return None
    try:
        _, end = _DECODER.raw_decode(text, brace)
    except (json.JSONDecodeError, RecursionError):
        return None
    return text[brace:end]


def first_string(mapping: Mapping[str, Any], *keys: str) -> Optional[str]:
    """Return the first non-blank scalar value among ``keys`` as stripped text."""
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            if text:
                return text
    return None


def ensure_string_list(value: Any) -> List[str]:
    """Return a sanitized string list from a list or a comma/semicolon string."""
    if isinstance(value, str):
        value = _DELIMITER_RE.split(value)
    if not isinstance(value, list):
        return []
    results: List[str] = []
    for item in value:
        if isinstance(item, Mapping):
            item = first_string(item, "name", "title")
        if isinstance(item, str):
            stripped = item.strip()
            if stripped:
                results.append(stripped)
    return results
