"""Shared utilities for LLM replies and machine-readable payload blocks."""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:[a-zA-Z0-9_-]+)?\s*\n(.*?)\n?```", re.DOTALL)


def _loads_object(text: str) -> Optional[dict]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_llm_json(raw: str) -> dict:
    """Parse a JSON object from an LLM reply, tolerating code fences and preamble.

    Tries in order:
    1. Direct json.loads on the stripped reply
    2. Contents of the first fenced block
    3. Substring between the first '{' and the last '}'
    4. Empty dict
    """
    if not raw:
        return {}

    text = raw.strip()
    parsed = _loads_object(text)
    if parsed is not None:
        return parsed

    fenced = _FENCE_RE.search(text)
    if fenced:
        parsed = _loads_object(fenced.group(1).strip())
        if parsed is not None:
            return parsed

    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        parsed = _loads_object(text[start:end])
        if parsed is not None:
            return parsed

    return {}


def format_json_block(payload: Any) -> str:
    """Render a payload as a fenced json block for callers to parse back out."""
    body = json.dumps(payload, ensure_ascii=False, indent=2, default=str)
    return f"```json\n{body}\n```"


def extract_json_block(text: str) -> Optional[dict]:
    """Inverse of format_json_block: first fenced json object in text, if any."""
    match = _FENCE_RE.search(text or "")
    if not match:
        return None
    return _loads_object(match.group(1).strip())
