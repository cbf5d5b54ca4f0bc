"""Datetime helpers shared by scoring, policies and synthesis."""

from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string, epoch number or datetime into an aware datetime.

    Naive values are taken as UTC. Graph-style ``{"dateTime": ...}`` dicts are
    unwrapped. Anything unparseable returns None.
    """
    if value is None or value == "":
        return None

    if isinstance(value, dict):
        return parse_datetime(value.get("dateTime") or value.get("date_time"))

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # Millisecond epochs are common in exported JSON
        seconds = value / 1000.0 if value > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
