"""
Keyword Triage

Keyword-only Eisenhower classifier for ungrouped inbox items (mails, CRM
notifications) that carry no stored scores.

Quadrant numbers here are plain ints where 1 is the most actionable
("do first") and 4 the least. They are NOT TaskQuadrant values from the
priority engine; the two schemes are scored differently and stay separate.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping

from ..common.dates import parse_datetime

URGENT_KEYWORDS = ("urgent", "asap", "today", "deadline", "blocking")
IMPORTANT_KEYWORDS = ("ceo", "contract", "invoice", "security", "client", "production")


@dataclass(frozen=True)
class KeywordClassification:
    """Keyword triage outcome for one item"""
    quadrant: int  # 1 do first, 2 schedule, 3 delegate, 4 eliminate
    urgent: bool
    important: bool


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _searchable_text(item: Any) -> str:
    parts = [_field(item, "title"), _field(item, "body")]
    parts.extend(_field(item, "labels") or [])
    return " ".join(str(p) for p in parts if p).lower()


def _has_keyword(text: str, keywords: Iterable[str]) -> bool:
    return any(kw in text for kw in keywords)


def classify_by_keywords(item: Any) -> KeywordClassification:
    """
    Classify an inbox item by keyword presence.

    Title, body and labels are joined and matched case-insensitively against
    URGENT_KEYWORDS and IMPORTANT_KEYWORDS.

    Args:
        item: Mapping or object with optional title, body, labels

    Returns:
        KeywordClassification
    """
    text = _searchable_text(item)
    urgent = _has_keyword(text, URGENT_KEYWORDS)
    important = _has_keyword(text, IMPORTANT_KEYWORDS)

    if urgent and important:
        quadrant = 1
    elif important:
        quadrant = 2
    elif urgent:
        quadrant = 3
    else:
        quadrant = 4
    return KeywordClassification(quadrant=quadrant, urgent=urgent, important=important)


def _recency(item: Any) -> float:
    ts = parse_datetime(_field(item, "timestamp"))
    # Items without a timestamp sort as the oldest
    return ts.timestamp() if ts is not None else float("-inf")


def prioritize_items(items: Iterable[Any]) -> List[Any]:
    """
    Order items by keyword quadrant (1 first), newest first within a quadrant.

    Returns a new list; the input is left untouched. The sort is stable, so
    items with equal quadrant and timestamp keep their input order.
    """
    return sorted(items, key=lambda item: (classify_by_keywords(item).quadrant, -_recency(item)))
