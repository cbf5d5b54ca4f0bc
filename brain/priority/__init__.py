"""
Priority - Eisenhower scoring of tasks and inbox items

Two independent classifiers:
- PriorityEngine: stored Task scores with deadline and dependency adjustments
- classify_by_keywords / prioritize_items: keyword triage for inbox items
"""

from .engine import PriorityEngine, TimeWindow
from .keywords import (
    KeywordClassification,
    classify_by_keywords,
    prioritize_items,
    URGENT_KEYWORDS,
    IMPORTANT_KEYWORDS,
)

__all__ = [
    "PriorityEngine",
    "TimeWindow",
    "KeywordClassification",
    "classify_by_keywords",
    "prioritize_items",
    "URGENT_KEYWORDS",
    "IMPORTANT_KEYWORDS",
]
