"""
Task Schema

Tasks are created by the intake layer, mutated by update/delete and by the
urgency-refresh sweep, and never deleted automatically.
ScoredTask adds the derived Eisenhower fields; it is computed on read and
never persisted.
"""

import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..dates import parse_datetime


# ============================================================================
# Enums
# ============================================================================

class TaskStatus(str, Enum):
    """Task lifecycle status"""
    OPEN = "open"
    COMPLETED = "completed"
    DEFERRED = "deferred"


class TaskPriority(str, Enum):
    """Coarse user-facing priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskQuadrant(str, Enum):
    """
    Eisenhower quadrant of a stored task.

    Not to be confused with the integer quadrants of the keyword classifier
    in ``brain.priority.keywords``; the two schemes are independent.
    """
    Q1 = "Q1"  # urgent & important
    Q2 = "Q2"  # important, not urgent
    Q3 = "Q3"  # urgent, not important
    Q4 = "Q4"  # neither

    @property
    def label(self) -> str:
        return _QUADRANT_LABELS[self]


_QUADRANT_LABELS = {
    TaskQuadrant.Q1: "do first",
    TaskQuadrant.Q2: "schedule",
    TaskQuadrant.Q3: "delegate",
    TaskQuadrant.Q4: "eliminate",
}

# Task types that occupy a fixed slot in the calendar
FIXED_TIME_TYPES = frozenset({"termin", "event"})


def generate_task_id() -> str:
    """Time-prefixed id, sortable by creation."""
    return f"{int(time.time() * 1000)}{uuid.uuid4().hex[:6]}"


# ============================================================================
# Models
# ============================================================================

class Task(BaseModel):
    """A stored work item. Unknown keys from raw JSON are kept."""

    model_config = ConfigDict(extra="allow", use_enum_values=False)

    id: str = Field(default_factory=generate_task_id)
    title: str = ""
    description: str = ""
    importance_score: Optional[float] = Field(default=None, description="1-10, Eisenhower Y-axis")
    urgency_score: Optional[float] = Field(default=None, description="1-10, Eisenhower X-axis")
    deadline_at: Optional[datetime] = None
    dependency_id: Optional[str] = None
    status: TaskStatus = TaskStatus.OPEN
    priority: TaskPriority = TaskPriority.MEDIUM
    type: Optional[str] = None
    category: Optional[str] = None
    process_at: Optional[datetime] = None
    is_calendar_event: bool = False
    timestamp: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("deadline_at", "process_at", mode="before")
    @classmethod
    def _coerce_datetime(cls, value):
        # Raw data carries mixed formats; unparseable values are dropped
        return parse_datetime(value)

    @property
    def is_fixed_time(self) -> bool:
        """True for calendar-bound items (appointments, events)"""
        return self.is_calendar_event or (self.type or "").lower() in FIXED_TIME_TYPES

    @property
    def is_open(self) -> bool:
        return self.status != TaskStatus.COMPLETED

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class ScoredTask(Task):
    """Task with derived Eisenhower scores, relative to a point in time."""

    calculated_urgency: float
    calculated_importance: float
    quadrant: TaskQuadrant
