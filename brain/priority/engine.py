"""
Priority Engine

Eisenhower classification of stored tasks on a 1-10 urgency x importance
grid, with two adjustments applied on top of the stored scores:

1. Temporal: urgency rises as the deadline approaches (overdue -> 10)
2. Dependency: a task feeding an urgent or fixed-time parent inherits at
   least urgency 8

Dependencies are followed one hop only. Raw data may contain cycles
(A -> B -> A); since no parent's own dependency is ever looked at, cycles
cannot cause recursion. Transitive propagation is a known limitation.

Scores are recomputed on every call; nothing here is cached or persisted.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from ..common.dates import parse_datetime, utcnow
from ..common.schemas import ScoredTask, Task, TaskQuadrant


class TimeWindow(str, Enum):
    """Time horizon for task lists"""
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


DEFAULT_SCORE = 5
MAX_SCORE = 10
QUADRANT_THRESHOLD = 5  # midpoint of the scale, inclusive on the high side
DEPENDENCY_URGENCY_TRIGGER = 7  # parent urgency strictly above this
DEPENDENCY_URGENCY_FLOOR = 8

# (deadline horizon, minimum calculated urgency) per window
WINDOW_RULES = {
    TimeWindow.TODAY: (timedelta(days=1), 8),
    TimeWindow.WEEK: (timedelta(days=7), 6),
    TimeWindow.MONTH: (timedelta(days=30), 4),
}


_DERIVED_FIELDS = {"calculated_urgency", "calculated_importance", "quadrant"}


def _base_score(value: Optional[float]) -> float:
    return DEFAULT_SCORE if value is None else value


class PriorityEngine:
    """
    Scores tasks into quadrants. Pure and synchronous: no I/O, no suspension.
    """

    def deadline_urgency(self, task: Task, now: datetime) -> float:
        """Stored urgency adjusted for how close the deadline is."""
        urgency = _base_score(task.urgency_score)
        deadline = task.deadline_at
        if deadline is None:
            return urgency

        remaining = deadline - now
        if remaining < timedelta(0):
            return MAX_SCORE
        if remaining <= timedelta(days=1):
            return min(MAX_SCORE, urgency + 4)
        if remaining <= timedelta(days=3):
            return min(MAX_SCORE, urgency + 2)
        return urgency

    def classify(
        self,
        task: Task,
        now: Optional[datetime] = None,
        tasks_by_id: Optional[Dict[str, Task]] = None,
    ) -> ScoredTask:
        """
        Score a single task.

        Args:
            task: Task to score
            now: Reference time (default: current UTC time)
            tasks_by_id: Sibling tasks for dependency lookup

        Returns:
            ScoredTask with calculated urgency/importance and quadrant
        """
        now = parse_datetime(now) or utcnow()
        urgency = self.deadline_urgency(task, now)
        importance = _base_score(task.importance_score)

        parent = None
        if task.dependency_id and tasks_by_id and task.dependency_id != task.id:
            parent = tasks_by_id.get(task.dependency_id)
        if parent is not None:
            # Single hop: the parent's own dependency is never followed
            parent_urgency = self.deadline_urgency(parent, now)
            if parent_urgency > DEPENDENCY_URGENCY_TRIGGER or parent.is_fixed_time:
                urgency = max(urgency, DEPENDENCY_URGENCY_FLOOR)

        return ScoredTask(
            **task.model_dump(exclude=_DERIVED_FIELDS),
            calculated_urgency=urgency,
            calculated_importance=importance,
            quadrant=self.quadrant_for(urgency, importance),
        )

    @staticmethod
    def quadrant_for(urgency: float, importance: float) -> TaskQuadrant:
        urgent = urgency >= QUADRANT_THRESHOLD
        important = importance >= QUADRANT_THRESHOLD
        if urgent and important:
            return TaskQuadrant.Q1
        if important:
            return TaskQuadrant.Q2
        if urgent:
            return TaskQuadrant.Q3
        return TaskQuadrant.Q4

    def score_tasks(self, tasks: Iterable[Task], now: Optional[datetime] = None) -> List[ScoredTask]:
        """Score every task against a shared id index, preserving order."""
        now = parse_datetime(now) or utcnow()
        task_list = list(tasks)
        tasks_by_id = {t.id: t for t in task_list}
        return [self.classify(t, now, tasks_by_id) for t in task_list]

    def filter_by_window(
        self,
        scored_tasks: Iterable[ScoredTask],
        window: Union[TimeWindow, str] = TimeWindow.ALL,
        now: Optional[datetime] = None,
    ) -> List[ScoredTask]:
        """
        Keep tasks that fall inside the time window.

        A task qualifies when its deadline is within the window's horizon, or
        its calculated urgency reaches the window's threshold. Tasks without a
        deadline only qualify through urgency. Overdue tasks count as inside.
        """
        window = TimeWindow(window)
        scored_tasks = list(scored_tasks)
        if window == TimeWindow.ALL:
            return scored_tasks

        now = parse_datetime(now) or utcnow()
        horizon, min_urgency = WINDOW_RULES[window]
        selected = []
        for task in scored_tasks:
            due_soon = task.deadline_at is not None and task.deadline_at - now <= horizon
            if due_soon or task.calculated_urgency >= min_urgency:
                selected.append(task)
        return selected

    def eisenhower_matrix(
        self,
        tasks: Iterable[Task],
        window: Union[TimeWindow, str] = TimeWindow.ALL,
        now: Optional[datetime] = None,
    ) -> Dict[TaskQuadrant, List[ScoredTask]]:
        """
        Group open tasks into quadrants for the given window.

        Completed tasks are left out. Each bucket is ordered by calculated
        urgency, then importance, highest first.
        """
        now = parse_datetime(now) or utcnow()
        scored = self.filter_by_window(self.score_tasks(tasks, now), window, now)
        matrix: Dict[TaskQuadrant, List[ScoredTask]] = {q: [] for q in TaskQuadrant}
        for task in scored:
            if task.is_open:
                matrix[task.quadrant].append(task)
        for bucket in matrix.values():
            bucket.sort(key=lambda t: (t.calculated_urgency, t.calculated_importance), reverse=True)
        return matrix
