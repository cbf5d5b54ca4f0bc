"""
Second Brain Schemas

Task records with their derived Eisenhower scores, and the tagged result
type every domain handler returns.
"""

from .task import (
    Task,
    ScoredTask,
    TaskStatus,
    TaskPriority,
    TaskQuadrant,
    FIXED_TIME_TYPES,
    generate_task_id,
)
from .results import AgentResult, AgentTask, Ok, Err, AuthRequired, is_agent_result

__all__ = [
    "Task",
    "ScoredTask",
    "TaskStatus",
    "TaskPriority",
    "TaskQuadrant",
    "FIXED_TIME_TYPES",
    "generate_task_id",
    "AgentResult",
    "AgentTask",
    "Ok",
    "Err",
    "AuthRequired",
    "is_agent_result",
]
