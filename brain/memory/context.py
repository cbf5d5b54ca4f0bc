"""
Chat Context

ContextBuilder gathers what a conversational reply should know about:
related memories, today's prioritized tasks and learned preferences.

ContextManager keeps chat history inside the model's context window by
replacing oversized history with a generated handover note.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..common.dates import utcnow
from ..common.errors import GenerationFailure
from ..common.schemas import ScoredTask, TaskQuadrant
from ..priority import PriorityEngine, TimeWindow
from .similarity_index import ScoredRecord

logger = logging.getLogger("brain.memory.context")

DEFAULT_TOKEN_LIMIT = 120_000
DEFAULT_THRESHOLD = 0.8
CHARS_PER_TOKEN = 4
HANDOVER_TAIL = 10

HANDOVER_PROMPT = """The conversation context is getting too long.
Write a handover note for the next turn from the history below.

Include:
- What the user asked last
- Facts that were established
- Tasks currently in progress
- The user's current mood

Keep it concise and purely factual.

HISTORY:
{history}"""


@dataclass
class BrainContext:
    """Context assembled for one chat turn"""
    memories: List[ScoredRecord] = field(default_factory=list)
    tasks: List[ScoredTask] = field(default_factory=list)
    preferences: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def render(self) -> str:
        """Plain-text block for inclusion in a system prompt."""
        lines = ["RELEVANT MEMORIES:"]
        lines.extend(f"- {m.text}" for m in self.memories)
        if not self.memories:
            lines.append("- (none)")

        lines.append("")
        lines.append("TODAY'S TASKS:")
        for i, task in enumerate(self.tasks, 1):
            deadline = task.deadline_at.strftime("%d.%m.%Y %H:%M") if task.deadline_at else "no deadline"
            lines.append(
                f"{i}. [ID:{task.id}] {task.title} "
                f"({task.quadrant.value}, I:{task.calculated_importance:g}/U:{task.calculated_urgency:g}) - {deadline}"
            )
        if not self.tasks:
            lines.append("(none)")

        if self.preferences:
            lines.append("")
            lines.append("PREFERENCES:")
            for key, pref in self.preferences.items():
                lines.append(f"- {key}: {pref.get('value')}")
        return "\n".join(lines)


class ContextBuilder:
    """Collects memories, today's tasks and preferences for a message."""

    def __init__(self, store, index=None, engine: Optional[PriorityEngine] = None, memory_limit: int = 3):
        self._store = store
        self._index = index
        self._engine = engine or PriorityEngine()
        self._memory_limit = memory_limit

    def build(self, message: str, now: Optional[datetime] = None) -> BrainContext:
        now = now or utcnow()
        memories: List[ScoredRecord] = []
        if self._index is not None and message.strip():
            memories = self._index.search(message, self._memory_limit)

        matrix = self._engine.eisenhower_matrix(self._store.list_tasks(), TimeWindow.TODAY, now)
        tasks = [t for q in TaskQuadrant for t in matrix[q]]

        return BrainContext(memories=memories, tasks=tasks, preferences=self._store.get_preferences())


class ContextManager:
    """History size guard with LLM handover notes."""

    def __init__(
        self,
        llm,
        threshold: float = DEFAULT_THRESHOLD,
        token_limit: int = DEFAULT_TOKEN_LIMIT,
    ):
        self._llm = llm
        self.threshold = threshold
        self.token_limit = token_limit

    @staticmethod
    def estimate_tokens(history: List[Dict[str, Any]]) -> float:
        return len(json.dumps(history, ensure_ascii=False, default=str)) / CHARS_PER_TOKEN

    def needs_handover(self, history: List[Dict[str, Any]]) -> bool:
        return self.estimate_tokens(history) > self.token_limit * self.threshold

    async def manage(self, history: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Return history unchanged, or a single handover message if it is too large.

        If the handover cannot be generated, the last few turns are kept instead.
        """
        if not self.needs_handover(history):
            return history

        logger.info("Context limit reached (~%d tokens), generating handover", self.estimate_tokens(history))
        tail = history[-HANDOVER_TAIL:]
        prompt = HANDOVER_PROMPT.format(history=json.dumps(tail, ensure_ascii=False, default=str))
        try:
            note = await asyncio.to_thread(self._llm.generate, prompt)
        except GenerationFailure as e:
            logger.warning("Handover generation failed, truncating history: %s", e)
            return tail
        return [{"role": "user", "content": f"[SYSTEM HANDOVER NOTE]: {note}"}]
