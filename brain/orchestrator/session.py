"""
Session Trace

In-memory, append-only log of the steps taken while serving one request.
Never persisted; it lives exactly as long as the request.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..common.dates import to_iso, utcnow

logger = logging.getLogger("brain.orchestrator.session")


@dataclass(frozen=True)
class SessionStep:
    """A single orchestration step"""
    timestamp: str
    agent: str
    action: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "agent": self.agent, "action": self.action, "data": self.data}


class SessionTrace:
    """Ordered trace of one request, from intent analysis to synthesis."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
        self._steps: List[SessionStep] = []
        self.started_at = utcnow()
        self._start = time.monotonic()
        self.ended_at = None
        self.duration_ms: Optional[int] = None
        self.final_response: Any = None

    @property
    def steps(self) -> Tuple[SessionStep, ...]:
        return tuple(self._steps)

    @property
    def is_complete(self) -> bool:
        return self.ended_at is not None

    def add_step(self, agent: str, action: str, data: Any = None) -> SessionStep:
        step = SessionStep(timestamp=to_iso(utcnow()), agent=agent, action=action, data=data)
        self._steps.append(step)
        logger.info("[Session:%s] [%s] %s", self.session_id, agent, action)
        return step

    def complete(self, final_response: Any = None) -> "SessionTrace":
        self.ended_at = utcnow()
        self.duration_ms = int((time.monotonic() - self._start) * 1000)
        self.final_response = final_response
        return self

    def agents_used(self) -> List[str]:
        """Distinct agent names in first-seen order."""
        return list(dict.fromkeys(s.agent for s in self._steps))

    def summary(self) -> Dict[str, Any]:
        duration = self.duration_ms
        if duration is None:
            duration = int((time.monotonic() - self._start) * 1000)
        return {
            "sessionId": self.session_id,
            "steps": len(self._steps),
            "duration": f"{duration}ms",
            "agentsUsed": self.agents_used(),
        }
