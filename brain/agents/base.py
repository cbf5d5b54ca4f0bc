"""
Base Agent

Abstract base class for domain handlers. Subclasses implement ``execute``;
``run`` wraps it so expected failures come back as results instead of
exceptions:

- HandlerError       -> Err
- AuthRequiredError  -> AuthRequired
- plain return value -> Ok
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..common.dates import to_iso, utcnow
from ..common.errors import AuthRequiredError, HandlerError
from ..common.schemas import AgentResult, AgentTask, AuthRequired, Err, Ok, is_agent_result

logger = logging.getLogger("brain.agents.base")


class BaseAgent(ABC):
    """
    Abstract base class for domain handlers.

    Each handler must implement:
    - execute: perform one AgentTask and return data or an AgentResult
    """

    def __init__(self, name: str, login_url: Optional[str] = None):
        """
        Initialize handler.

        Args:
            name: Domain name (e.g., "gmail", "ms_graph")
            login_url: Where to send the user when authentication is missing
        """
        self.name = name
        self.login_url = login_url
        self.action_log: List[Dict[str, Any]] = []

    def _log(self, action: str, result: Any = None, status: str = "success") -> None:
        self.action_log.append({
            "timestamp": to_iso(utcnow()),
            "action": action,
            "result": result,
            "status": status,
        })

    @staticmethod
    def ok(data: Any = None) -> Ok:
        return Ok(data)

    @staticmethod
    def error(message: str, data: Any = None) -> Err:
        return Err(message, data)

    def auth_required(self, message: str = "Authentication required") -> AuthRequired:
        return AuthRequired(message, login_url=self.login_url)

    @abstractmethod
    async def execute(self, task: AgentTask) -> Any:
        """
        Perform the task.

        Raises:
            HandlerError: the action could not be completed
            AuthRequiredError: the user must log in first
        """
        pass

    async def run(self, task: AgentTask) -> AgentResult:
        try:
            result = await self.execute(task)
        except AuthRequiredError as e:
            self._log(task.action, str(e), status="auth_required")
            return AuthRequired(str(e), login_url=e.login_url or self.login_url)
        except HandlerError as e:
            self._log(task.action, str(e), status="error")
            logger.warning("[%s] %s failed: %s", self.name, task.action, e)
            return Err(str(e), e.data)

        if is_agent_result(result):
            self._log(task.action, status="success" if result.success else "error")
            return result
        self._log(task.action)
        return Ok(result)
