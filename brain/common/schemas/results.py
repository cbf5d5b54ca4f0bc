"""
Agent Results

Handlers receive an AgentTask and return exactly one of three result kinds:

- Ok: the action succeeded and carries data
- Err: the action failed (handler error, exception or policy violation);
  may still carry the original data for debugging
- AuthRequired: the user must log in before the domain can be queried

All three expose the uniform contract ``success / data / error / auth_required``
so synthesis can treat them alike, and serialize to the same dict shape.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class Ok:
    """Successful handler result"""
    data: Any = None

    @property
    def success(self) -> bool:
        return True

    @property
    def error(self) -> Optional[str]:
        return None

    @property
    def auth_required(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return _as_dict(self)


@dataclass(frozen=True)
class Err:
    """Failed handler result"""
    message: str
    data: Any = None

    def __post_init__(self):
        if not self.message:
            object.__setattr__(self, "message", "Unknown error")

    @property
    def success(self) -> bool:
        return False

    @property
    def error(self) -> str:
        return self.message

    @property
    def auth_required(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return _as_dict(self)


@dataclass(frozen=True)
class AuthRequired:
    """Handler needs an interactive login"""
    message: str = "Authentication required"
    login_url: Optional[str] = None

    @property
    def success(self) -> bool:
        return False

    @property
    def data(self) -> Any:
        return None

    @property
    def error(self) -> str:
        return self.message

    @property
    def auth_required(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        result = _as_dict(self)
        if self.login_url:
            result["login_url"] = self.login_url
        return result


AgentResult = Union[Ok, Err, AuthRequired]


def _as_dict(result: "AgentResult") -> Dict[str, Any]:
    return {
        "success": result.success,
        "data": result.data,
        "error": result.error,
        "auth_required": result.auth_required,
    }


def is_agent_result(value: Any) -> bool:
    return isinstance(value, (Ok, Err, AuthRequired))


@dataclass(frozen=True)
class AgentTask:
    """What the dispatcher asks one domain handler to do"""
    action: str
    days: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "days": self.days, "details": self.details, "message": self.message}
