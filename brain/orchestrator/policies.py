"""
Policies

Standing behavioral rules checked against proposed agent actions.

An action is a plain dict with a ``type`` key plus action-specific fields.
Rules are registered per action type; types without rules are always valid.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from ..common.config import MORNING_SHIELD_MESSAGE, PolicyConfig
from ..common.dates import parse_datetime
from ..common.errors import PolicyViolation

MEETING_ACTIONS = ("schedule_meeting", "create_event")
START_TIME_FIELDS = ("start_time", "startTime", "start")


@dataclass(frozen=True)
class PolicyResult:
    """Outcome of a policy check"""
    valid: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"valid": self.valid}
        if self.reason:
            result["reason"] = self.reason
        return result


class PolicyRule(Protocol):
    action_types: Tuple[str, ...]

    def check(self, action: Mapping[str, Any]) -> PolicyResult:
        ...


class MorningShieldRule:
    """No meetings starting inside the protected morning hours."""

    action_types = MEETING_ACTIONS

    def __init__(
        self,
        start_hour: int = 0,
        end_hour: int = 10,
        message: str = MORNING_SHIELD_MESSAGE,
        active: bool = True,
    ):
        self.start_hour = start_hour
        self.end_hour = end_hour
        self.message = message
        self.active = active

    def check(self, action: Mapping[str, Any]) -> PolicyResult:
        if not self.active:
            return PolicyResult(valid=True)

        start = None
        for key in START_TIME_FIELDS:
            if action.get(key) is not None:
                start = parse_datetime(action[key])
                break
        # Nothing to judge without a readable start time
        if start is None:
            return PolicyResult(valid=True)

        if self.start_hour <= start.hour < self.end_hour:
            return PolicyResult(valid=False, reason=self.message)
        return PolicyResult(valid=True)


class PolicyValidator:
    """
    Registry of policy rules keyed by action type.

    ``validate`` is pure; ``enforce`` raises PolicyViolation for callers that
    prefer exceptions.
    """

    def __init__(self, rules: Optional[List[PolicyRule]] = None):
        self._rules: Dict[str, List[PolicyRule]] = {}
        for rule in rules if rules is not None else [MorningShieldRule()]:
            self.register(rule)

    @classmethod
    def from_config(cls, config: PolicyConfig) -> "PolicyValidator":
        return cls([
            MorningShieldRule(
                start_hour=config.morning_shield_start_hour,
                end_hour=config.morning_shield_end_hour,
                message=config.morning_shield_message,
                active=config.morning_shield_active,
            )
        ])

    def register(self, rule: PolicyRule) -> None:
        for action_type in rule.action_types:
            self._rules.setdefault(action_type, []).append(rule)

    def rules_for(self, action_type: str) -> List[PolicyRule]:
        return list(self._rules.get(action_type, []))

    def validate(self, action: Mapping[str, Any]) -> PolicyResult:
        """Check an action against its rules; first violation wins."""
        for rule in self._rules.get(action.get("type") or "", []):
            result = rule.check(action)
            if not result.valid:
                return result
        return PolicyResult(valid=True)

    def enforce(self, action: Mapping[str, Any]) -> None:
        result = self.validate(action)
        if not result.valid:
            raise PolicyViolation(result.reason or "Policy violation", action_type=action.get("type"))
