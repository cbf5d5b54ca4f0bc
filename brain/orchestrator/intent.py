"""
Intent Classifier

Maps request text to target domains, sub-intents and a sync flag using
case-insensitive substring matching against keyword tables. The tables are
data: pass replacements to IntentClassifier (or set them in config) to tune
matching without touching dispatch logic.

Matching favors recall. A term may appear under several domains ("sync" hits
both gmail and ms_graph), and short terms like "ms" or "sf" match inside
longer words.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from ..common.dates import utcnow
from ..common.schemas import AgentTask

logger = logging.getLogger("brain.orchestrator.intent")


class Domain(str, Enum):
    """Known domain sources"""
    GMAIL = "gmail"
    MS_GRAPH = "ms_graph"
    SALESFORCE = "salesforce"


class Intent(str, Enum):
    """Sub-intents inside a request"""
    CALENDAR = "calendar"
    TASKS = "tasks"
    MAIL = "mail"
    CREATE = "create"


DEFAULT_DOMAIN_TERMS: Dict[Domain, Tuple[str, ...]] = {
    Domain.GMAIL: ("mail", "gmail", "sync", "eisenhauer"),
    Domain.SALESFORCE: ("salesforce", "sf", "opp"),
    Domain.MS_GRAPH: (
        "termin", "kalender", "ms", "microsoft", "outlook",
        "aufgabe", "todo", "to-do", "calendar", "sync",
    ),
}

DEFAULT_INTENT_TERMS: Dict[Intent, Tuple[str, ...]] = {
    Intent.CALENDAR: ("termin", "kalender", "calendar", "meeting", "appointment", "event"),
    Intent.TASKS: ("aufgabe", "todo", "to-do", "task"),
    Intent.MAIL: ("mail", "inbox", "posteingang"),
    Intent.CREATE: (
        "erstell", "anleg", "lege", "neuer", "neue", "create",
        "schedule", "eintragen", "plane", "add",
    ),
}

DEFAULT_SYNC_TERMS: Tuple[str, ...] = (
    "sync", "routine", "morning", "review", "week", "today", "summary", "overview",
    "briefing", "übersicht", "zusammenfassung",
)


class AppointmentDetails(BaseModel):
    """Structured appointment extracted from a create request"""
    subject: str = Field(description="Short title of the appointment")
    start: str = Field(description="Start as ISO-8601 datetime")
    end: Optional[str] = Field(default=None, description="End as ISO-8601 datetime")
    location: Optional[str] = None
    description: Optional[str] = None


EXTRACTION_PROMPT = """Extract the appointment the user wants to create.
The current date and time is {now} ({weekday}). Resolve relative dates such as
"morgen" or "next Monday" against it. The request may be German.

Request: "{message}"
"""


@dataclass(frozen=True)
class IntentFlags:
    calendar: bool = False
    tasks: bool = False
    mail: bool = False
    create: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {"calendar": self.calendar, "tasks": self.tasks, "mail": self.mail, "create": self.create}


@dataclass
class IntentAnalysis:
    """Classification of one request"""
    domains: Tuple[Domain, ...]
    intents: IntentFlags
    is_sync_request: bool
    appointment_details: Optional[AppointmentDetails] = None

    @property
    def wants_appointment(self) -> bool:
        return self.intents.calendar and self.intents.create

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domains": [d.value for d in self.domains],
            "intents": self.intents.to_dict(),
            "isSyncRequest": self.is_sync_request,
            "appointmentDetails": self.appointment_details.model_dump() if self.appointment_details else None,
        }


@dataclass(frozen=True)
class DomainActions:
    """Action names one domain handler understands, by trigger"""
    default: str
    create: Optional[str] = None
    sync: Optional[str] = None
    calendar: Optional[str] = None
    tasks: Optional[str] = None
    mail: Optional[str] = None


ACTION_TABLE: Dict[Domain, DomainActions] = {
    Domain.MS_GRAPH: DomainActions(
        default="basic_review",
        create="create_event",
        sync="basic_review",
        calendar="get_calendar",
        tasks="get_tasks",
        mail="get_mails",
    ),
    Domain.GMAIL: DomainActions(default="basic_review", sync="sync_eisenhauer"),
    Domain.SALESFORCE: DomainActions(default="sync_opportunities"),
}


def _contains_any(text: str, terms: Iterable[str]) -> bool:
    return any(term.lower() in text for term in terms)


def select_action(domain: Domain, analysis: IntentAnalysis) -> str:
    """
    Pick the action for a domain.

    Precedence: create (calendar + create) > sync > calendar / tasks / mail > default.
    """
    actions = ACTION_TABLE[Domain(domain)]
    if analysis.wants_appointment and actions.create:
        return actions.create
    if analysis.is_sync_request and actions.sync:
        return actions.sync
    for intent in (Intent.CALENDAR, Intent.TASKS, Intent.MAIL):
        action = getattr(actions, intent.value)
        if getattr(analysis.intents, intent.value) and action:
            return action
    return actions.default


class IntentClassifier:
    """
    Keyword intent classifier with optional appointment extraction.

    ``classify_intent`` is pure and synchronous. ``analyze`` additionally asks
    the generation capability for AppointmentDetails when a request both
    mentions the calendar and asks to create something.
    """

    def __init__(
        self,
        llm=None,
        domain_terms: Optional[Mapping[str, Sequence[str]]] = None,
        intent_terms: Optional[Mapping[str, Sequence[str]]] = None,
        sync_terms: Optional[Sequence[str]] = None,
    ):
        self._llm = llm
        self.domain_terms = {Domain(k): tuple(v) for k, v in (domain_terms or DEFAULT_DOMAIN_TERMS).items()}
        self.intent_terms = {Intent(k): tuple(v) for k, v in (intent_terms or DEFAULT_INTENT_TERMS).items()}
        self.sync_terms = tuple(sync_terms or DEFAULT_SYNC_TERMS)

    @classmethod
    def from_config(cls, config, llm=None) -> "IntentClassifier":
        """Build from an OrchestratorConfig."""
        return cls(
            llm=llm,
            domain_terms=config.domain_terms,
            intent_terms=config.intent_terms,
            sync_terms=config.sync_terms,
        )

    def is_sync_request(self, message: str) -> bool:
        return _contains_any((message or "").lower(), self.sync_terms)

    def classify_intent(self, message: str) -> IntentAnalysis:
        text = (message or "").lower()
        domains = tuple(d for d in Domain if _contains_any(text, self.domain_terms.get(d, ())))
        flags = IntentFlags(**{
            intent.value: _contains_any(text, self.intent_terms.get(intent, ()))
            for intent in Intent
        })
        return IntentAnalysis(
            domains=domains,
            intents=flags,
            is_sync_request=_contains_any(text, self.sync_terms),
        )

    async def analyze(self, message: str) -> IntentAnalysis:
        analysis = self.classify_intent(message)
        if analysis.wants_appointment:
            analysis.appointment_details = await self.extract_appointment(message)
        return analysis

    async def extract_appointment(self, message: str) -> Optional[AppointmentDetails]:
        """Structured appointment from free text, or None if extraction fails."""
        if self._llm is None or not getattr(self._llm, "is_available", True):
            logger.info("No generation capability, skipping appointment extraction")
            return None

        now = utcnow()
        prompt = EXTRACTION_PROMPT.format(now=now.isoformat(), weekday=now.strftime("%A"), message=message)
        try:
            return await asyncio.to_thread(self._llm.generate, prompt, AppointmentDetails)
        except Exception as e:
            logger.warning("Appointment extraction failed: %s", e)
            return None


def classify_intent(message: str) -> IntentAnalysis:
    """Classify with the built-in keyword tables."""
    return IntentClassifier().classify_intent(message)


def build_agent_task(domain: Domain, analysis: IntentAnalysis, message: str = "", config=None) -> AgentTask:
    """
    Build the handler task for a domain.

    Args:
        domain: Target domain
        analysis: Result of IntentClassifier.analyze
        message: Raw request text, passed through to the handler
        config: Optional OrchestratorConfig for day windows
    """
    mail_days = config.mail_days if config else 14
    calendar_days = config.calendar_days if config else 7
    action = select_action(domain, analysis)

    days = None
    if domain == Domain.GMAIL or action == "get_mails":
        days = mail_days
    elif action in ("get_calendar", "basic_review"):
        days = calendar_days

    details = None
    if action == "create_event" and analysis.appointment_details is not None:
        details = analysis.appointment_details.model_dump()
    return AgentTask(action=action, days=days, details=details, message=message)
