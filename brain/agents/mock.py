"""
Mock Connectors

Canned gmail / salesforce / ms_graph data for demos and offline use. The
shapes match what real connectors return, so the synthesizer treats both
alike.
"""

from datetime import timedelta
from typing import Any, Dict, List

from ..common.config import DEFAULT_LOGIN_URLS
from ..common.dates import to_iso, utcnow
from ..common.errors import AuthRequiredError, HandlerError
from ..common.schemas import AgentTask
from .base import BaseAgent

GMAIL_MAILS = [
    {"id": "gm1", "from": "Investment Bank", "subject": "Budget approval required",
     "date": "2026-02-03T08:15:00Z", "importance": 9, "source": "gmail"},
    {"id": "gm2", "from": "HR Dept", "subject": "New Hire Onboarding",
     "date": "2026-02-04T11:30:00Z", "importance": 5, "source": "gmail"},
]

OPPORTUNITIES = [
    {"id": "sf1", "account": "Solar Tech AG", "value": "250.000€", "stage": "Negotiation", "probability": "80%"},
    {"id": "sf2", "account": "Wind Power Corp", "value": "110.000€", "stage": "Closing", "probability": "60%"},
]

OUTLOOK_MAILS = [
    {"id": "ol1", "from": "CEO Office", "subject": "Board meeting agenda",
     "date": "2026-02-04T16:45:00Z", "snippet": "Please review before Friday.", "source": "outlook"},
]


class MockConnectorAgent(BaseAgent):
    """Offline stand-in for one domain connector."""

    def __init__(self, domain: str, authenticated: bool = True):
        super().__init__(domain, login_url=DEFAULT_LOGIN_URLS.get(domain))
        self.authenticated = authenticated

    async def execute(self, task: AgentTask) -> Any:
        if not self.authenticated:
            raise AuthRequiredError(f"Login required for {self.name}", login_url=self.login_url)

        handler = getattr(self, f"_{self.name}_{task.action}", None)
        if handler is None:
            raise HandlerError(f"Unknown action: {task.action}")
        return handler(task)

    # gmail

    def _gmail_sync_eisenhauer(self, task: AgentTask) -> Dict[str, Any]:
        return {"count": len(GMAIL_MAILS), "mails": [dict(m) for m in GMAIL_MAILS]}

    def _gmail_basic_review(self, task: AgentTask) -> Dict[str, Any]:
        return self._gmail_sync_eisenhauer(task)

    # salesforce

    def _salesforce_sync_opportunities(self, task: AgentTask) -> Dict[str, Any]:
        return {"count": len(OPPORTUNITIES), "opportunities": [dict(o) for o in OPPORTUNITIES]}

    # ms_graph

    def _events(self) -> List[Dict[str, Any]]:
        today = utcnow().replace(minute=0, second=0, microsecond=0)
        return [
            {"id": "ev1", "subject": "Project Delta Review", "start": to_iso(today + timedelta(days=1, hours=2)),
             "end": to_iso(today + timedelta(days=1, hours=3)), "location": "Teams", "isOnline": True},
            {"id": "ev2", "subject": "Lunch with Solar Tech AG", "start": to_iso(today + timedelta(days=2)),
             "end": to_iso(today + timedelta(days=2, hours=1)), "location": "Berlin", "isOnline": False},
        ]

    def _tasks(self) -> List[Dict[str, Any]]:
        return [
            {"id": "ms1", "title": "Review Project Delta Docs", "status": "notStarted",
             "dueDate": to_iso(utcnow() + timedelta(hours=6)), "importance": "high"},
            {"id": "ms2", "title": "Reply to CEO message", "status": "notStarted",
             "dueDate": to_iso(utcnow() + timedelta(days=1)), "importance": "normal"},
        ]

    def _ms_graph_get_calendar(self, task: AgentTask) -> Dict[str, Any]:
        events = self._events()
        return {"count": len(events), "events": events}

    def _ms_graph_get_tasks(self, task: AgentTask) -> Dict[str, Any]:
        tasks = self._tasks()
        return {"count": len(tasks), "tasks": tasks}

    def _ms_graph_get_mails(self, task: AgentTask) -> Dict[str, Any]:
        return {"count": len(OUTLOOK_MAILS), "mails": [dict(m) for m in OUTLOOK_MAILS]}

    def _ms_graph_basic_review(self, task: AgentTask) -> Dict[str, Any]:
        calendar = self._ms_graph_get_calendar(task)
        tasks = self._ms_graph_get_tasks(task)
        mails = self._ms_graph_get_mails(task)
        return {
            "summary": f"{calendar['count']} Termine | {tasks['count']} Aufgaben | {mails['count']} Outlook Mails",
            "calendar": calendar,
            "tasks": tasks,
            "mails": mails,
        }

    def _ms_graph_create_event(self, task: AgentTask) -> Dict[str, Any]:
        details = task.details or {}
        if not details.get("subject") or not details.get("start"):
            raise HandlerError("Fehlende Details für die Terminerstellung (Betreff, Startzeit).")
        event = {
            "id": f"ev-{abs(hash((details['subject'], details['start']))) % 10**8}",
            "subject": details["subject"],
            "start": details["start"],
            "end": details.get("end") or details["start"],
            "location": details.get("location") or "",
        }
        self._log("event_created", {"id": event["id"]})
        return {
            "event": event,
            "start": details["start"],
            "summary": f"Termin \"{details['subject']}\" am {details['start']} wurde angelegt.",
        }
