"""
Response Synthesizer

Turns the dispatcher's per-domain result map into one user-facing response.

Precedence (first match decides the payload):
1. Auth gate: any result needing login -> auth_redirect, nothing else
2. Mail aggregation across domains -> mail_list
3. Sync request -> routine_briefing (supersedes mail_list)
4. Calendar or task data -> calendar_list / task_list_v2
5. Generic acknowledgment

Failed domains (other than auth) are named in the text in every mode.
The chosen payload is appended to the text as a fenced json block.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..common.config import DEFAULT_LOGIN_URLS
from ..common.dates import parse_datetime
from ..common.llm_utils import format_json_block
from ..common.schemas import AgentResult
from .intent import IntentClassifier

logger = logging.getLogger("brain.orchestrator.synthesizer")

DOMAIN_LABELS = {
    "gmail": "Gmail",
    "ms_graph": "Microsoft 365",
    "salesforce": "Salesforce",
}

RESPONSE_TEMPLATES = {
    "de": {
        "auth": "Ich brauche Zugriff auf dein {domain}-Konto. Bitte melde dich an, dann mache ich weiter.",
        "mail_title": "Mail Review",
        "mail_list": "Hier sind deine {count} neuesten Mails:",
        "briefing_title": "Morning Briefing",
        "briefing": "Dein Briefing: {events} Termine, {tasks} offene Aufgaben, {mails} Mails.",
        "nothing_pending": "Es steht nichts an: keine Termine, keine offenen Aufgaben und keine neuen Mails.",
        "summary_fallback": "Die Mails konnte ich gerade nicht zusammenfassen. Die Liste findest du unten.",
        "section_calendar": "Termine",
        "section_tasks": "Offene Aufgaben",
        "section_mails": "Mails",
        "calendar_title": "Kalender",
        "calendar_list": "Du hast {count} anstehende Termine.",
        "task_title": "Aufgaben",
        "task_list": "Du hast {count} offene Aufgaben.",
        "default": "Ich habe die Analyse abgeschlossen und die entsprechenden Cluster abgefragt.",
        "failed": "Nicht erreichbar: {domains}.",
        "summary_language": "German",
    },
    "en": {
        "auth": "I need access to your {domain} account. Please log in and I will continue.",
        "mail_title": "Mail Review",
        "mail_list": "Here are your {count} latest mails:",
        "briefing_title": "Morning Briefing",
        "briefing": "Your briefing: {events} events, {tasks} open tasks, {mails} mails.",
        "nothing_pending": "Nothing is pending: no events, no open tasks and no new mails.",
        "summary_fallback": "I could not summarize the mails right now. The list is below.",
        "section_calendar": "Events",
        "section_tasks": "Open tasks",
        "section_mails": "Mails",
        "calendar_title": "Calendar",
        "calendar_list": "You have {count} upcoming events.",
        "task_title": "Tasks",
        "task_list": "You have {count} open tasks.",
        "default": "I have finished the analysis and queried the relevant sources.",
        "failed": "Unavailable: {domains}.",
        "summary_language": "English",
    },
}

SUMMARY_PROMPT = """Summarize these mails for a busy executive in two or three sentences.
Point out anything that needs a reply or decision. Respond in {language}.

MAILS:
{mails}"""


@dataclass
class SynthesizedResponse:
    """Final response of one request"""
    text: str
    ui_payload: Optional[Dict[str, Any]] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"text": self.text, "details": self.details}
        if self.ui_payload is not None:
            result["ui_payload"] = self.ui_payload
        return result


# ============================================================================
# Extraction helpers (tolerate the nesting shapes handlers return)
# ============================================================================

def _nested_list(data: Any, key: str) -> List[Dict[str, Any]]:
    """``data[key]`` as a list, or ``data[key][key]`` when wrapped."""
    if not isinstance(data, Mapping):
        return []
    value = data.get(key)
    if isinstance(value, Mapping):
        value = value.get(key)
    if isinstance(value, list):
        return [v for v in value if isinstance(v, Mapping)]
    return []


def extract_mails(data: Any) -> List[Dict[str, Any]]:
    return _nested_list(data, "mails")


def extract_tasks(data: Any) -> List[Dict[str, Any]]:
    return _nested_list(data, "tasks")


def extract_events(data: Any) -> List[Dict[str, Any]]:
    """``data.events`` or ``data.calendar.events``"""
    if not isinstance(data, Mapping):
        return []
    events = data.get("events")
    if events is None and isinstance(data.get("calendar"), Mapping):
        events = data["calendar"].get("events")
    if isinstance(events, list):
        return [e for e in events if isinstance(e, Mapping)]
    return []


def _mail_date(mail: Mapping[str, Any]) -> float:
    ts = parse_datetime(mail.get("date") or mail.get("receivedDateTime"))
    return ts.timestamp() if ts is not None else float("-inf")


def _is_open_task(task: Mapping[str, Any]) -> bool:
    return str(task.get("status") or "").lower() not in ("completed", "done")


class ResponseSynthesizer:
    """
    Deterministic response assembly with an optional LLM mail summary.
    """

    def __init__(
        self,
        llm=None,
        language: str = "de",
        login_urls: Optional[Mapping[str, str]] = None,
        summary_max_items: int = 10,
        classifier: Optional[IntentClassifier] = None,
    ):
        self._llm = llm
        self.language = language if language in RESPONSE_TEMPLATES else "de"
        self.login_urls = dict(DEFAULT_LOGIN_URLS)
        self.login_urls.update(login_urls or {})
        self.summary_max_items = summary_max_items
        self._classifier = classifier or IntentClassifier()

    @classmethod
    def from_config(cls, config, llm=None, classifier: Optional[IntentClassifier] = None) -> "ResponseSynthesizer":
        """Build from an OrchestratorConfig."""
        return cls(
            llm=llm,
            language=config.language,
            login_urls=config.login_urls,
            summary_max_items=config.summary_max_items,
            classifier=classifier,
        )

    @property
    def templates(self) -> Dict[str, str]:
        return RESPONSE_TEMPLATES[self.language]

    async def synthesize(
        self,
        message: str,
        results: Mapping[str, AgentResult],
        session=None,
    ) -> SynthesizedResponse:
        """
        Build the response for a request.

        Args:
            message: Raw request text
            results: Per-domain handler results
            session: Optional SessionTrace to record the chosen mode

        Returns:
            SynthesizedResponse
        """
        t = self.templates
        details = {"results": {domain: result.to_dict() for domain, result in results.items()}}

        # 1. Auth gate
        for domain, result in results.items():
            if result.auth_required:
                login_url = getattr(result, "login_url", None) or self.login_urls.get(domain)
                payload = {
                    "ui_type": "auth_redirect",
                    "domain": domain,
                    "login_url": login_url,
                    "message": result.error,
                }
                self._trace(session, "auth_redirect", {"domain": domain})
                text = t["auth"].format(domain=DOMAIN_LABELS.get(domain, domain))
                return SynthesizedResponse(text=self._with_payload(text, payload), ui_payload=payload, details=details)

        succeeded = {d: r for d, r in results.items() if r.success}
        failed = [d for d, r in results.items() if not r.success]

        # 2. Mail aggregation
        mails = []
        for domain, result in succeeded.items():
            mails.extend({"source": domain, **mail} for mail in extract_mails(result.data))
        mails.sort(key=_mail_date, reverse=True)

        payload: Optional[Dict[str, Any]] = None
        lead_in: List[str] = []
        if mails:
            payload = {"ui_type": "mail_list", "title": t["mail_title"], "count": len(mails), "mails": mails}
            lead_in.append(t["mail_list"].format(count=len(mails)))

        events = [e for r in succeeded.values() for e in extract_events(r.data)]
        tasks = [x for r in succeeded.values() for x in extract_tasks(r.data)]
        open_tasks = [x for x in tasks if _is_open_task(x)]

        # 3. Sync briefing, recomputed from the raw message
        if self._classifier.is_sync_request(message):
            sections = []
            if events:
                sections.append({"id": "calendar", "title": t["section_calendar"], "items": events})
            if open_tasks:
                sections.append({"id": "tasks", "title": t["section_tasks"], "items": open_tasks})
            if mails:
                sections.append({"id": "mails", "title": t["section_mails"], "items": mails})

            payload = {"ui_type": "routine_briefing", "title": t["briefing_title"], "sections": sections}
            if sections:
                lead_in = [t["briefing"].format(events=len(events), tasks=len(open_tasks), mails=len(mails))]
                if mails:
                    lead_in.append(await self.summarize_mails(mails))
            elif succeeded:
                lead_in = [t["nothing_pending"]]
            else:
                lead_in = []
            self._trace(session, "routine_briefing", {"sections": [s["id"] for s in sections]})

        # 4. Per-domain fallback
        if payload is None and events:
            payload = {"ui_type": "calendar_list", "title": t["calendar_title"], "count": len(events), "events": events}
            lead_in.append(t["calendar_list"].format(count=len(events)))
        elif payload is None and open_tasks:
            payload = {"ui_type": "task_list_v2", "title": t["task_title"], "count": len(open_tasks), "tasks": open_tasks}
            lead_in.append(t["task_list"].format(count=len(open_tasks)))

        # 5. Default, unless every domain failed
        if not lead_in and (succeeded or not failed):
            lead_in.append(t["default"])

        if failed:
            names = ", ".join(DOMAIN_LABELS.get(d, d) for d in failed)
            lead_in.append(t["failed"].format(domains=names))

        if payload is not None and payload["ui_type"] != "routine_briefing":
            self._trace(session, payload["ui_type"])
        text = " ".join(lead_in)
        return SynthesizedResponse(text=self._with_payload(text, payload), ui_payload=payload, details=details)

    async def summarize_mails(self, mails: List[Mapping[str, Any]]) -> str:
        """Short LLM summary of the newest mails, or a fixed fallback sentence."""
        fallback = self.templates["summary_fallback"]
        if self._llm is None or not getattr(self._llm, "is_available", True):
            return fallback

        lines = [
            f"- {m.get('from', '?')}: {m.get('subject', '')} {m.get('snippet', '')}".rstrip()
            for m in mails[: self.summary_max_items]
        ]
        prompt = SUMMARY_PROMPT.format(language=self.templates["summary_language"], mails="\n".join(lines))
        try:
            summary = await asyncio.to_thread(self._llm.generate, prompt)
        except Exception as e:
            logger.warning("Mail summary failed: %s", e)
            return fallback
        return str(summary).strip() or fallback

    @staticmethod
    def _with_payload(text: str, payload: Optional[Dict[str, Any]]) -> str:
        if payload is None:
            return text
        return f"{text}\n\n{format_json_block(payload)}"

    @staticmethod
    def _trace(session, action: str, data: Any = None) -> None:
        if session is not None:
            session.add_step("Synthesizer", action, data)
