"""
Dispatcher

Entry point for user requests:

1. Classify the request into domains, sub-intents and a sync flag
2. Fan out to the registered domain handlers concurrently
3. Policy-check every handler result
4. Fan in (wait for all handlers) and synthesize one response

A failing handler never aborts its siblings; its exception becomes an Err
result. There is no per-handler timeout, so one hung handler stalls the
whole request. Callers that need a bound should wrap ``process_request``
in ``asyncio.wait_for``.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from ..common.errors import PolicyViolation, UnknownDomainError
from ..common.schemas import AgentResult, AgentTask, Err, is_agent_result
from .intent import Domain, IntentClassifier, build_agent_task
from .policies import PolicyValidator
from .session import SessionTrace
from .synthesizer import ResponseSynthesizer

logger = logging.getLogger("brain.orchestrator.dispatcher")

ORCHESTRATOR = "Orchestrator"


class DomainHandler(Protocol):
    """Anything that can run one AgentTask for a domain"""

    async def run(self, task: AgentTask) -> AgentResult:
        ...


class Dispatcher:
    """
    Routes requests to domain handlers and synthesizes their results.
    """

    def __init__(
        self,
        classifier: Optional[IntentClassifier] = None,
        synthesizer: Optional[ResponseSynthesizer] = None,
        validator: Optional[PolicyValidator] = None,
        config=None,
    ):
        """
        Initialize dispatcher.

        Args:
            classifier: Intent classifier (default: built-in keyword tables, no LLM)
            synthesizer: Response synthesizer
            validator: Policy validator (default: morning shield)
            config: Optional OrchestratorConfig for day windows
        """
        self.classifier = classifier or IntentClassifier()
        self.synthesizer = synthesizer or ResponseSynthesizer(classifier=self.classifier)
        self.validator = validator or PolicyValidator()
        self._config = config
        self._handlers: Dict[Domain, DomainHandler] = {}

    @classmethod
    def from_config(cls, config, llm=None) -> "Dispatcher":
        """Build from a BrainConfig."""
        classifier = IntentClassifier.from_config(config.orchestrator, llm=llm)
        return cls(
            classifier=classifier,
            synthesizer=ResponseSynthesizer.from_config(config.orchestrator, llm=llm, classifier=classifier),
            validator=PolicyValidator.from_config(config.policy),
            config=config.orchestrator,
        )

    @property
    def registered_domains(self) -> list:
        return [d.value for d in self._handlers]

    def register_agent(self, domain: Union[Domain, str], handler: DomainHandler) -> None:
        """
        Register the handler for a domain, replacing any previous one.

        Raises:
            UnknownDomainError: domain is not one of the known Domain values
        """
        try:
            key = Domain(domain)
        except ValueError:
            raise UnknownDomainError(f"Unknown domain: {domain!r}") from None
        self._handlers[key] = handler
        logger.info("Registered handler for %s", key.value)

    async def process_request(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Serve one request.

        Args:
            request: Mapping with a ``message`` key

        Returns:
            ``{text, ui_payload?, details, _session}``
        """
        message = str(request.get("message") or "")
        session = SessionTrace()
        session.add_step(ORCHESTRATOR, "intent_start", {"text": message})

        analysis = await self.classifier.analyze(message)
        session.add_step(ORCHESTRATOR, "intent_analyzed", analysis.to_dict())

        results: Dict[str, AgentResult] = {}
        runs = [
            self._run_agent(domain, build_agent_task(domain, analysis, message, self._config), session, results)
            for domain in analysis.domains
        ]
        await asyncio.gather(*runs)

        response = await self.synthesizer.synthesize(message, results, session)
        session.add_step(ORCHESTRATOR, "synthesis_complete")
        session.complete(response)
        return {**response.to_dict(), "_session": session.summary()}

    async def _run_agent(
        self,
        domain: Domain,
        task: AgentTask,
        session: SessionTrace,
        results: Dict[str, AgentResult],
    ) -> None:
        handler = self._handlers.get(domain)
        if handler is None:
            logger.warning("No handler registered for %s, skipping", domain.value)
            session.add_step(ORCHESTRATOR, "warning_agent_missing", {"domain": domain.value})
            return

        session.add_step(domain.value, f"executing_{task.action}")
        try:
            result = await handler.run(task)
        except Exception as e:
            logger.warning("Handler %s failed: %s", domain.value, e)
            session.add_step(domain.value, "error", str(e))
            results[domain.value] = Err(str(e) or type(e).__name__)
            return

        if not is_agent_result(result):
            session.add_step(domain.value, "error", "malformed result")
            results[domain.value] = Err("malformed result", data=result)
            return

        data = result.data if isinstance(result.data, Mapping) else {}
        action = {**data, "type": task.action}
        try:
            self.validator.enforce(action)
        except PolicyViolation as e:
            session.add_step(domain.value, "policy_violation", e.reason)
            results[domain.value] = Err(e.reason, data=result.data)
            return

        results[domain.value] = result
        session.add_step(domain.value, "result_ready")
