"""
Orchestrator - request routing and response synthesis

Pipeline:
1. IntentClassifier: keyword domain/intent classification
2. Dispatcher: concurrent fan-out to domain handlers with policy checks
3. ResponseSynthesizer: one response from the per-domain results
"""

from .intent import (
    Domain,
    Intent,
    IntentAnalysis,
    IntentClassifier,
    AppointmentDetails,
    classify_intent,
    select_action,
    build_agent_task,
)
from .policies import PolicyValidator, PolicyResult, MorningShieldRule
from .session import SessionTrace, SessionStep
from .synthesizer import ResponseSynthesizer, SynthesizedResponse
from .dispatcher import Dispatcher

__all__ = [
    "Domain",
    "Intent",
    "IntentAnalysis",
    "IntentClassifier",
    "AppointmentDetails",
    "classify_intent",
    "select_action",
    "build_agent_task",
    "PolicyValidator",
    "PolicyResult",
    "MorningShieldRule",
    "SessionTrace",
    "SessionStep",
    "ResponseSynthesizer",
    "SynthesizedResponse",
    "Dispatcher",
]
