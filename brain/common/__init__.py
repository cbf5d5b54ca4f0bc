"""
Second Brain Common Module

Shared infrastructure: configuration, error taxonomy, capability clients
(generation, embedding) and JSON storage.
"""

from .config import BrainConfig, load_config
from .embedding_service import EmbeddingService
from .errors import (
    BrainError,
    HandlerError,
    AuthRequiredError,
    PolicyViolation,
    GenerationFailure,
    UnknownDomainError,
)
from .llm_client import LLMClient
from .store import BrainStore

__all__ = [
    "BrainConfig",
    "load_config",
    "EmbeddingService",
    "BrainError",
    "HandlerError",
    "AuthRequiredError",
    "PolicyViolation",
    "GenerationFailure",
    "UnknownDomainError",
    "LLMClient",
    "BrainStore",
]
