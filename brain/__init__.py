"""
Second Brain

Personal-assistant orchestration core: request routing across mail, calendar,
to-do and CRM sources, Eisenhower prioritization of tasks, and a small
similarity index for conversational memory.

Philosophy:
- Every failure resolves to a well-formed response, never an exception
- Scores are recomputed on read; nothing derived is persisted
- Keyword tables are data, tunable without touching dispatch logic

Usage:
    from brain.common import load_config, LLMClient, EmbeddingService, BrainStore
    from brain.orchestrator import Dispatcher, PolicyValidator
    from brain.priority import PriorityEngine, prioritize_items
    from brain.memory import SimilarityIndex
"""

__version__ = "0.1.0"
