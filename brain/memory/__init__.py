"""
Memory - conversational recall and chat context
"""

from .similarity_index import (
    SimilarityIndex,
    MemoryRecord,
    ScoredRecord,
    cosine_similarity,
    extract_vector,
)
from .context import BrainContext, ContextBuilder, ContextManager

__all__ = [
    "SimilarityIndex",
    "MemoryRecord",
    "ScoredRecord",
    "cosine_similarity",
    "extract_vector",
    "BrainContext",
    "ContextBuilder",
    "ContextManager",
]
