"""
Similarity Index

Append-only conversational memory: (text, vector, metadata) records ranked
against a query by cosine similarity. Records are persisted as one JSON file
that is rewritten in full on every append.

Records cannot be updated or deleted; there is no removal API.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..common.dates import to_iso, utcnow

logger = logging.getLogger("brain.memory.similarity_index")

_MAX_UNWRAP_DEPTH = 5


@dataclass(frozen=True)
class MemoryRecord:
    """A single remembered text with its embedding"""
    text: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""


@dataclass(frozen=True)
class ScoredRecord:
    """Search hit"""
    record: MemoryRecord
    score: float

    @property
    def text(self) -> str:
        return self.record.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.record.text,
            "metadata": self.record.metadata,
            "timestamp": self.record.timestamp,
            "score": self.score,
        }


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    dot(a, b) / (|a| * |b|).

    Returns 0.0 for missing, empty, length-mismatched, non-numeric or
    zero-magnitude vectors. Never raises.
    """
    if a is None or b is None:
        return 0.0
    try:
        va = np.asarray(a, dtype=float).ravel()
        vb = np.asarray(b, dtype=float).ravel()
    except (TypeError, ValueError):
        return 0.0
    if va.size == 0 or va.shape != vb.shape:
        return 0.0

    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0 or not np.isfinite(magnitude):
        return 0.0
    return float(np.dot(va, vb) / magnitude)


def extract_vector(raw: Any, _depth: int = 0) -> Optional[List[float]]:
    """
    Pull a flat float vector out of an embedding provider response.

    Handles plain sequences, numpy arrays, objects or dicts exposing
    ``embedding`` / ``values``, and single-element wrappers like ``[[...]]``
    or ``[{"embedding": [...]}]``. Returns None when nothing usable is found.
    """
    if raw is None or _depth > _MAX_UNWRAP_DEPTH:
        return None

    if isinstance(raw, dict):
        for key in ("embedding", "values"):
            if key in raw:
                return extract_vector(raw[key], _depth + 1)
        return None

    for attr in ("embedding", "values"):
        inner = getattr(raw, attr, None)
        if inner is not None and not callable(inner):
            return extract_vector(inner, _depth + 1)

    if isinstance(raw, np.ndarray):
        if raw.ndim == 1:
            raw = raw.tolist()
        elif raw.ndim == 2 and raw.shape[0] == 1:
            raw = raw[0].tolist()
        else:
            return None

    if isinstance(raw, (list, tuple)):
        if not raw:
            return None
        if len(raw) == 1 and not isinstance(raw[0], (int, float)):
            return extract_vector(raw[0], _depth + 1)
        try:
            return [float(v) for v in raw]
        except (TypeError, ValueError):
            return None

    return None


class SimilarityIndex:
    """
    File-backed memory index.

    Constructed with an explicit storage path and embedding capability
    (anything with ``embed(text)``); there is no shared module-level instance.
    """

    def __init__(self, path: Path, embedder):
        """
        Initialize the index and load existing records.

        Args:
            path: JSON file holding the record collection
            embedder: Embedding capability, e.g. EmbeddingService
        """
        self._path = Path(path)
        self._embedder = embedder
        self._records: List[MemoryRecord] = []
        self._load()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[MemoryRecord]:
        return list(self._records)

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            self._records = [
                MemoryRecord(
                    text=item["text"],
                    embedding=list(item.get("embedding") or []),
                    metadata=item.get("metadata") or {},
                    timestamp=item.get("timestamp", ""),
                )
                for item in data
            ]
            logger.info("Loaded %d memories from %s", len(self._records), self._path)
        except (json.JSONDecodeError, IOError, KeyError, TypeError) as e:
            logger.warning("Failed to load memory file %s: %s", self._path, e)
            self._records = []

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump([asdict(r) for r in self._records], f, indent=2, ensure_ascii=False)

    def _embed(self, text: str) -> Optional[List[float]]:
        return extract_vector(self._embedder.embed(text))

    def index(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> MemoryRecord:
        """
        Embed and append a record, then persist the whole collection.

        Raises:
            ValueError: the embedder returned no usable vector
        """
        vector = self._embed(text)
        if not vector:
            raise ValueError("No usable embedding for text")

        record = MemoryRecord(
            text=text,
            embedding=vector,
            metadata=dict(metadata or {}),
            timestamp=to_iso(utcnow()),
        )
        self._records.append(record)
        self._save()
        logger.info("Indexed memory (dim=%d, total=%d)", len(vector), len(self._records))
        return record

    def search(self, query: str, limit: int = 3) -> List[ScoredRecord]:
        """
        Rank all records against the query, highest score first.

        No threshold is applied. An unusable query embedding, or an embedder
        error, yields [].
        """
        try:
            vector = self._embed(query)
        except Exception as e:
            logger.warning("Query embedding failed, returning no memories: %s", e)
            return []
        if not vector:
            logger.warning("No query vector extracted, returning no memories")
            return []

        scored = [ScoredRecord(record=r, score=cosine_similarity(vector, r.embedding)) for r in self._records]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[: max(limit, 0)]
