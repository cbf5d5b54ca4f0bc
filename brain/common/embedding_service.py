"""
Embedding Service

Text -> vector capability used by the memory index.

Backends:
- femb: on-device embeddings via fastembed (default, no API calls)
- openai: OpenAI embeddings API
- google: Gemini text-embedding API
"""

import logging
from typing import List, Optional

import numpy as np

logger = logging.getLogger("brain.common.embedding_service")

DEFAULT_MODELS = {
    "femb": "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2",
    "openai": "text-embedding-3-small",
    "google": "models/text-embedding-004",
}


class EmbeddingService:
    """
    Embedding capability with a lazily imported backend.

    A missing package or API key leaves the service unavailable instead of
    failing at construction time.
    """

    def __init__(self, mode: str = "femb", model: Optional[str] = None, api_key: Optional[str] = None):
        """
        Initialize the embedding backend.

        Args:
            mode: Backend name (femb, openai, google)
            model: Model name, defaults per backend
            api_key: Provider API key for remote backends
        """
        self._mode = (mode or "femb").lower()
        self._model = model or DEFAULT_MODELS.get(self._mode, "")
        self._backend = None

        if self._mode == "femb":
            try:
                from fastembed import TextEmbedding

                self._backend = TextEmbedding(model_name=self._model)
                logger.info("Initialized fastembed with model=%s", self._model)
            except ImportError:
                logger.warning("fastembed package not installed")
            except Exception as e:
                logger.warning("Failed to initialize fastembed: %s", e)
            return

        if self._mode == "openai":
            if not api_key:
                logger.info("openai API key not provided, embeddings unavailable")
                return
            try:
                from openai import OpenAI

                self._backend = OpenAI(api_key=api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI embeddings: %s", e)
            return

        if self._mode == "google":
            if not api_key:
                logger.info("google API key not provided, embeddings unavailable")
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=api_key)
                self._backend = genai
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini embeddings: %s", e)
            return

        logger.warning("Unsupported embedding mode: %s", self._mode)

    @classmethod
    def from_config(cls, config) -> "EmbeddingService":
        """Build from a BrainConfig, picking the API key that matches the mode."""
        mode = config.embedding.mode
        model = config.embedding.model
        if mode != "femb" and model == DEFAULT_MODELS["femb"]:
            model = None
        api_key = {
            "openai": config.llm.openai_api_key,
            "google": config.llm.google_api_key,
        }.get(mode)
        return cls(mode=mode, model=model, api_key=api_key or None)

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        return self._backend is not None

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def model(self) -> str:
        return self._model

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            List of embedding vectors
        """
        if not self._backend:
            raise RuntimeError("Embedding backend not initialized")

        if not texts:
            return []

        if self._mode == "femb":
            return [np.asarray(v, dtype=float).tolist() for v in self._backend.embed(texts)]

        if self._mode == "openai":
            response = self._backend.embeddings.create(model=self._model, input=texts)
            return [list(item.embedding) for item in response.data]

        if self._mode == "google":
            response = self._backend.embed_content(model=self._model, content=texts)
            vectors = response["embedding"]
            # Single inputs come back flat, batches nested
            if vectors and not isinstance(vectors[0], (list, tuple)):
                vectors = [vectors]
            return [list(v) for v in vectors]

        raise RuntimeError(f"Unsupported embedding mode: {self._mode}")

    def embed(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        return self.embed_batch([text])[0]
