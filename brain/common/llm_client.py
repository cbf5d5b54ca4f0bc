"""
Provider-agnostic LLM client for Second Brain.

Supports Anthropic, OpenAI, and Google Gemini with a shared text-generation
interface. Passing a pydantic model as ``output_shape`` switches to
constrained extraction: the model's JSON schema is appended to the prompt and
the reply is validated against it.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Type, Union

from pydantic import BaseModel, ValidationError

from .errors import GenerationFailure
from .llm_utils import parse_llm_json

logger = logging.getLogger("brain.common.llm_client")

STRUCTURED_SUFFIX = """

Respond with a single JSON object that matches this JSON schema. No prose, no code fences.
{schema}"""


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client = None

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.Anthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import OpenAI

                self._client = OpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        if self.provider == "google":
            if not google_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._client = genai  # Store the module, not a model instance
                self._google_models = {}  # Cache models by system prompt hash
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @classmethod
    def from_config(cls, llm_config) -> "LLMClient":
        return cls(
            provider=llm_config.provider,
            model=llm_config.model,
            anthropic_api_key=llm_config.anthropic_api_key or None,
            openai_api_key=llm_config.openai_api_key or None,
            google_api_key=llm_config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        output_shape: Optional[Type[BaseModel]] = None,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> Union[str, BaseModel]:
        """
        Generate text, or a validated ``output_shape`` instance.

        Raises:
            GenerationFailure: provider unavailable, provider error, or a
                structured reply that does not match the schema
        """
        if not self.is_available:
            raise GenerationFailure("LLM client is not available")

        if output_shape is not None:
            schema = json.dumps(output_shape.model_json_schema(), ensure_ascii=False)
            prompt = prompt + STRUCTURED_SUFFIX.format(schema=schema)

        try:
            raw = self._complete(prompt, system=system, max_tokens=max_tokens, timeout=timeout)
        except GenerationFailure:
            raise
        except Exception as e:
            logger.warning("%s generation failed: %s", self.provider, e)
            raise GenerationFailure(f"{self.provider} generation failed: {e}") from e

        if output_shape is None:
            return raw

        data = parse_llm_json(raw)
        if not data:
            raise GenerationFailure("No JSON object in structured reply")
        try:
            return output_shape.model_validate(data)
        except ValidationError as e:
            raise GenerationFailure(f"Structured reply does not match {output_shape.__name__}: {e}") from e

    def _complete(self, prompt: str, *, system: Optional[str], max_tokens: int, timeout: float) -> str:
        if self.provider == "anthropic":
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout,
                **kwargs,
            )
            return response.content[0].text.strip()

        if self.provider == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            response = self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=messages,
                timeout=timeout,
            )
            return (response.choices[0].message.content or "").strip()

        if self.provider == "google":
            import hashlib

            cache_key = hashlib.md5((system or "").encode()).hexdigest()
            if cache_key not in self._google_models:
                kwargs = {"model_name": self.model}
                if system:
                    kwargs["system_instruction"] = system
                self._google_models[cache_key] = self._client.GenerativeModel(**kwargs)
            model = self._google_models[cache_key]
            response = model.generate_content(
                prompt,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": timeout},
            )
            return response.text.strip()

        raise GenerationFailure(f"Unsupported LLM provider: {self.provider}")
