"""
diagnosis_engine/services/llm.py
================================
Provider-agnostic LLM access plus the prompts the pipeline uses.

Providers (all plain HTTP via ``requests``):
    - OpenRouterProvider / OpenAIProvider: OpenAI-style chat completions.
    - AnthropicProvider: Messages API.
    - GeminiProvider: ``generateContent``.
    - OllamaProvider: local ``/api/generate``.

Every provider raises :class:`ServiceError` on failure.  The provider
is chosen once at construction (see :mod:`.factory`); nothing here
dispatches on a provider name per call.

:class:`LLMService` builds on a provider for structured symptom
extraction, patient-facing explanations and follow-up questions.  The
last two degrade to templated text when the provider fails.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import requests

from .constants import LLM_CONTEXT_SYMPTOM_LIMIT, RECOMMENDATION_RESULTS
from .exceptions import DatabaseAccessError, ServiceError
from .knowledge_base_repository import KnowledgeBaseRepository
from .types import DiagnosisResult, ExtractedSymptoms, PatientInfo, Symptom
from .utils import retry

logger: logging.Logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

FALLBACK_FOLLOW_UP_QUESTIONS: tuple[str, ...] = (
    "How long have you had these symptoms?",
    "Have you had any similar episodes before?",
    "Are you taking any medications?",
)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class LLMProvider(ABC):
    """Single-prompt text completion against one LLM backend.

    Args:
        api_key: Provider credential (unused by Ollama).
        model: Model identifier understood by the provider.
        temperature: Sampling temperature.
        max_tokens: Upper bound on generated tokens.
        timeout: HTTP timeout in seconds.
        max_retries: Attempts per completion for transport errors.
        retry_delay: Base delay of the exponential backoff in seconds.
    """

    name: str = "llm"
    default_model: str = ""

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self.api_key: str = api_key
        self.model: str = model or self.default_model
        self.temperature: float = temperature
        self.max_tokens: int = max_tokens
        self.timeout: float = timeout
        self.max_retries: int = max_retries
        self.retry_delay: float = retry_delay

    def complete(self, prompt: str) -> str:
        """Return the model's text answer to *prompt*.

        Raises:
            ServiceError: ``LLM_REQUEST_ERROR`` when the HTTP call keeps
                failing, ``LLM_RESPONSE_ERROR`` when the answer has an
                unexpected shape.
        """
        try:
            data: dict[str, Any] = retry(
                lambda: self._post(prompt),
                max_retries=self.max_retries,
                delay_seconds=self.retry_delay,
                exceptions=(requests.RequestException,),
            )
        except requests.RequestException as exc:
            raise ServiceError(
                "LLM_REQUEST_ERROR",
                f"{self.name} API request failed",
                {"cause": str(exc)},
            ) from exc

        try:
            text = self._extract_text(data)
        except (KeyError, IndexError, TypeError) as exc:
            raise ServiceError(
                "LLM_RESPONSE_ERROR",
                f"Unexpected {self.name} API response",
                {"cause": str(exc)},
            ) from exc
        if text is None:
            return ""
        return text if isinstance(text, str) else str(text)

    def _post(self, prompt: str) -> dict[str, Any]:
        response = requests.post(
            self._url(),
            json=self._payload(prompt),
            headers={"Content-Type": "application/json", **self._headers()},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _headers(self) -> dict[str, str]:
        return {}

    @abstractmethod
    def _url(self) -> str: ...

    @abstractmethod
    def _payload(self, prompt: str) -> dict[str, Any]: ...

    @abstractmethod
    def _extract_text(self, data: dict[str, Any]) -> str: ...


class OpenAIProvider(LLMProvider):
    name = "openai"
    default_model = "gpt-4o-mini"
    endpoint = "https://api.openai.com/v1/chat/completions"

    def _url(self) -> str:
        return self.endpoint

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def _extract_text(self, data: dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


class OpenRouterProvider(OpenAIProvider):
    name = "openrouter"
    default_model = "openai/gpt-4o-mini"
    endpoint = "https://openrouter.ai/api/v1/chat/completions"


class AnthropicProvider(LLMProvider):
    name = "anthropic"
    default_model = "claude-3-5-haiku-latest"

    def _url(self) -> str:
        return "https://api.anthropic.com/v1/messages"

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": "2023-06-01"}

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def _extract_text(self, data: dict[str, Any]) -> str:
        return data["content"][0]["text"]


class GeminiProvider(LLMProvider):
    name = "gemini"
    default_model = "gemini-1.5-flash"

    def _url(self) -> str:
        return (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            f"{self.model}:generateContent?key={self.api_key}"
        )

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
            },
        }

    def _extract_text(self, data: dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]


class OllamaProvider(LLMProvider):
    """Local Ollama server; ``base_url`` replaces the API key."""

    name = "ollama"
    default_model = "llama3"

    def __init__(self, base_url: str = "http://localhost:11434", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url: str = base_url.rstrip("/")

    def _url(self) -> str:
        return f"{self.base_url}/api/generate"

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
        }

    def _extract_text(self, data: dict[str, Any]) -> str:
        return data["response"]


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

STRUCTURED_EXTRACTION_PROMPT = """You are a medical AI assistant. Extract symptoms from the patient's message and match them to known medical symptoms.

Patient's message: "{message}"

Known symptoms in our database:
{symptoms}

Instructions:
1. Identify all symptoms mentioned in the patient's message
2. Match them to the closest known symptoms from our database
3. Extract severity if mentioned (mild, moderate, severe)
4. Extract duration if mentioned (hours, days, weeks)
5. Return a JSON array of extracted symptoms

Return ONLY a JSON object in this exact format:
{{
  "symptoms": [
    {{
      "name": "symptom name from database",
      "confidence": 0.95,
      "severity": "moderate",
      "duration": "2 days"
    }}
  ]
}}"""

EXPLANATION_PROMPT = """You are a medical AI assistant. Generate a clear, empathetic explanation for the patient.

Patient Information:
- Age: {age} years
- Weight: {weight} kg
- Type: {type}

Reported Symptoms: {symptoms}

Possible Diagnoses:
{diseases}

Instructions:
1. Explain the possible conditions in simple, non-technical language
2. Describe why these conditions match the symptoms
3. Emphasize this is preliminary and they should see a doctor
4. Be empathetic and reassuring
5. Keep it concise (2-3 paragraphs)

Generate the explanation:"""

FOLLOW_UP_PROMPT = """You are a medical AI assistant. Suggest 3-5 relevant follow-up questions to better understand the patient's condition.

Reported Symptoms: {symptoms}
Most Likely Condition: {top_disease}

Instructions:
1. Ask about symptom duration, severity, or patterns
2. Ask about relevant medical history
3. Ask about triggers or relieving factors
4. Keep questions simple and direct
5. Return as a JSON array of strings

Return ONLY a JSON array:
["Question 1?", "Question 2?", "Question 3?"]"""


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class LLMService:
    """Prompt-level operations on top of an :class:`LLMProvider`."""

    def __init__(
        self,
        provider: LLMProvider,
        repository: KnowledgeBaseRepository | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.provider: LLMProvider = provider
        self.repository: KnowledgeBaseRepository = repository or KnowledgeBaseRepository()
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def _complete(self, prompt: str) -> str:
        text = self.provider.complete(prompt)
        if text is None:
            return ""
        return text if isinstance(text, str) else str(text)

    def extract_symptoms(self, message: str) -> ExtractedSymptoms:
        """Extract symptoms as structured JSON, guided by the catalog.

        Raises:
            ServiceError: ``LLM_EXTRACTION_ERROR`` on any failure, so the
                caller can fall back to another extraction strategy.
        """
        try:
            catalog: list[Symptom] = self.repository.get_symptom_catalog()[:LLM_CONTEXT_SYMPTOM_LIMIT]
            symptoms_list: str = "\n".join(
                f"- {s.name}: {s.description or ''}" for s in catalog
            )
            text: str = self._complete(
                STRUCTURED_EXTRACTION_PROMPT.format(message=message, symptoms=symptoms_list)
            )
            details: list[dict[str, Any]] = self._parse_symptom_response(text)
        except (ServiceError, DatabaseAccessError) as exc:
            raise ServiceError(
                "LLM_EXTRACTION_ERROR",
                "Failed to extract symptoms using LLM",
                {"cause": exc.message},
            ) from exc

        confidences: list[float] = [d["confidence"] for d in details]
        return ExtractedSymptoms(
            original_message=message,
            extracted_symptoms=[str(d["name"]) for d in details],
            confidence=sum(confidences) / len(confidences) if confidences else 0.0,
            details=details,
        )

    @staticmethod
    def _parse_symptom_response(text: str) -> list[dict[str, Any]]:
        match = _JSON_OBJECT_RE.search(text)
        if match is None:
            raise ServiceError("PARSE_ERROR", "No JSON found in LLM symptom response")
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ServiceError(
                "PARSE_ERROR", "Failed to parse LLM symptom response", {"cause": str(exc)}
            ) from exc

        symptoms = parsed.get("symptoms") if isinstance(parsed, dict) else None
        if not isinstance(symptoms, list):
            return []

        details: list[dict[str, Any]] = [
            s for s in symptoms if isinstance(s, dict) and s.get("name")
        ]
        for detail in details:
            try:
                detail["confidence"] = float(detail.get("confidence") or 0)
            except (TypeError, ValueError) as exc:
                raise ServiceError(
                    "PARSE_ERROR",
                    "Invalid confidence in LLM symptom response",
                    {"cause": str(exc)},
                ) from exc
        return details

    def generate_diagnosis_explanation(
        self,
        symptoms: Sequence[str],
        results: Sequence[DiagnosisResult],
        patient: PatientInfo,
    ) -> str:
        """Patient-facing explanation of the top diagnoses.

        Falls back to a one-sentence template when the provider fails.
        """
        symptoms_text: str = ", ".join(symptoms)
        diseases_text: str = "\n".join(
            f"- {r.disease_name} ({r.confidence * 100:.1f}% confidence)"
            for r in results[:RECOMMENDATION_RESULTS]
        )
        prompt: str = EXPLANATION_PROMPT.format(
            age=patient.age,
            weight=patient.weight,
            type=patient.type,
            symptoms=symptoms_text,
            diseases=diseases_text,
        )
        try:
            return self._complete(prompt).strip()
        except ServiceError as exc:
            self._logger.warning("explanation generation failed, using template: %s", exc)
            top: str = results[0].disease_name if results else "an unknown condition"
            return (
                f"Based on your symptoms ({symptoms_text}), you may have {top}. "
                "Please consult a healthcare professional for proper diagnosis and treatment."
            )

    def suggest_follow_up_questions(
        self, symptoms: Sequence[str], results: Sequence[DiagnosisResult]
    ) -> list[str]:
        """Three to five follow-up questions, or a fixed fallback set."""
        prompt: str = FOLLOW_UP_PROMPT.format(
            symptoms=", ".join(symptoms),
            top_disease=results[0].disease_name if results else "unknown condition",
        )
        try:
            text: str = self._complete(prompt)
            match = _JSON_ARRAY_RE.search(text)
            questions = json.loads(match.group(0) if match else text.strip())
        except (ServiceError, json.JSONDecodeError) as exc:
            self._logger.warning("follow-up generation failed, using defaults: %s", exc)
            return list(FALLBACK_FOLLOW_UP_QUESTIONS)

        if not isinstance(questions, list):
            return []
        return [str(q) for q in questions if isinstance(q, str) and q.strip()]
