"""
diagnosis_engine/services/extraction.py
=======================================
Concrete symptom extraction strategies.

Strategies:
    - KeywordExtractionStrategy: catalog names found in the message,
      plus leftover fragments for the fuzzy matcher.  Needs no model.
    - CompletionExtractionStrategy: asks an LLM for a comma-separated
      symptom list.
    - StructuredExtractionStrategy: structured JSON extraction through
      :class:`LLMService`, falling back to another strategy when the
      LLM fails.
"""

from __future__ import annotations

import logging
import re

from .base_strategy import ExtractionStrategy
from .constants import COMPLETION_EXTRACTION_CONFIDENCE, MIN_EXTRACTED_PHRASE_LENGTH
from .exceptions import DatabaseAccessError, NLPError, ServiceError
from .knowledge_base_repository import KnowledgeBaseRepository
from .llm import LLMProvider, LLMService
from .types import ExtractedSymptoms, Symptom
from .utils import normalize_text

logger: logging.Logger = logging.getLogger(__name__)

_FRAGMENT_SPLIT_RE = re.compile(r",|;|\.|\band\b|\bwith\b|\balso\b")

# Words that carry no symptom meaning once a fragment is isolated.
_FILLER_WORDS: frozenset[str] = frozenset(
    {
        "i", "im", "ive", "have", "has", "had", "a", "an", "the", "my", "me",
        "been", "feel", "feeling", "got", "some", "of", "since", "for", "am",
        "is", "it", "really", "very", "bit", "little", "lot", "days", "day",
        "hours", "weeks", "yesterday", "today", "bad",
    }
)


class KeywordExtractionStrategy(ExtractionStrategy):
    """Finds catalog symptom names directly in the message.

    Catalog names are searched as whole words in the normalised
    message, longest first so ``"sore throat"`` wins over ``"throat"``.
    Whatever text remains is split into fragments; fragments with
    content words are returned after the catalog hits so that
    misspellings can still be resolved by fuzzy matching.
    """

    def __init__(
        self,
        repository: KnowledgeBaseRepository | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repository: KnowledgeBaseRepository = repository or KnowledgeBaseRepository()
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def extract(self, message: str) -> ExtractedSymptoms:
        try:
            catalog: list[Symptom] = self.repository.get_symptom_catalog()
        except DatabaseAccessError as exc:
            raise NLPError(
                "Failed to extract symptoms from message", details={"cause": exc.message}
            ) from exc

        text: str = normalize_text(message)
        found: list[tuple[int, str]] = []
        for name in sorted({normalize_text(s.name) for s in catalog}, key=len, reverse=True):
            if not name:
                continue
            pattern = re.compile(rf"\b{re.escape(name)}\b")
            hit = pattern.search(text)
            if hit is None:
                continue
            found.append((hit.start(), name))
            text = pattern.sub(lambda m: "," * len(m.group(0)), text)

        found.sort()
        phrases: list[str] = [name for _, name in found]

        leftovers: list[str] = []
        for fragment in _FRAGMENT_SPLIT_RE.split(text):
            words: list[str] = [w for w in fragment.split() if w not in _FILLER_WORDS]
            candidate: str = " ".join(words)
            if len(candidate) >= MIN_EXTRACTED_PHRASE_LENGTH:
                leftovers.append(candidate)

        total: int = len(phrases) + len(leftovers)
        self._logger.info(
            "keyword extraction found %d catalog symptoms and %d other fragments",
            len(phrases),
            len(leftovers),
        )
        return ExtractedSymptoms(
            original_message=message,
            extracted_symptoms=phrases + leftovers,
            confidence=len(phrases) / total if total else 0.0,
            unrecognized_terms=leftovers,
        )


COMPLETION_EXTRACTION_PROMPT = """You are a medical symptom extractor. Extract ONLY the medical symptoms from this patient message.
Return the symptoms as a simple comma-separated list, nothing else. Do not include explanations or additional text.

Examples:
Patient: "I have a headache and fever" → headache, fever
Patient: "my throat hurts and I'm coughing" → sore throat, cough
Patient: "feeling dizzy with stomach pain" → dizziness, stomach pain

Patient message: "{message}"

Extracted symptoms:"""


class CompletionExtractionStrategy(ExtractionStrategy):
    """Comma-separated symptom list from a plain LLM completion."""

    def __init__(self, provider: LLMProvider, logger: logging.Logger | None = None) -> None:
        self.provider: LLMProvider = provider
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def extract(self, message: str) -> ExtractedSymptoms:
        try:
            text: str = self.provider.complete(COMPLETION_EXTRACTION_PROMPT.format(message=message))
        except ServiceError as exc:
            self._logger.error("completion extraction failed: %s", exc)
            raise NLPError(
                "Failed to extract symptoms from message", details={"cause": exc.message}
            ) from exc

        symptoms: list[str] = [
            phrase
            for phrase in (normalize_text(part) for part in text.split(","))
            if len(phrase) >= MIN_EXTRACTED_PHRASE_LENGTH
        ]
        self._logger.info("completion extraction found %d symptoms", len(symptoms))
        return ExtractedSymptoms(
            original_message=message,
            extracted_symptoms=symptoms,
            confidence=COMPLETION_EXTRACTION_CONFIDENCE,
        )


class StructuredExtractionStrategy(ExtractionStrategy):
    """LLM extraction with a fallback strategy.

    The fallback runs when the LLM call fails or extracts nothing; its
    own errors propagate.
    """

    def __init__(
        self,
        llm_service: LLMService,
        fallback: ExtractionStrategy,
        logger: logging.Logger | None = None,
    ) -> None:
        self.llm_service: LLMService = llm_service
        self.fallback: ExtractionStrategy = fallback
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def extract(self, message: str) -> ExtractedSymptoms:
        try:
            extracted: ExtractedSymptoms = self.llm_service.extract_symptoms(message)
        except ServiceError as exc:
            self._logger.warning(
                "LLM extraction failed, falling back to %s: %s",
                self.fallback.__class__.__name__,
                exc,
            )
            return self.fallback.extract(message)

        if not extracted.extracted_symptoms:
            self._logger.info("LLM extracted no symptoms, using fallback strategy")
            return self.fallback.extract(message)
        return extracted
