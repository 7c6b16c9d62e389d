"""
diagnosis_engine/services/symptom_matcher.py
============================================
Resolves extracted symptom phrases to catalog symptoms.

Algorithm:
    1. Normalise the phrase and every catalog name.
    2. Exact normalised match → confidence 1.0.
    3. Otherwise pick the catalog entry with the highest edit-distance
       similarity; accept it only when the similarity exceeds 0.6 and
       report that similarity as the confidence.
    4. Phrases without a surviving match are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .constants import EXACT_MATCH_CONFIDENCE, SYMPTOM_MATCH_THRESHOLD
from .exceptions import DatabaseAccessError, NLPError
from .knowledge_base_repository import KnowledgeBaseRepository
from .types import MatchedSymptom, Symptom
from .utils import normalize_text, similarity_score

logger: logging.Logger = logging.getLogger(__name__)


class SymptomMatcher:
    """Maps free-text phrases to catalog symptom IDs."""

    def __init__(
        self,
        repository: KnowledgeBaseRepository | None = None,
        threshold: float = SYMPTOM_MATCH_THRESHOLD,
        logger: logging.Logger | None = None,
    ) -> None:
        self._repository: KnowledgeBaseRepository = repository or KnowledgeBaseRepository()
        self.threshold: float = threshold
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def match(
        self, extracted_phrases: Iterable[str], catalog: Sequence[Symptom]
    ) -> list[MatchedSymptom]:
        """Resolve phrases against a catalog snapshot.

        Pure function of its arguments.  Every phrase that survives
        matching yields one entry, even when several phrases resolve to
        the same catalog symptom.

        Args:
            extracted_phrases: Raw phrases in extraction order.
            catalog: Current symptom catalog.

        Returns:
            Matched symptoms in phrase order.
        """
        normalized_catalog: list[tuple[str, Symptom]] = [
            (normalize_text(symptom.name), symptom) for symptom in catalog
        ]
        exact_index: dict[str, Symptom] = {}
        for normalized_name, symptom in normalized_catalog:
            exact_index.setdefault(normalized_name, symptom)

        matched: list[MatchedSymptom] = []

        for phrase in extracted_phrases:
            normalized_phrase: str = normalize_text(phrase)
            if not normalized_phrase:
                continue

            symptom: Symptom | None = exact_index.get(normalized_phrase)
            confidence: float = EXACT_MATCH_CONFIDENCE

            if symptom is None:
                symptom, confidence = self._fuzzy_match(normalized_phrase, normalized_catalog)

            if symptom is None or confidence < self.threshold:
                self._logger.debug("no catalog match for phrase %r", phrase)
                continue

            matched.append(
                MatchedSymptom(
                    symptom_id=symptom.id,
                    symptom_name=symptom.name,
                    user_said=phrase,
                    confidence=confidence,
                )
            )

        return matched

    def _fuzzy_match(
        self, normalized_phrase: str, normalized_catalog: list[tuple[str, Symptom]]
    ) -> tuple[Symptom | None, float]:
        best: Symptom | None = None
        best_score: float = 0.0
        for normalized_name, symptom in normalized_catalog:
            score: float = similarity_score(normalized_phrase, normalized_name)
            if score > best_score and score > self.threshold:
                best, best_score = symptom, score
        return best, best_score

    def validate_and_match(self, extracted_phrases: Sequence[str]) -> list[MatchedSymptom]:
        """Load the current catalog and resolve *extracted_phrases* against it.

        Raises:
            NLPError: If the catalog cannot be read.
        """
        self._logger.info("validating %d extracted symptoms", len(extracted_phrases))
        try:
            catalog: list[Symptom] = self._repository.get_symptom_catalog()
        except DatabaseAccessError as exc:
            raise NLPError(
                "Failed to validate symptoms",
                details={"cause": exc.message},
            ) from exc

        matched: list[MatchedSymptom] = self.match(extracted_phrases, catalog)
        self._logger.info(
            "matched %d of %d extracted symptoms", len(matched), len(extracted_phrases)
        )
        return matched
