"""
diagnosis_engine/services/diagnosis_service.py
==============================================
Orchestration service that ties together symptom extraction, catalog
matching, hybrid search, dosing, supportive care, the query log and
the optional LLM enrichment.

Uses the **Strategy** pattern for extraction: callers inject or swap
the :class:`ExtractionStrategy` at runtime via :meth:`set_strategy`.

Stages::

    ExtractSymptoms → ValidateSymptoms → HybridSearch → BuildResults
    → GetRecommendations → GetSupportiveCare → ComputeConfidence
    → PersistQuery → LLMEnrich (optional) → BuildResponse
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from django.db import DatabaseError

from .base_strategy import ExtractionStrategy
from .constants import (
    CONFIDENCE_RESULTS,
    DEFAULT_SEARCH_LIMIT,
    MAX_RESULTS,
    MIN_COMBINED_SCORE,
    RECOMMENDATION_RESULTS,
    SUPPORTIVE_CARE_LIMIT,
)
from .dosage import DosageService
from .exceptions import DatabaseAccessError, DiagnosisEngineError, DiagnosisError
from .knowledge_base_repository import KnowledgeBaseRepository
from .llm import LLMService
from .query_log import QueryLogService
from .search import SearchService
from .symptom_matcher import SymptomMatcher
from .types import (
    DiagnosisResponse,
    DiagnosisResult,
    DiseaseCandidate,
    ExtractedSymptoms,
    MatchedSymptom,
    MedicationRecommendation,
    PatientInfo,
    StoreResult,
    SupportiveCareItem,
)
from .utils import run_concurrently

logger: logging.Logger = logging.getLogger(__name__)


class DiagnosisService:
    """High-level diagnostic orchestrator.

    Typical usage::

        from diagnosis_engine.services import build_diagnosis_service

        svc = build_diagnosis_service()
        response = svc.diagnose(
            "I have a headache and a high fever",
            PatientInfo(age=30, weight=70, type="adult"),
        )

    Args:
        strategy: Symptom extraction strategy.
        matcher: Resolves extracted phrases to catalog symptoms.
        search_service: Hybrid vector + graph search.
        dosage_service: Patient-specific medication dosing.
        query_log: Best-effort persistence of requests.
        llm_service: Optional LLM enrichment; ``None`` disables it.
        repository: Catalog access for supportive care.
        max_workers: Thread-pool size for the concurrent stages.  With
            ``1`` every stage runs on the calling thread.
        logger: Optional logger, defaults to the module logger.
    """

    def __init__(
        self,
        strategy: ExtractionStrategy,
        matcher: SymptomMatcher,
        search_service: SearchService,
        dosage_service: DosageService,
        query_log: QueryLogService,
        llm_service: LLMService | None = None,
        repository: KnowledgeBaseRepository | None = None,
        max_workers: int = 4,
        logger: logging.Logger | None = None,
    ) -> None:
        self._strategy: ExtractionStrategy = strategy
        self.matcher: SymptomMatcher = matcher
        self.search: SearchService = search_service
        self.dosage: DosageService = dosage_service
        self.query_log: QueryLogService = query_log
        self.llm: LLMService | None = llm_service
        self.repository: KnowledgeBaseRepository = repository or KnowledgeBaseRepository()
        self.max_workers: int = max_workers
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def set_strategy(self, strategy: ExtractionStrategy) -> None:
        """Replace the active extraction strategy for subsequent calls."""
        self._logger.info(
            "switching extraction strategy to %s", strategy.__class__.__name__
        )
        self._strategy = strategy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def diagnose(
        self,
        message: str,
        patient_info: PatientInfo,
        session_id: str | None = None,
    ) -> DiagnosisResponse:
        """Run the full diagnosis pipeline for one request.

        Args:
            message: Free-text symptom description.
            patient_info: Patient attributes used for dosing.
            session_id: Optional caller session; the stored query's ID
                is used when absent.

        Returns:
            The assembled :class:`DiagnosisResponse`.

        Raises:
            DiagnosisError: If no symptom could be matched or no disease
                scored above the minimum.
            NLPError: If extraction or symptom validation fails.
            EmbeddingError: If the query cannot be embedded.
            VectorIndexError: If the vector index fails.
            DatabaseAccessError: If the catalog cannot be read.
        """
        self._logger.info(
            "processing diagnosis with %s", self._strategy.__class__.__name__
        )

        # extract and validate symptoms
        extracted: ExtractedSymptoms = self._strategy.extract(message)
        self._logger.info("symptoms extracted: %s", extracted.extracted_symptoms)

        matched: list[MatchedSymptom] = self.matcher.validate_and_match(
            extracted.extracted_symptoms
        )
        if not matched:
            raise DiagnosisError(
                "No valid symptoms identified from your message",
                details={"extracted_symptoms": extracted.extracted_symptoms},
            )

        # rank candidate diseases
        candidates: list[DiseaseCandidate] = self.search.hybrid_search(
            matched, limit=DEFAULT_SEARCH_LIMIT
        )
        self._logger.info("disease candidates identified: %d", len(candidates))

        results: list[DiagnosisResult] = self.build_results(candidates, matched)
        if not results:
            raise DiagnosisError(
                "Unable to identify any matching conditions based on the symptoms provided"
            )

        recommendations: list[MedicationRecommendation] = self.get_recommendations(
            results, patient_info
        )
        supportive_care: list[SupportiveCareItem] = self.get_supportive_care(
            [r.disease_id for r in results]
        )
        overall_confidence: float = self.compute_confidence(results)

        stored: StoreResult = self.query_log.store(
            message=message,
            session_id=session_id,
            matched_symptoms=matched,
            results=results,
            confidence=overall_confidence,
        )

        explanation: str | None = None
        follow_up_questions: list[str] | None = None
        if self.llm is not None:
            explanation, follow_up_questions = self._enrich(matched, results, patient_info)

        self._logger.info(
            "diagnosis complete: query %s (stored=%s), %d results",
            stored.query_id,
            stored.stored,
            len(results),
        )
        return DiagnosisResponse(
            extracted_symptoms=[s.symptom_name for s in matched],
            extraction_confidence=extracted.confidence,
            results=results,
            recommendations=recommendations,
            supportive_care=supportive_care,
            overall_confidence=overall_confidence,
            session_id=session_id or stored.query_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            explanation=explanation,
            follow_up_questions=follow_up_questions,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    @staticmethod
    def build_results(
        candidates: Sequence[DiseaseCandidate], matched: Sequence[MatchedSymptom]
    ) -> list[DiagnosisResult]:
        """Keep candidates scoring above 0.1, at most five, in rank order."""
        results: list[DiagnosisResult] = []
        for candidate in candidates:
            if candidate.combined_score <= MIN_COMBINED_SCORE:
                continue
            node = candidate.graph_node
            disease_symptom_ids: set[int] = {s.id for s in node.symptoms}
            results.append(
                DiagnosisResult(
                    disease_id=candidate.disease_id,
                    disease_name=node.disease_name,
                    confidence=candidate.combined_score,
                    matched_symptoms=[m for m in matched if m.symptom_id in disease_symptom_ids],
                    diagnostic_criteria=[c.criteria for c in node.diagnostic_criteria],
                    vector_score=candidate.vector_score,
                    graph_score=candidate.graph_score,
                    negative_penalty=candidate.negative_penalty,
                    description=node.description,
                    category=node.category,
                )
            )
            if len(results) == MAX_RESULTS:
                break
        return results

    def get_recommendations(
        self, results: Sequence[DiagnosisResult], patient_info: PatientInfo
    ) -> list[MedicationRecommendation]:
        """Dosing for the top three results, first occurrence per medication wins."""
        top: Sequence[DiagnosisResult] = results[:RECOMMENDATION_RESULTS]
        per_disease: list[list[MedicationRecommendation]] = run_concurrently(
            [
                (lambda disease_id=r.disease_id: self.dosage.get_medication_recommendations(
                    disease_id, patient_info
                ))
                for r in top
            ],
            self.max_workers,
        )

        merged: dict[int, MedicationRecommendation] = {}
        for recommendations in per_disease:
            for recommendation in recommendations:
                merged.setdefault(recommendation.medication_id, recommendation)
        return list(merged.values())

    def get_supportive_care(self, disease_ids: Sequence[int]) -> list[SupportiveCareItem]:
        """Up to ten items, distinct by (category, title), by priority."""
        try:
            rows = list(self.repository.get_supportive_care(disease_ids))
        except DatabaseError as exc:
            self._logger.exception("failed to load supportive care")
            raise DatabaseAccessError("Failed to get supportive care", exc) from exc

        items: dict[tuple[str, str], SupportiveCareItem] = {}
        for row in rows:
            key: tuple[str, str] = (row.category, row.title)
            if key in items:
                continue
            items[key] = SupportiveCareItem(
                category=row.category,
                title=row.title,
                description=row.description,
                priority=row.priority,
            )
            if len(items) == SUPPORTIVE_CARE_LIMIT:
                break
        return list(items.values())

    @staticmethod
    def compute_confidence(results: Sequence[DiagnosisResult]) -> float:
        """Mean confidence of the top three results; 0 without results."""
        top: Sequence[DiagnosisResult] = results[:CONFIDENCE_RESULTS]
        if not top:
            return 0.0
        return sum(r.confidence for r in top) / len(top)

    def _enrich(
        self,
        matched: Sequence[MatchedSymptom],
        results: Sequence[DiagnosisResult],
        patient_info: PatientInfo,
    ) -> tuple[str | None, list[str] | None]:
        llm: LLMService = self.llm
        symptom_names: list[str] = [s.symptom_name for s in matched]
        try:
            explanation, questions = run_concurrently(
                [
                    lambda: llm.generate_diagnosis_explanation(symptom_names, results, patient_info),
                    lambda: llm.suggest_follow_up_questions(symptom_names, results),
                ],
                self.max_workers,
            )
        except DiagnosisEngineError as exc:
            self._logger.warning("LLM enrichment failed, continuing without it: %s", exc)
            return None, None
        return explanation, questions
