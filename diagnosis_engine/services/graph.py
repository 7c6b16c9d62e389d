"""
diagnosis_engine/services/graph.py
==================================
Knowledge-graph traversal over the catalog.

Builds a :class:`DiseaseGraphNode` per disease (symptom links,
treatments, diagnostic criteria and supportive care, each in catalog
priority order), pairs user symptoms with disease symptom weights and
evaluates negative diagnostic criteria.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from knowledge_base.models import DiseaseModel

from .knowledge_base_repository import KnowledgeBaseRepository
from .scoring import negative_criteria_penalty, score_disease_likelihood
from .types import (
    DiseaseGraphNode,
    GraphCriterion,
    GraphSymptom,
    GraphTreatment,
    MatchedSymptom,
    SupportiveCareItem,
    SymptomMatch,
)

logger: logging.Logger = logging.getLogger(__name__)


def _build_node(disease: DiseaseModel) -> DiseaseGraphNode:
    return DiseaseGraphNode(
        disease_id=disease.id,
        disease_name=disease.name,
        description=disease.description or None,
        category=disease.category.name if disease.category else None,
        symptoms=[
            GraphSymptom(
                id=link.symptom.id,
                name=link.symptom.name,
                is_primary=link.is_primary,
                importance=link.importance,
                description=link.description or None,
            )
            for link in disease.symptom_links.all()
        ],
        treatments=[
            GraphTreatment(
                id=t.id,
                type=t.type,
                name=t.name,
                priority=t.priority,
                is_required=t.is_required,
                conditions=t.conditions or None,
            )
            for t in disease.treatments.all()
        ],
        diagnostic_criteria=[
            GraphCriterion(criteria=c.criteria, type=c.type, priority=c.priority)
            for c in disease.diagnostic_criteria.all()
        ],
        supportive_care=[
            SupportiveCareItem(
                category=sc.category,
                title=sc.title,
                description=sc.description,
                priority=sc.priority,
            )
            for sc in disease.supportive_care.all()
        ],
    )


class GraphService:
    """Traverses and scores the disease knowledge graph."""

    def __init__(
        self,
        repository: KnowledgeBaseRepository | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repository: KnowledgeBaseRepository = repository or KnowledgeBaseRepository()
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def traverse_disease_graph(self, disease_ids: Sequence[int]) -> list[DiseaseGraphNode]:
        """Build graph nodes for *disease_ids*, preserving their order.

        Unknown IDs are skipped.

        Raises:
            DatabaseAccessError: If the catalog cannot be read.
        """
        self._logger.info("traversing disease graph for %d diseases", len(disease_ids))
        diseases: dict[int, DiseaseModel] = self.repository.get_diseases_with_relations(
            disease_ids
        )
        nodes: list[DiseaseGraphNode] = [
            _build_node(diseases[disease_id])
            for disease_id in disease_ids
            if disease_id in diseases
        ]
        self._logger.info("disease graph traversal complete: %d nodes", len(nodes))
        return nodes

    def get_diseases_from_symptoms(self, symptom_ids: Iterable[int]) -> list[int]:
        return self.repository.get_disease_ids_for_symptoms(symptom_ids)

    @staticmethod
    def calculate_symptom_relevance(
        user_symptoms: Iterable[MatchedSymptom], node: DiseaseGraphNode
    ) -> list[SymptomMatch]:
        """Pair each user symptom the disease has with that disease's weights."""
        by_id: dict[int, GraphSymptom] = {s.id: s for s in node.symptoms}
        matches: list[SymptomMatch] = []
        for user_symptom in user_symptoms:
            disease_symptom = by_id.get(user_symptom.symptom_id)
            if disease_symptom is None:
                continue
            matches.append(
                SymptomMatch(
                    symptom_id=user_symptom.symptom_id,
                    symptom_name=user_symptom.symptom_name,
                    user_said=user_symptom.user_said,
                    confidence=user_symptom.confidence,
                    is_primary=disease_symptom.is_primary,
                    importance=disease_symptom.importance,
                )
            )
        return matches

    @staticmethod
    def score_disease_likelihood(
        matches: Sequence[SymptomMatch], node: DiseaseGraphNode
    ) -> float:
        return score_disease_likelihood(matches, node)

    def evaluate_negative_criteria(
        self, disease_id: int, matched_symptoms: Iterable[MatchedSymptom]
    ) -> float:
        """Return the negative-criteria penalty (0–0.5) for a disease.

        Raises:
            DatabaseAccessError: If the criteria cannot be read.
        """
        criteria = self.repository.get_negative_criteria(disease_id)
        if not criteria:
            return 0.0

        return negative_criteria_penalty(
            (GraphCriterion(criteria=c.criteria, type=c.type, priority=c.priority) for c in criteria),
            (s.symptom_name for s in matched_symptoms),
        )
