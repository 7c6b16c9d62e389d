"""
Tests for knowledge-graph traversal and disease scoring over the catalog.
"""

import pytest

from diagnosis_engine.services.graph import GraphService
from diagnosis_engine.services.types import MatchedSymptom


def _matched(symptom, confidence=1.0):
    return MatchedSymptom(
        symptom_id=symptom.id,
        symptom_name=symptom.name,
        user_said=symptom.name.lower(),
        confidence=confidence,
    )


@pytest.mark.django_db
class TestTraversal:
    """Graph nodes built from the catalog."""

    def test_preserves_requested_order_and_skips_unknown(self, catalog):
        nodes = GraphService().traverse_disease_graph(
            [catalog.cold.id, 99999, catalog.influenza.id]
        )
        assert [n.disease_name for n in nodes] == ["Common Cold", "Influenza"]

    def test_node_relations_are_ordered(self, catalog):
        (node,) = GraphService().traverse_disease_graph([catalog.influenza.id])
        assert [s.name for s in node.symptoms] == ["Fever", "Muscle Aches", "Cough", "Headache"]
        assert [t.name for t in node.treatments] == ["Antiviral", "Fever relief"]
        assert [c.title for c in node.supportive_care] == ["Get rest", "Drink fluids"]
        assert node.category == "Respiratory Infections"
        assert [s.name for s in node.primary_symptoms] == ["Fever", "Muscle Aches", "Cough"]

    def test_empty_request(self, catalog):
        assert GraphService().traverse_disease_graph([]) == []

    def test_diseases_from_symptoms(self, catalog):
        service = GraphService()
        cough = catalog.symptoms["Cough"].id
        assert service.get_diseases_from_symptoms([cough]) == sorted(
            [catalog.influenza.id, catalog.cold.id]
        )
        assert service.get_diseases_from_symptoms([catalog.symptoms["Itching"].id]) == []


@pytest.mark.django_db
class TestRelevanceAndPenalty:
    """Symptom weights per disease and the negative criteria."""

    def test_relevance_uses_disease_weights(self, catalog):
        (node,) = GraphService().traverse_disease_graph([catalog.cold.id])
        user = [_matched(catalog.symptoms["Fever"]), _matched(catalog.symptoms["Cough"], 0.8)]

        matches = GraphService.calculate_symptom_relevance(user, node)

        assert len(matches) == 1
        assert matches[0].symptom_name == "Cough"
        assert matches[0].is_primary is False
        assert matches[0].importance == 5
        assert matches[0].confidence == 0.8

    def test_negative_criteria_penalise_conflicting_symptom(self, catalog):
        service = GraphService()
        fever = [_matched(catalog.symptoms["Fever"])]
        assert service.evaluate_negative_criteria(catalog.cold.id, fever) == pytest.approx(0.15)
        assert service.evaluate_negative_criteria(catalog.influenza.id, fever) == 0.0

    def test_full_primary_coverage_scores_high(self, catalog):
        service = GraphService()
        (node,) = service.traverse_disease_graph([catalog.influenza.id])
        user = [_matched(catalog.symptoms[name]) for name in ("Fever", "Muscle Aches", "Cough")]
        matches = service.calculate_symptom_relevance(user, node)
        assert service.score_disease_likelihood(matches, node) == 1.0
