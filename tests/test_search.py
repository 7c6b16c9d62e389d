"""
Tests for the hybrid vector + graph disease search.
"""

import pytest

from diagnosis_engine.services.embeddings import EmbeddingsService
from diagnosis_engine.services.exceptions import EmbeddingError, VectorIndexError
from diagnosis_engine.services.graph import GraphService
from diagnosis_engine.services.search import SearchService
from diagnosis_engine.services.types import MatchedSymptom, VectorSearchResult
from diagnosis_engine.services.vector_store import VectorStoreService

from .conftest import FakeEmbeddingProvider, FakeVectorIndex, disease_hit, symptom_hit


def _matched(catalog, *names):
    return [
        MatchedSymptom(
            symptom_id=catalog.symptoms[name].id,
            symptom_name=name,
            user_said=name.lower(),
            confidence=1.0,
        )
        for name in names
    ]


def _search(index=None, provider=None):
    return SearchService(
        EmbeddingsService(provider or FakeEmbeddingProvider()),
        VectorStoreService(index or FakeVectorIndex()),
        GraphService(),
    )


class TestVectorScores:
    def test_best_score_per_disease_only_for_disease_hits(self):
        hits = [
            disease_hit(1, 0.7),
            symptom_hit(5, 0.99),
            disease_hit(1, 0.9),
            disease_hit(2, 0.6),
            VectorSearchResult(id="bad", score=0.8, metadata={"entity_type": "disease", "entity_id": "x"}),
        ]
        assert SearchService._disease_vector_scores(hits) == {1: 0.9, 2: 0.6}


@pytest.mark.django_db
class TestHybridSearch:
    """Candidate discovery, thresholding and ranking."""

    def test_no_symptoms_returns_empty(self, catalog):
        assert _search().hybrid_search([]) == []

    def test_graph_only_ranking(self, catalog):
        candidates = _search().hybrid_search(_matched(catalog, "Fever", "Muscle Aches", "Cough"))

        assert [c.graph_node.disease_name for c in candidates] == ["Influenza", "Common Cold"]
        influenza, cold = candidates
        assert influenza.graph_score == 1.0
        assert influenza.combined_score == pytest.approx(0.7)
        assert cold.negative_penalty == pytest.approx(0.15)
        assert cold.combined_score == 0.0

    def test_query_embedding_and_top_k(self, catalog):
        provider = FakeEmbeddingProvider()
        index = FakeVectorIndex()
        _search(index, provider).hybrid_search(_matched(catalog, "Fever", "Cough"), limit=5)

        assert provider.texts == ["Fever Cough"]
        assert index.queries[0][1] == 15

    def test_top_k_is_capped(self, catalog):
        index = FakeVectorIndex()
        _search(index).hybrid_search(_matched(catalog, "Fever"), limit=50)
        assert index.queries[0][1] == 30

    def test_vector_hits_add_unlinked_diseases_and_respect_threshold(self, catalog):
        # one symptom: threshold 0.65 drops the influenza hit
        index = FakeVectorIndex([disease_hit(catalog.cold.id, 0.7), disease_hit(catalog.influenza.id, 0.6)])
        candidates = _search(index).hybrid_search(_matched(catalog, "Fever"))

        by_name = {c.graph_node.disease_name: c for c in candidates}
        assert by_name["Common Cold"].vector_score == 0.7
        assert by_name["Influenza"].vector_score == 0.0
        # influenza: 0.7 * 0.63 / 1.83 / 3; cold: 0.3 * 0.7 - 0.15
        assert by_name["Influenza"].combined_score == pytest.approx(0.7 * 0.63 / 1.83 / 3)
        assert by_name["Common Cold"].combined_score == pytest.approx(0.06)
        assert [c.graph_node.disease_name for c in candidates] == ["Influenza", "Common Cold"]

    def test_vector_score_lifts_combined_score(self, catalog):
        index = FakeVectorIndex([disease_hit(catalog.influenza.id, 0.8)])
        (top, *_) = _search(index).hybrid_search(_matched(catalog, "Fever", "Muscle Aches", "Cough"))
        assert top.combined_score == pytest.approx(0.24 + 0.7)

    def test_limit_truncates(self, catalog):
        candidates = _search().hybrid_search(_matched(catalog, "Cough"), limit=1)
        assert len(candidates) == 1

    def test_unknown_disease_hit_is_skipped(self, catalog):
        index = FakeVectorIndex([disease_hit(424242, 0.99)])
        candidates = _search(index).hybrid_search(_matched(catalog, "Runny Nose"))
        assert [c.graph_node.disease_name for c in candidates] == ["Common Cold"]

    def test_embedding_failure_is_fatal(self, catalog):
        provider = FakeEmbeddingProvider(error=RuntimeError("offline"))
        with pytest.raises(EmbeddingError):
            _search(provider=provider).hybrid_search(_matched(catalog, "Fever"))

    def test_index_failure_is_fatal(self, catalog):
        index = FakeVectorIndex(error=RuntimeError("index down"))
        with pytest.raises(VectorIndexError):
            _search(index).hybrid_search(_matched(catalog, "Fever"))
