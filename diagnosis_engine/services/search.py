"""
diagnosis_engine/services/search.py
===================================
Hybrid disease search: vector similarity fused with graph scoring.

Pipeline per request::

    matched symptoms ─► query text ─► embedding ─► vector index (top-k, dynamic threshold)
           │                                             │ disease hits
           └──► diseases linked in the catalog ──────────┤
                                                         ▼
                                   graph traversal ─► likelihood ─► negative penalty
                                                         ▼
                                  combined = 0.3·vector + 0.7·graph − penalty

Every collaborator failure here is fatal for the request.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .constants import DEFAULT_SEARCH_LIMIT, MAX_VECTOR_TOP_K, VECTOR_TOP_K_MULTIPLIER
from .embeddings import EmbeddingsService
from .graph import GraphService
from .scoring import combine_scores, dynamic_threshold
from .types import DiseaseCandidate, DiseaseGraphNode, MatchedSymptom, SymptomMatch, VectorSearchResult
from .vector_store import VectorStoreService

logger: logging.Logger = logging.getLogger(__name__)

DISEASE_ENTITY = "disease"


class SearchService:
    """Ranks candidate diseases for a set of matched symptoms."""

    def __init__(
        self,
        embeddings_service: EmbeddingsService,
        vector_store_service: VectorStoreService,
        graph_service: GraphService,
        logger: logging.Logger | None = None,
    ) -> None:
        self.embeddings: EmbeddingsService = embeddings_service
        self.vector_store: VectorStoreService = vector_store_service
        self.graph: GraphService = graph_service
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def hybrid_search(
        self, matched_symptoms: Sequence[MatchedSymptom], limit: int = DEFAULT_SEARCH_LIMIT
    ) -> list[DiseaseCandidate]:
        """Return up to *limit* candidates sorted by combined score.

        Args:
            matched_symptoms: Catalog-resolved symptoms in extraction order.
            limit: Maximum number of candidates.

        Returns:
            Candidates ordered by combined score descending.  Ties keep
            the order in which the diseases were discovered (vector hits
            first, then catalog links).

        Raises:
            EmbeddingError: If the query cannot be embedded.
            VectorIndexError: If the vector index query fails.
            DatabaseAccessError: If the catalog cannot be read.
        """
        if not matched_symptoms:
            return []

        query_text: str = " ".join(s.symptom_name for s in matched_symptoms)
        self._logger.info("hybrid search for %r", query_text)

        query_vector: list[float] = self.embeddings.generate_embedding_for_text(query_text)
        threshold: float = dynamic_threshold(len(matched_symptoms))
        top_k: int = min(limit * VECTOR_TOP_K_MULTIPLIER, MAX_VECTOR_TOP_K)

        hits: list[VectorSearchResult] = self.vector_store.search(
            query_vector, top_k=top_k, threshold=threshold
        )
        vector_scores: dict[int, float] = self._disease_vector_scores(hits)
        self._logger.info(
            "vector search returned %d disease hits (threshold %.2f, top_k %d)",
            len(vector_scores),
            threshold,
            top_k,
        )

        linked_ids: list[int] = self.graph.get_diseases_from_symptoms(
            s.symptom_id for s in matched_symptoms
        )
        disease_ids: list[int] = list(dict.fromkeys([*vector_scores, *linked_ids]))
        if not disease_ids:
            return []

        nodes: list[DiseaseGraphNode] = self.graph.traverse_disease_graph(disease_ids)
        candidates: list[DiseaseCandidate] = [
            self._score_candidate(node, matched_symptoms, vector_scores.get(node.disease_id, 0.0))
            for node in nodes
        ]
        candidates.sort(key=lambda c: c.combined_score, reverse=True)

        self._logger.info("hybrid search scored %d candidates", len(candidates))
        return candidates[:limit]

    def _score_candidate(
        self,
        node: DiseaseGraphNode,
        matched_symptoms: Sequence[MatchedSymptom],
        vector_score: float,
    ) -> DiseaseCandidate:
        matches: list[SymptomMatch] = self.graph.calculate_symptom_relevance(
            matched_symptoms, node
        )
        graph_score: float = self.graph.score_disease_likelihood(matches, node)
        penalty: float = self.graph.evaluate_negative_criteria(node.disease_id, matched_symptoms)
        combined: float = combine_scores(vector_score, graph_score, penalty)

        self._logger.debug(
            "disease %s: vector=%.3f graph=%.3f penalty=%.3f combined=%.3f",
            node.disease_id,
            vector_score,
            graph_score,
            penalty,
            combined,
        )
        return DiseaseCandidate(
            disease_id=node.disease_id,
            vector_score=vector_score,
            graph_score=graph_score,
            combined_score=combined,
            negative_penalty=penalty,
            graph_node=node,
        )

    @staticmethod
    def _disease_vector_scores(hits: Sequence[VectorSearchResult]) -> dict[int, float]:
        """Best score per disease among disease-typed hits, in hit order."""
        scores: dict[int, float] = {}
        for hit in hits:
            if hit.entity_type != DISEASE_ENTITY or hit.entity_id is None:
                continue
            try:
                disease_id: int = int(hit.entity_id)
            except ValueError:
                logger.warning("ignoring vector hit %s with entity_id %r", hit.id, hit.entity_id)
                continue
            scores[disease_id] = max(scores.get(disease_id, 0.0), hit.score)
        return scores
