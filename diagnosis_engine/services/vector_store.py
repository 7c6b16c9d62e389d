"""
diagnosis_engine/services/vector_store.py
=========================================
Vector index backends and the service wrapping them.

Backends:
    - DatabaseVectorIndex: vectors stored on ``VectorEmbeddingModel.values``
      and ranked by cosine similarity with numpy.  Suitable for small
      catalogs and for running without any external service.
    - PineconeVectorIndex: a hosted Pinecone index.

:class:`VectorStoreService` is what the pipeline talks to.  It applies
the score threshold and converts any backend failure into
:class:`VectorIndexError`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import numpy as np
from django.db import DatabaseError

from knowledge_base.models import VectorEmbeddingModel

from .exceptions import VectorIndexError
from .types import VectorSearchResult
from .utils import chunk

logger: logging.Logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 100


class VectorIndex(ABC):
    """Nearest-neighbour index over embedding vectors."""

    @abstractmethod
    def search(self, vector: Sequence[float], top_k: int) -> list[VectorSearchResult]:
        """Return the *top_k* nearest vectors, best first."""

    @abstractmethod
    def upsert(self, vector_id: str, values: Sequence[float], metadata: dict[str, Any]) -> None:
        """Insert or replace one vector."""

    @abstractmethod
    def delete(self, vector_ids: Sequence[str]) -> None:
        """Remove vectors by ID; unknown IDs are ignored."""


# ---------------------------------------------------------------------------
# Database-backed index
# ---------------------------------------------------------------------------


class DatabaseVectorIndex(VectorIndex):
    """Brute-force cosine similarity over vectors stored in the database."""

    def search(self, vector: Sequence[float], top_k: int) -> list[VectorSearchResult]:
        rows: list[VectorEmbeddingModel] = list(
            VectorEmbeddingModel.objects.filter(values__isnull=False).order_by("id")
        )
        if not rows or top_k <= 0:
            return []

        query = np.asarray(vector, dtype=float)
        matrix = np.asarray([row.values for row in rows], dtype=float)
        if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
            raise ValueError(
                f"query has {query.shape[0]} dimensions, index has {matrix.shape[-1]}"
            )

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        scores = np.divide(
            matrix @ query, norms, out=np.zeros(len(rows)), where=norms > 0
        )
        # stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]

        return [
            VectorSearchResult(
                id=rows[i].vector_id,
                score=float(scores[i]),
                metadata={
                    **(rows[i].metadata or {}),
                    "entity_type": rows[i].entity_type,
                    "entity_id": rows[i].entity_id,
                },
            )
            for i in order
        ]

    def upsert(self, vector_id: str, values: Sequence[float], metadata: dict[str, Any]) -> None:
        VectorEmbeddingModel.objects.update_or_create(
            vector_id=vector_id,
            defaults={
                "entity_type": metadata.get("entity_type", ""),
                "entity_id": str(metadata.get("entity_id", "")),
                "metadata": metadata,
                "values": [float(v) for v in values],
            },
        )

    def delete(self, vector_ids: Sequence[str]) -> None:
        VectorEmbeddingModel.objects.filter(vector_id__in=list(vector_ids)).update(values=None)


# ---------------------------------------------------------------------------
# Pinecone
# ---------------------------------------------------------------------------


class PineconeVectorIndex(VectorIndex):
    """Hosted Pinecone index.

    The ``pinecone`` client is imported on first construction so the
    dependency is only needed when this backend is configured.
    """

    def __init__(self, api_key: str, index_name: str) -> None:
        from pinecone import Pinecone

        self._index = Pinecone(api_key=api_key).Index(index_name)

    def search(self, vector: Sequence[float], top_k: int) -> list[VectorSearchResult]:
        response = self._index.query(vector=list(vector), top_k=top_k, include_metadata=True)
        return [
            VectorSearchResult(
                id=match.id,
                score=float(match.score),
                metadata=dict(match.metadata or {}),
            )
            for match in response.matches
        ]

    def upsert(self, vector_id: str, values: Sequence[float], metadata: dict[str, Any]) -> None:
        # Pinecone rejects null metadata values
        clean: dict[str, Any] = {k: v for k, v in metadata.items() if v is not None}
        self._index.upsert(vectors=[{"id": vector_id, "values": list(values), "metadata": clean}])

    def delete(self, vector_ids: Sequence[str]) -> None:
        self._index.delete(ids=list(vector_ids))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class VectorStoreService:
    """Thresholded search and maintenance on top of a :class:`VectorIndex`."""

    def __init__(self, index: VectorIndex, logger: logging.Logger | None = None) -> None:
        self.index: VectorIndex = index
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def search(
        self, vector: Sequence[float], top_k: int = 10, threshold: float = 0.5
    ) -> list[VectorSearchResult]:
        """Return up to *top_k* hits whose score is at least *threshold*.

        Raises:
            VectorIndexError: If the backend query fails.
        """
        self._logger.info(
            "searching vectors (dimensions=%d, top_k=%d, threshold=%.2f)",
            len(vector),
            top_k,
            threshold,
        )
        try:
            hits: list[VectorSearchResult] = self.index.search(vector, top_k)
        except Exception as exc:
            self._logger.exception("vector search failed")
            raise VectorIndexError("Failed to search vectors", exc) from exc

        filtered: list[VectorSearchResult] = [hit for hit in hits if hit.score >= threshold]
        self._logger.info("vector search complete: %d hits", len(filtered))
        return filtered

    def upsert_vector(
        self, vector_id: str, values: Sequence[float], metadata: dict[str, Any]
    ) -> None:
        try:
            self.index.upsert(vector_id, values, metadata)
        except Exception as exc:
            self._logger.exception("failed to upsert vector %s", vector_id)
            raise VectorIndexError("Failed to upsert vector", exc) from exc
        self._logger.debug("vector %s upserted", vector_id)

    def delete_vectors(self, vector_ids: Sequence[str]) -> None:
        try:
            for batch in chunk(list(vector_ids), DELETE_BATCH_SIZE):
                self.index.delete(batch)
        except Exception as exc:
            self._logger.exception("failed to delete vectors")
            raise VectorIndexError("Failed to delete vectors", exc) from exc

    def clear_all_vectors(self) -> int:
        """Delete every registered vector from the index and the registry.

        Returns:
            Number of vectors removed.

        Raises:
            VectorIndexError: If the index or the registry cannot be cleared.
        """
        try:
            vector_ids: list[str] = list(
                VectorEmbeddingModel.objects.values_list("vector_id", flat=True)
            )
        except DatabaseError as exc:
            raise VectorIndexError("Failed to list registered vectors", exc) from exc

        if not vector_ids:
            self._logger.info("no vectors found to delete")
            return 0

        self.delete_vectors(vector_ids)
        try:
            VectorEmbeddingModel.objects.all().delete()
        except DatabaseError as exc:
            raise VectorIndexError(
                "Failed to clear all vector embeddings from database", exc
            ) from exc

        self._logger.info("cleared %d vectors", len(vector_ids))
        return len(vector_ids)
