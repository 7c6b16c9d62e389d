"""
diagnosis_engine/services/embeddings.py
=======================================
Text embedding providers and embedding index maintenance.

Providers:
    - OllamaEmbeddingProvider: ``POST {OLLAMA_URL}/api/embeddings``.
    - SentenceTransformerEmbeddingProvider: local sentence-transformers
      model, loaded lazily on first use.

:class:`EmbeddingsService` validates provider output and keeps the
vector index in step with the catalog: diseases and symptoms without a
``vector_id`` are embedded from a rich context text (the entity plus its
graph neighbourhood), upserted into the vector index and registered in
``VectorEmbeddingModel``.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import requests
from django.db import DatabaseError

from knowledge_base.models import (
    DiagnosticCriterionModel,
    DiseaseModel,
    SymptomModel,
    VectorEmbeddingModel,
)

from .constants import EMBEDDING_BATCH_SIZE
from .exceptions import DiagnosisEngineError, EmbeddingError
from .utils import chunk
from .vector_store import VectorStoreService

logger: logging.Logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length float vector."""

    name: str = "embedding"

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*."""


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a local Ollama server."""

    name = "ollama"

    def __init__(self, base_url: str, model: str, timeout: float = 30.0) -> None:
        self.base_url: str = base_url.rstrip("/")
        self.model: str = model
        self.timeout: float = timeout

    def embed(self, text: str) -> list[float]:
        response = requests.post(
            f"{self.base_url}/api/embeddings",
            json={"model": self.model, "prompt": text},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return list(response.json().get("embedding") or [])


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a local sentence-transformers model."""

    name = "sentence-transformers"

    def __init__(self, model_name: str = "all-MiniLM-L6-v2") -> None:
        self.model_name: str = model_name
        self._model = None

    def embed(self, text: str) -> list[float]:
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(self.model_name)
        return [float(v) for v in self._model.encode(text).tolist()]


# ---------------------------------------------------------------------------
# Context builders
# ---------------------------------------------------------------------------


def _plain_context(name: str, description: str) -> str:
    return f"{name}: {description}" if description else name


def build_disease_context(disease: DiseaseModel) -> str:
    """Describe a disease and its graph neighbourhood as one text.

    Includes the category, description, the five most important
    symptoms (primary ones with their importance), the top three
    positive criteria and the treatment types and medications of the
    top five treatments.
    """
    parts: list[str] = [f"Disease: {disease.name}"]
    if disease.category_id:
        parts.append(f"Category: {disease.category.name}")
    if disease.description:
        parts.append(f"Description: {disease.description}")

    links = list(disease.symptom_links.select_related("symptom").order_by("-importance", "id")[:5])
    primary: str = ", ".join(
        f"{link.symptom.name} (importance: {link.importance})" for link in links if link.is_primary
    )
    secondary: str = ", ".join([link.symptom.name for link in links if not link.is_primary][:3])
    if primary:
        parts.append(f"Primary symptoms: {primary}")
    if secondary:
        parts.append(f"Other symptoms: {secondary}")

    criteria = list(disease.diagnostic_criteria.filter(
        type=DiagnosticCriterionModel.CriterionType.POSITIVE
    ).order_by("priority", "id")[:3])
    if criteria:
        parts.append("Diagnostic criteria: " + ". ".join(c.criteria for c in criteria))

    treatment_types: list[str] = []
    medications: list[str] = []
    for treatment in disease.treatments.order_by("priority", "id")[:5]:
        if treatment.type not in treatment_types:
            treatment_types.append(treatment.type)
        for dosage in treatment.dosages.select_related("medication").order_by("id")[:3]:
            label: str = f"{dosage.medication.generic_name} ({dosage.medication.type})"
            if label not in medications:
                medications.append(label)
    if treatment_types:
        parts.append(f"Treatment types: {', '.join(treatment_types)}")
    if medications:
        parts.append(f"Medications: {', '.join(medications[:5])}")

    return ". ".join(parts)


def build_symptom_context(symptom: SymptomModel) -> str:
    """Describe a symptom together with the diseases it points to."""
    links = list(symptom.disease_links.select_related("disease").order_by("-importance", "id")[:5])
    if not links:
        return _plain_context(symptom.name, symptom.description)

    parts: list[str] = [f"Symptom: {symptom.name}"]
    if symptom.description:
        parts.append(f"Description: {symptom.description}")

    primary: list[str] = [link.disease.name for link in links if link.is_primary]
    secondary: list[str] = [link.disease.name for link in links if not link.is_primary]
    if primary:
        parts.append(f"Primary symptom of: {', '.join(primary)}")
    if secondary:
        parts.append(f"Secondary symptom of: {', '.join(secondary[:3])}")

    return ". ".join(parts)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class EmbeddingsService:
    """Embedding generation and vector index maintenance.

    Args:
        provider: Backend producing the vectors.
        vector_store: Index to keep in step with the catalog.  Only needed
            for the maintenance operations.
        dimensions: Expected vector length; ``None`` disables the check.
        logger: Optional logger, defaults to the module logger.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        vector_store: VectorStoreService | None = None,
        dimensions: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.provider: EmbeddingProvider = provider
        self.vector_store: VectorStoreService | None = vector_store
        self.dimensions: int | None = dimensions
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def generate_embedding_for_text(self, text: str) -> list[float]:
        """Embed *text* with the configured provider.

        Raises:
            EmbeddingError: If the provider fails, returns an empty vector
                or a vector of unexpected length.
        """
        self._logger.debug("generating embedding (text length %d)", len(text))
        try:
            embedding: list[float] = self.provider.embed(text)
        except Exception as exc:
            self._logger.exception("embedding provider %s failed", self.provider.name)
            raise EmbeddingError(
                "Failed to generate embedding", details={"cause": str(exc)}
            ) from exc

        if not embedding:
            raise EmbeddingError("No embedding returned from embedding provider")
        if self.dimensions is not None and len(embedding) != self.dimensions:
            raise EmbeddingError(
                "Embedding has unexpected dimensions",
                details={"expected": self.dimensions, "actual": len(embedding)},
            )
        return embedding

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------
    def _require_store(self) -> VectorStoreService:
        if self.vector_store is None:
            raise EmbeddingError("No vector store configured for embedding maintenance")
        return self.vector_store

    def _index_entity(self, entity: DiseaseModel | SymptomModel, entity_type: str, text: str) -> str:
        store: VectorStoreService = self._require_store()
        embedding: list[float] = self.generate_embedding_for_text(text)
        vector_id: str = f"{entity_type}-{entity.id}-{int(time.time() * 1000)}"
        metadata: dict[str, Any] = {
            "entity_type": entity_type,
            "entity_id": str(entity.id),
            "name": entity.name,
            "description": entity.description or None,
        }

        store.upsert_vector(vector_id, embedding, metadata)
        VectorEmbeddingModel.objects.update_or_create(
            vector_id=vector_id,
            defaults={
                "entity_type": entity_type,
                "entity_id": str(entity.id),
                "metadata": metadata,
            },
        )
        entity.vector_id = vector_id
        entity.save(update_fields=["vector_id"])
        return vector_id

    def _generate_for(self, entities: list, entity_type: str, build_context) -> dict[str, int]:
        self._logger.info("found %d %s entities without embeddings", len(entities), entity_type)
        generated = failed = 0

        for batch in chunk(entities, EMBEDDING_BATCH_SIZE):
            for entity in batch:
                try:
                    self._index_entity(entity, entity_type, build_context(entity))
                    generated += 1
                except (DiagnosisEngineError, DatabaseError) as exc:
                    failed += 1
                    self._logger.error(
                        "failed to generate embedding for %s %s: %s", entity_type, entity.id, exc
                    )

        self._logger.info(
            "%s embeddings complete: %d generated, %d failed", entity_type, generated, failed
        )
        return {"generated": generated, "failed": failed}

    def generate_embeddings_for_diseases(self) -> dict[str, int]:
        diseases: list[DiseaseModel] = list(
            DiseaseModel.objects.filter(vector_id__isnull=True).select_related("category").order_by("id")
        )
        return self._generate_for(diseases, VectorEmbeddingModel.EntityType.DISEASE, build_disease_context)

    def generate_embeddings_for_symptoms(self) -> dict[str, int]:
        symptoms: list[SymptomModel] = list(
            SymptomModel.objects.filter(vector_id__isnull=True).order_by("id")
        )
        return self._generate_for(symptoms, VectorEmbeddingModel.EntityType.SYMPTOM, build_symptom_context)

    def generate_all_embeddings(self) -> dict[str, dict[str, int]]:
        """Embed every disease and symptom that has no vector yet.

        Individual failures are counted, not raised.

        Returns:
            ``{"diseases": {"generated", "failed"}, "symptoms": {...}}``
        """
        self._require_store()
        return {
            "diseases": self.generate_embeddings_for_diseases(),
            "symptoms": self.generate_embeddings_for_symptoms(),
        }

    def clear_all_embeddings(self) -> int:
        """Remove every vector and reset the catalog's ``vector_id`` fields.

        Returns:
            Number of vectors removed from the index.
        """
        store: VectorStoreService = self._require_store()
        removed: int = store.clear_all_vectors()
        try:
            SymptomModel.objects.exclude(vector_id__isnull=True).update(vector_id=None)
            DiseaseModel.objects.exclude(vector_id__isnull=True).update(vector_id=None)
        except DatabaseError as exc:
            raise EmbeddingError(
                "Failed to reset vector ids", details={"cause": str(exc)}
            ) from exc
        return removed
