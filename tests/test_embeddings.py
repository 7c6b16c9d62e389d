"""
Tests for embedding generation, context texts and index maintenance.
"""

from unittest import mock

import pytest
import requests

from diagnosis_engine.services.embeddings import (
    EmbeddingsService,
    OllamaEmbeddingProvider,
    build_disease_context,
    build_symptom_context,
)
from diagnosis_engine.services.exceptions import EmbeddingError
from diagnosis_engine.services.vector_store import DatabaseVectorIndex, VectorStoreService
from knowledge_base.models import DiseaseModel, SymptomModel, VectorEmbeddingModel

from .conftest import FakeEmbeddingProvider


class TestGenerateEmbeddingForText:
    """Provider output validation."""

    def test_returns_provider_vector(self):
        assert EmbeddingsService(FakeEmbeddingProvider([0.5, 0.5])).generate_embedding_for_text(
            "fever"
        ) == [0.5, 0.5]

    def test_provider_failure(self):
        service = EmbeddingsService(FakeEmbeddingProvider(error=RuntimeError("offline")))
        with pytest.raises(EmbeddingError, match="Failed to generate embedding") as exc_info:
            service.generate_embedding_for_text("fever")
        assert exc_info.value.details == {"cause": "offline"}

    def test_empty_vector(self):
        with pytest.raises(EmbeddingError, match="No embedding"):
            EmbeddingsService(FakeEmbeddingProvider([])).generate_embedding_for_text("fever")

    def test_dimension_check(self):
        service = EmbeddingsService(FakeEmbeddingProvider([0.1, 0.2, 0.3]), dimensions=2)
        with pytest.raises(EmbeddingError, match="unexpected dimensions"):
            service.generate_embedding_for_text("fever")


class TestOllamaEmbeddingProvider:
    def test_posts_model_and_prompt(self):
        response = mock.Mock()
        response.json.return_value = {"embedding": [0.1, 0.2]}
        with mock.patch(
            "diagnosis_engine.services.embeddings.requests.post", return_value=response
        ) as post:
            vector = OllamaEmbeddingProvider("http://ollama:11434/", "nomic-embed-text").embed("fever")

        assert vector == [0.1, 0.2]
        post.assert_called_once_with(
            "http://ollama:11434/api/embeddings",
            json={"model": "nomic-embed-text", "prompt": "fever"},
            timeout=30.0,
        )

    def test_http_error_propagates_to_service_as_embedding_error(self):
        response = mock.Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503")
        with mock.patch("diagnosis_engine.services.embeddings.requests.post", return_value=response):
            service = EmbeddingsService(OllamaEmbeddingProvider("http://ollama", "m"))
            with pytest.raises(EmbeddingError):
                service.generate_embedding_for_text("fever")


@pytest.mark.django_db
class TestContextBuilders:
    """Rich entity descriptions used as embedding input."""

    def test_disease_context(self, catalog):
        text = build_disease_context(catalog.influenza)

        assert text.startswith("Disease: Influenza. Category: Respiratory Infections")
        assert (
            "Primary symptoms: Fever (importance: 9), Muscle Aches (importance: 8), "
            "Cough (importance: 7)"
        ) in text
        assert "Other symptoms: Headache" in text
        assert "Diagnostic criteria: Sudden onset of fever" in text
        assert "Treatment types: medication" in text
        assert "Medications: Oseltamivir (antiviral), Paracetamol (analgesic)" in text

    def test_symptom_context(self, catalog):
        text = build_symptom_context(catalog.symptoms["Cough"])
        assert text == (
            "Symptom: Cough. Description: Cough description. "
            "Primary symptom of: Influenza. Secondary symptom of: Common Cold"
        )

    def test_unlinked_symptom_uses_plain_context(self, catalog):
        assert build_symptom_context(catalog.symptoms["Itching"]) == "Itching: Itching description"


@pytest.mark.django_db
class TestIndexMaintenance:
    """Batch generation and clearing against the database index."""

    def _service(self, provider=None):
        return EmbeddingsService(
            provider or FakeEmbeddingProvider([1.0, 0.0]),
            vector_store=VectorStoreService(DatabaseVectorIndex()),
        )

    def test_generate_all_counts_failures(self, catalog):
        result = self._service(FakeEmbeddingProvider(fail_on="Itching")).generate_all_embeddings()

        assert result == {
            "diseases": {"generated": 2, "failed": 0},
            "symptoms": {"generated": 6, "failed": 1},
        }
        influenza = DiseaseModel.objects.get(pk=catalog.influenza.id)
        assert influenza.vector_id.startswith(f"disease-{influenza.id}-")
        assert SymptomModel.objects.get(name="Itching").vector_id is None

        row = VectorEmbeddingModel.objects.get(vector_id=influenza.vector_id)
        assert row.entity_type == "disease"
        assert row.entity_id == str(influenza.id)
        assert row.values == [1.0, 0.0]
        assert row.metadata["name"] == "Influenza"

    def test_generation_only_embeds_missing_entities(self, catalog):
        self._service(FakeEmbeddingProvider(fail_on="Itching")).generate_all_embeddings()
        provider = FakeEmbeddingProvider([1.0, 0.0])

        result = self._service(provider).generate_all_embeddings()

        assert result == {
            "diseases": {"generated": 0, "failed": 0},
            "symptoms": {"generated": 1, "failed": 0},
        }
        assert provider.texts == ["Itching: Itching description"]

    def test_clear_all_embeddings(self, catalog):
        service = self._service()
        service.generate_all_embeddings()

        assert service.clear_all_embeddings() == 9
        assert not VectorEmbeddingModel.objects.exists()
        assert not DiseaseModel.objects.filter(vector_id__isnull=False).exists()
        assert not SymptomModel.objects.filter(vector_id__isnull=False).exists()

    def test_maintenance_requires_vector_store(self, catalog):
        with pytest.raises(EmbeddingError, match="No vector store"):
            EmbeddingsService(FakeEmbeddingProvider()).generate_all_embeddings()
