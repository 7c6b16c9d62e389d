"""
Tests for the seed_data and generate_embeddings management commands.
"""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from diagnosis_engine.services.embeddings import EmbeddingsService
from diagnosis_engine.services.exceptions import EmbeddingError
from diagnosis_engine.services.types import PatientInfo
from diagnosis_engine.services.vector_store import DatabaseVectorIndex, VectorStoreService
from knowledge_base.models import (
    DiseaseModel,
    DiseaseSymptomModel,
    MedicationDosageModel,
    SymptomModel,
    VectorEmbeddingModel,
)

from .conftest import FakeEmbeddingProvider, make_service

COMMAND = "knowledge_base.management.commands.generate_embeddings.build_embeddings_service"


def _counts():
    return (
        SymptomModel.objects.count(),
        DiseaseModel.objects.count(),
        DiseaseSymptomModel.objects.count(),
        MedicationDosageModel.objects.count(),
    )


@pytest.mark.django_db
class TestSeedData:
    """Demo catalog seeding."""

    def test_seed_is_idempotent(self):
        call_command("seed_data", stdout=StringIO())
        first = _counts()
        call_command("seed_data", stdout=StringIO())

        assert _counts() == first
        assert DiseaseModel.objects.filter(name="Influenza").exists()

    def test_seeded_catalog_diagnoses_influenza(self):
        call_command("seed_data", stdout=StringIO())

        response = make_service().diagnose(
            "I have a fever, cough and muscle aches", PatientInfo(age=40, weight=80, type="adult")
        )

        assert response.results[0].disease_name == "Influenza"
        assert response.recommendations[0].generic_name == "Oseltamivir"


@pytest.mark.django_db
class TestGenerateEmbeddings:
    """Index maintenance from the command line."""

    def _service(self, provider=None):
        return EmbeddingsService(
            provider or FakeEmbeddingProvider([0.3, 0.4]),
            vector_store=VectorStoreService(DatabaseVectorIndex()),
        )

    def test_generates_and_reports(self, catalog, monkeypatch):
        monkeypatch.setattr(COMMAND, lambda: self._service())
        out = StringIO()

        call_command("generate_embeddings", stdout=out)

        output = out.getvalue()
        assert "[DISEASES] generated=2 failed=0" in output
        assert "[SYMPTOMS] generated=7 failed=0" in output
        assert VectorEmbeddingModel.objects.count() == 9

    def test_clear_flag_reembeds_everything(self, catalog, monkeypatch):
        monkeypatch.setattr(COMMAND, lambda: self._service())
        call_command("generate_embeddings", stdout=StringIO())
        out = StringIO()

        call_command("generate_embeddings", "--clear", stdout=out)

        assert "[CLEARED] 9 vectors" in out.getvalue()
        assert "[DISEASES] generated=2 failed=0" in out.getvalue()
        assert VectorEmbeddingModel.objects.count() == 9

    def test_engine_error_becomes_command_error(self, catalog, monkeypatch):
        service = self._service()

        def fail():
            raise EmbeddingError("No vector store configured")

        monkeypatch.setattr(service, "generate_all_embeddings", fail)
        monkeypatch.setattr(COMMAND, lambda: service)

        with pytest.raises(CommandError, match="EMBEDDING_ERROR"):
            call_command("generate_embeddings", stdout=StringIO())
