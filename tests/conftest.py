"""
tests/conftest.py
=================
Shared fixtures: a small influenza / common-cold catalog and in-memory
stand-ins for the embedding provider, vector index and LLM provider.
"""

from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace

import pytest

from diagnosis_engine.services.diagnosis_service import DiagnosisService
from diagnosis_engine.services.dosage import DosageService
from diagnosis_engine.services.embeddings import EmbeddingProvider, EmbeddingsService
from diagnosis_engine.services.extraction import KeywordExtractionStrategy
from diagnosis_engine.services.graph import GraphService
from diagnosis_engine.services.llm import LLMProvider, LLMService
from diagnosis_engine.services.query_log import QueryLogService
from diagnosis_engine.services.search import SearchService
from diagnosis_engine.services.symptom_matcher import SymptomMatcher
from diagnosis_engine.services.types import VectorSearchResult
from diagnosis_engine.services.vector_store import VectorIndex, VectorStoreService
from knowledge_base.models import (
    DiagnosticCriterionModel,
    DiseaseCategoryModel,
    DiseaseModel,
    DiseaseSymptomModel,
    MedicationBrandNameModel,
    MedicationDosageModel,
    MedicationModel,
    SupportiveCareModel,
    SymptomModel,
    TreatmentModel,
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(EmbeddingProvider):
    name = "fake"

    def __init__(self, vector: list[float] | None = None, error: Exception | None = None,
                 fail_on: str | None = None) -> None:
        self.vector = vector if vector is not None else [0.1, 0.2, 0.3]
        self.error = error
        self.fail_on = fail_on
        self.texts: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        if self.fail_on and self.fail_on in text:
            raise RuntimeError(f"cannot embed {self.fail_on}")
        return list(self.vector)


class FakeVectorIndex(VectorIndex):
    def __init__(self, hits: list[VectorSearchResult] | None = None,
                 error: Exception | None = None) -> None:
        self.hits = hits or []
        self.error = error
        self.queries: list[tuple[list[float], int]] = []
        self.upserts: dict[str, tuple[list[float], dict]] = {}
        self.deleted: list[str] = []

    def search(self, vector, top_k):
        self.queries.append((list(vector), top_k))
        if self.error is not None:
            raise self.error
        return self.hits[:top_k]

    def upsert(self, vector_id, values, metadata):
        if self.error is not None:
            raise self.error
        self.upserts[vector_id] = (list(values), metadata)

    def delete(self, vector_ids):
        if self.error is not None:
            raise self.error
        self.deleted.extend(vector_ids)


class FakeLLMProvider(LLMProvider):
    name = "fake"

    def __init__(self, respond: Callable[[str], str] | None = None,
                 error: Exception | None = None) -> None:
        super().__init__(max_retries=1, retry_delay=0)
        self.respond = respond or (lambda prompt: "")
        self.error = error
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.respond(prompt)

    def _url(self) -> str:
        return "http://fake"

    def _payload(self, prompt):
        return {}

    def _extract_text(self, data):
        return ""


def disease_hit(disease_id: int, score: float) -> VectorSearchResult:
    return VectorSearchResult(
        id=f"disease-{disease_id}",
        score=score,
        metadata={"entity_type": "disease", "entity_id": str(disease_id)},
    )


def symptom_hit(symptom_id: int, score: float) -> VectorSearchResult:
    return VectorSearchResult(
        id=f"symptom-{symptom_id}",
        score=score,
        metadata={"entity_type": "symptom", "entity_id": str(symptom_id)},
    )


def make_service(
    hits: list[VectorSearchResult] | None = None,
    llm_provider: LLMProvider | None = None,
    max_workers: int = 1,
) -> DiagnosisService:
    """Diagnosis service over the test database with fake collaborators."""
    embeddings = EmbeddingsService(FakeEmbeddingProvider())
    store = VectorStoreService(FakeVectorIndex(hits))
    return DiagnosisService(
        strategy=KeywordExtractionStrategy(),
        matcher=SymptomMatcher(),
        search_service=SearchService(embeddings, store, GraphService()),
        dosage_service=DosageService(),
        query_log=QueryLogService(),
        llm_service=LLMService(llm_provider) if llm_provider is not None else None,
        max_workers=max_workers,
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog(db) -> SimpleNamespace:
    """Influenza and common cold with treatments, dosages and care items.

    Influenza: Fever (P, 9), Muscle Aches (P, 8), Cough (P, 7), Headache (S, 5)
    Common Cold: Runny Nose (P, 9), Sneezing (P, 8), Cough (S, 5), Headache (S, 3)
    """
    names = ["Fever", "Cough", "Headache", "Runny Nose", "Sneezing", "Muscle Aches", "Itching"]
    s = {name: SymptomModel.objects.create(name=name, description=f"{name} description")
         for name in names}

    respiratory = DiseaseCategoryModel.objects.create(name="Respiratory Infections")
    influenza = DiseaseModel.objects.create(
        name="Influenza", description="Viral flu", category=respiratory, urgency_level="MEDIUM"
    )
    cold = DiseaseModel.objects.create(
        name="Common Cold", description="Mild viral infection", category=respiratory,
        urgency_level="LOW",
    )

    for disease, links in (
        (influenza, [("Fever", True, 9), ("Muscle Aches", True, 8), ("Cough", True, 7),
                     ("Headache", False, 5)]),
        (cold, [("Runny Nose", True, 9), ("Sneezing", True, 8), ("Cough", False, 5),
                ("Headache", False, 3)]),
    ):
        for name, is_primary, importance in links:
            DiseaseSymptomModel.objects.create(
                disease=disease, symptom=s[name], is_primary=is_primary, importance=importance
            )

    DiagnosticCriterionModel.objects.create(
        disease=influenza, criteria="Sudden onset of fever", type="positive", priority=1
    )
    DiagnosticCriterionModel.objects.create(
        disease=cold, criteria="Gradual nasal onset", type="positive", priority=1
    )
    DiagnosticCriterionModel.objects.create(
        disease=cold, criteria="High fever", type="negative", priority=1
    )

    paracetamol = MedicationModel.objects.create(
        generic_name="Paracetamol", type="analgesic", contraindications="Severe liver disease"
    )
    MedicationBrandNameModel.objects.create(medication=paracetamol, name="Tylenol")
    MedicationBrandNameModel.objects.create(medication=paracetamol, name="Panadol")
    oseltamivir = MedicationModel.objects.create(generic_name="Oseltamivir", type="antiviral")

    antiviral = TreatmentModel.objects.create(
        disease=influenza, type="medication", name="Antiviral", priority=1, is_required=True
    )
    flu_relief = TreatmentModel.objects.create(
        disease=influenza, type="medication", name="Fever relief", priority=2, is_required=False
    )
    cold_relief = TreatmentModel.objects.create(
        disease=cold, type="medication", name="Symptom relief", priority=1, is_required=False
    )

    MedicationDosageModel.objects.create(
        treatment=antiviral, medication=oseltamivir, patient_type="adult", age_min=156,
        dose="75 mg", frequency="twice daily", duration="5 days",
    )
    MedicationDosageModel.objects.create(
        treatment=flu_relief, medication=paracetamol, patient_type="adult", age_min=216,
        dose="500 mg", frequency="every 6 hours", duration="as needed",
        max_daily_dose="4000 mg",
    )
    MedicationDosageModel.objects.create(
        treatment=flu_relief, medication=paracetamol, patient_type="pediatric",
        weight_min=5, weight_max=40,
        dose="15 mg/kg", frequency="every 6 hours", duration="as needed",
        allergy_info="Avoid with acetaminophen allergy",
    )
    MedicationDosageModel.objects.create(
        treatment=cold_relief, medication=paracetamol, patient_type="adult",
        dose="1 g", frequency="every 6 hours", duration="as needed",
    )

    SupportiveCareModel.objects.create(
        disease=influenza, category="rest", title="Get rest", description="Stay home.", priority=1
    )
    SupportiveCareModel.objects.create(
        disease=influenza, category="hydration", title="Drink fluids",
        description="Drink water.", priority=2,
    )
    SupportiveCareModel.objects.create(
        disease=cold, category="hydration", title="Drink fluids",
        description="Drink warm tea.", priority=1,
    )

    return SimpleNamespace(
        symptoms=s,
        influenza=influenza,
        cold=cold,
        paracetamol=paracetamol,
        oseltamivir=oseltamivir,
    )
