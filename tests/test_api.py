"""
Tests for the REST API endpoints and their response envelope.
"""

import uuid

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from diagnosis_engine.services.embeddings import EmbeddingsService
from diagnosis_engine.services.vector_store import DatabaseVectorIndex, VectorStoreService

from .conftest import FakeEmbeddingProvider, make_service

PATIENT = {"age": 30, "weight": 70, "type": "adult", "allergies": []}
FLU_MESSAGE = "I have a fever, cough and muscle aches since yesterday"


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def engine(monkeypatch):
    monkeypatch.setattr("api.views.build_diagnosis_service", lambda: make_service())


@pytest.fixture
def embeddings(monkeypatch):
    service = EmbeddingsService(
        FakeEmbeddingProvider([1.0, 0.0]), vector_store=VectorStoreService(DatabaseVectorIndex())
    )
    monkeypatch.setattr("api.views.build_embeddings_service", lambda: service)
    return service


@pytest.mark.django_db
class TestDiagnoseEndpoint:
    """POST /api/v1/diagnose/"""

    url = "/api/v1/diagnose/"

    def test_success_envelope(self, client, catalog, engine):
        response = client.post(self.url, {"message": FLU_MESSAGE, "patient_info": PATIENT}, format="json")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "timestamp" in body
        data = body["data"]
        assert data["extracted_symptoms"]["identified"] == ["Fever", "Cough", "Muscle Aches"]
        assert data["results"][0]["disease_name"] == "Influenza"
        assert [r["generic_name"] for r in data["recommendations"]] == ["Oseltamivir", "Paracetamol"]
        uuid.UUID(data["session_id"])

    def test_stored_query_is_retrievable(self, client, catalog, engine):
        data = client.post(
            self.url, {"message": FLU_MESSAGE, "patient_info": PATIENT}, format="json"
        ).json()["data"]

        response = client.get(reverse("api:query-detail", args=[data["session_id"]]))

        assert response.status_code == 200
        query = response.json()["data"]
        assert query["raw_symptoms"] == FLU_MESSAGE
        assert {s["symptom_name"] for s in query["matched_symptoms"]} == {
            "Fever",
            "Cough",
            "Muscle Aches",
        }

    def test_session_id_is_echoed(self, client, catalog, engine):
        session = str(uuid.uuid4())
        response = client.post(
            self.url,
            {"message": FLU_MESSAGE, "patient_info": PATIENT, "session_id": session},
            format="json",
        )
        assert response.json()["data"]["session_id"] == session

    @pytest.mark.parametrize(
        "payload, field",
        [
            ({"message": "short", "patient_info": PATIENT}, "message"),
            ({"message": "x" * 1001, "patient_info": PATIENT}, "message"),
            ({"message": FLU_MESSAGE, "patient_info": {**PATIENT, "weight": 0}}, "patient_info"),
            ({"message": FLU_MESSAGE, "patient_info": {**PATIENT, "age": 151}}, "patient_info"),
            ({"message": FLU_MESSAGE, "patient_info": {**PATIENT, "type": "senior"}}, "patient_info"),
            ({"message": FLU_MESSAGE, "patient_info": PATIENT, "session_id": "nope"}, "session_id"),
            ({"message": FLU_MESSAGE}, "patient_info"),
        ],
    )
    def test_validation_errors(self, client, catalog, engine, payload, field):
        response = client.post(self.url, payload, format="json")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert field in error["details"]

    def test_no_diagnosis_is_unprocessable(self, client, catalog, engine):
        response = client.post(
            self.url, {"message": "my elbow feels strange today", "patient_info": PATIENT}, format="json"
        )

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "DIAGNOSIS_ERROR"

    def test_unexpected_error(self, client, catalog, monkeypatch):
        def broken():
            raise RuntimeError("wiring bug")

        monkeypatch.setattr("api.views.build_diagnosis_service", broken)
        response = client.post(self.url, {"message": FLU_MESSAGE, "patient_info": PATIENT}, format="json")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "wiring bug" not in response.content.decode()


@pytest.mark.django_db
class TestCatalogEndpoints:
    """Symptom and disease listings."""

    def test_symptom_search(self, client, catalog):
        response = client.get(reverse("api:symptom-list"), {"search": "nose"})
        assert response.status_code == 200
        assert [s["name"] for s in response.json()["data"]] == ["Runny Nose"]

    def test_symptom_category_filter(self, client, catalog):
        response = client.get(reverse("api:symptom-list"), {"category": "RESPIRATORY"})
        assert response.json()["data"] == []

    def test_disease_list(self, client, catalog):
        data = client.get(reverse("api:disease-list")).json()["data"]

        assert [d["name"] for d in data] == ["Common Cold", "Influenza"]
        assert data[0]["category"] == "Respiratory Infections"
        assert data[0]["urgency_display"] == "Low"

    def test_unknown_query(self, client, catalog):
        response = client.get(reverse("api:query-detail", args=[uuid.uuid4()]))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.django_db
class TestServiceEndpoints:
    """Service info, health and embedding maintenance."""

    def test_service_info(self, client):
        body = client.get(reverse("service-info")).json()
        assert body["data"]["name"] == "AI Doctor Diagnosis API"
        assert body["data"]["endpoints"]["diagnose"] == "POST /api/v1/diagnose/"

    def test_health(self, client, settings):
        settings.DIAGNOSIS_ENGINE = {"EMBEDDING_PROVIDER": "ollama", "VECTOR_INDEX": "database", "LLM_PROVIDER": ""}
        response = client.get(reverse("api:health"))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"] == {"database": True, "embedding": True, "vector_index": True, "llm": True}

    def test_degraded_health(self, client, settings):
        settings.DIAGNOSIS_ENGINE = {"VECTOR_INDEX": "pinecone", "PINECONE_API_KEY": "", "LLM_PROVIDER": ""}
        response = client.get(reverse("api:health"))

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["vector_index"] is False

    def test_generate_and_clear_embeddings(self, client, catalog, embeddings):
        response = client.post(reverse("api:embeddings-generate"))
        assert response.status_code == 200
        assert response.json()["data"]["generated"] == {
            "diseases": {"generated": 2, "failed": 0},
            "symptoms": {"generated": 7, "failed": 0},
        }

        response = client.post(reverse("api:embeddings-clear"))
        assert response.status_code == 200
        assert response.json()["data"] == {"removed": 9}
