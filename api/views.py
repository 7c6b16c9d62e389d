"""
api/views.py
============
DRF views for the AI Doctor REST API.

Every response uses the same envelope::

    {"success": true,  "data": ...,                               "timestamp": "..."}
    {"success": false, "error": {"code", "message", "details"},   "timestamp": "..."}

Contains:
    - ServiceInfoAPIView: GET service name, version and endpoints.
    - HealthAPIView: GET database / embedding / vector index / LLM checks.
    - DiagnosisAPIView: POST endpoint running the diagnosis pipeline.
    - SymptomListAPIView: ListAPIView with category filtering and search.
    - DiseaseListAPIView: ListAPIView of the disease catalog.
    - QueryDetailAPIView: GET a stored diagnosis query.
    - EmbeddingsGenerateAPIView / EmbeddingsClearAPIView: index maintenance.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, connection
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from diagnosis_engine.services.exceptions import DiagnosisEngineError, InputValidationError
from diagnosis_engine.services.factory import (
    build_diagnosis_service,
    build_embedding_provider,
    build_embeddings_service,
    build_llm_provider,
    build_vector_index,
    get_engine_config,
)
from diagnosis_engine.services.query_log import QueryLogService
from knowledge_base.models import DiseaseModel, SymptomModel

from .serializers import (
    DiagnosisRequestSerializer,
    DiseaseSerializer,
    SymptomSerializer,
    UserQuerySerializer,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "AI Doctor Diagnosis API"
SERVICE_VERSION = "1.0.0"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data: Any, status_code: int = status.HTTP_200_OK) -> Response:
    return Response(
        {"success": True, "data": data, "timestamp": _timestamp()},
        status=status_code,
    )


def error_response(exc: DiagnosisEngineError) -> Response:
    return Response(
        {"success": False, "error": exc.to_dict(), "timestamp": _timestamp()},
        status=exc.status_code,
    )


def unexpected_error_response() -> Response:
    return error_response(DiagnosisEngineError("An unexpected error occurred."))


class EnvelopeListAPIView(generics.ListAPIView):
    """ListAPIView wrapping its results in the success envelope."""

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        return success_response(response.data)


# ─────────────────────────────────────────────────────────────────────
# Service info & health
# ─────────────────────────────────────────────────────────────────────


class ServiceInfoAPIView(APIView):
    """**GET** ``/`` returns the service name, version and endpoints."""

    def get(self, request):
        return success_response(
            {
                "name": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "endpoints": {
                    "diagnose": "POST /api/v1/diagnose/",
                    "symptoms": "GET /api/v1/symptoms/",
                    "diseases": "GET /api/v1/diseases/",
                    "query": "GET /api/v1/queries/<uuid>/",
                    "health": "GET /api/v1/health/",
                    "generate_embeddings": "POST /api/v1/embeddings/generate/",
                    "clear_embeddings": "POST /api/v1/embeddings/clear/",
                },
            }
        )


class HealthAPIView(APIView):
    """Report whether each backend is reachable or configured.

    **GET** ``/api/v1/health/``

    Answers 200 with ``"healthy"`` when every check passes, otherwise
    503 with ``"degraded"``.
    """

    def get(self, request):
        config: dict = get_engine_config()
        checks: dict[str, bool] = {}

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            checks["database"] = True
        except DatabaseError:
            logger.warning("health check: database unavailable", exc_info=True)
            checks["database"] = False

        for name, builder in (
            ("embedding", build_embedding_provider),
            ("vector_index", build_vector_index),
            ("llm", build_llm_provider),
        ):
            try:
                builder(config)
                checks[name] = True
            except (ImproperlyConfigured, ImportError) as exc:
                logger.warning("health check: %s not available: %s", name, exc)
                checks[name] = False

        healthy: bool = all(checks.values())
        return Response(
            {
                "status": "healthy" if healthy else "degraded",
                "timestamp": _timestamp(),
                "checks": checks,
            },
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )


# ─────────────────────────────────────────────────────────────────────
# Diagnosis endpoint
# ─────────────────────────────────────────────────────────────────────


class DiagnosisAPIView(APIView):
    """Run the hybrid diagnosis pipeline.

    **POST** ``/api/v1/diagnose/``

    Request body::

        {
            "message": "I have had a high fever and a dry cough for two days",
            "patient_info": {"age": 30, "weight": 70, "type": "adult", "allergies": []},
            "session_id": "optional UUID"
        }

    Returns the ranked diagnoses, medication recommendations and
    supportive care inside the success envelope.
    """

    def post(self, request):
        serializer = DiagnosisRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                InputValidationError("Invalid request", details=serializer.errors)
            )

        session_id = serializer.validated_data.get("session_id")
        try:
            service = build_diagnosis_service()
            result = service.diagnose(
                message=serializer.validated_data["message"],
                patient_info=serializer.to_patient_info(),
                session_id=str(session_id) if session_id else None,
            )
            return success_response(result.to_dict())
        except DiagnosisEngineError as exc:
            logger.warning("Diagnosis failed: %s", exc.message)
            return error_response(exc)
        except Exception:
            logger.exception("Unexpected error during API diagnosis")
            return unexpected_error_response()


# ─────────────────────────────────────────────────────────────────────
# Catalog listing
# ─────────────────────────────────────────────────────────────────────


class SymptomListAPIView(EnvelopeListAPIView):
    """List all symptoms with optional filtering.

    **Filters** (query params):
        - ``category``: exact match (e.g. ``?category=RESPIRATORY``)
        - ``search``: partial match on ``name`` and ``description``
        - ``ordering``: sort by ``name`` or ``category``
    """

    queryset = SymptomModel.objects.all()
    serializer_class = SymptomSerializer
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]
    filterset_fields = ["category"]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "category"]
    ordering = ["category", "name"]


class DiseaseListAPIView(EnvelopeListAPIView):
    """List all diseases.

    **Filters**: ``?category=<category id>``, ``?urgency_level=HIGH``,
    ``?search=`` on ``name``.
    """

    queryset = DiseaseModel.objects.select_related("category").all()
    serializer_class = DiseaseSerializer
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]
    filterset_fields = ["category", "urgency_level"]
    search_fields = ["name"]
    ordering_fields = ["name", "urgency_level"]
    ordering = ["name"]


# ─────────────────────────────────────────────────────────────────────
# Stored queries
# ─────────────────────────────────────────────────────────────────────


class QueryDetailAPIView(APIView):
    """Retrieve a stored diagnosis query.

    **GET** ``/api/v1/queries/<query_id>/``
    """

    def get(self, request, query_id):
        try:
            query = QueryLogService().get_query(query_id)
            return success_response(UserQuerySerializer(query).data)
        except DiagnosisEngineError as exc:
            logger.warning("Query retrieval failed: %s", exc.message)
            return error_response(exc)
        except Exception:
            logger.exception("Unexpected error retrieving query")
            return unexpected_error_response()


# ─────────────────────────────────────────────────────────────────────
# Embedding maintenance
# ─────────────────────────────────────────────────────────────────────


class EmbeddingsGenerateAPIView(APIView):
    """Embed every disease and symptom that has no vector yet.

    **POST** ``/api/v1/embeddings/generate/``
    """

    def post(self, request):
        logger.info("batch embedding generation requested")
        try:
            result = build_embeddings_service().generate_all_embeddings()
            return success_response({"generated": result})
        except DiagnosisEngineError as exc:
            logger.warning("Embedding generation failed: %s", exc.message)
            return error_response(exc)
        except Exception:
            logger.exception("Unexpected error generating embeddings")
            return unexpected_error_response()


class EmbeddingsClearAPIView(APIView):
    """Delete every vector and reset the catalog's vector IDs.

    **POST** ``/api/v1/embeddings/clear/``
    """

    def post(self, request):
        logger.info("embedding clear requested")
        try:
            removed: int = build_embeddings_service().clear_all_embeddings()
            return success_response({"removed": removed})
        except DiagnosisEngineError as exc:
            logger.warning("Embedding clear failed: %s", exc.message)
            return error_response(exc)
        except Exception:
            logger.exception("Unexpected error clearing embeddings")
            return unexpected_error_response()
