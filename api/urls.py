"""
api/urls.py
===========
URL configuration for the AI Doctor REST API.

All endpoints are prefixed with ``/api/v1/`` by the project-level router.
"""

from django.urls import path

from . import views

app_name = "api"

urlpatterns = [
    path(
        "diagnose/",
        views.DiagnosisAPIView.as_view(),
        name="diagnose",
    ),
    path(
        "symptoms/",
        views.SymptomListAPIView.as_view(),
        name="symptom-list",
    ),
    path(
        "diseases/",
        views.DiseaseListAPIView.as_view(),
        name="disease-list",
    ),
    path(
        "queries/<uuid:query_id>/",
        views.QueryDetailAPIView.as_view(),
        name="query-detail",
    ),
    path(
        "health/",
        views.HealthAPIView.as_view(),
        name="health",
    ),
    path(
        "embeddings/generate/",
        views.EmbeddingsGenerateAPIView.as_view(),
        name="embeddings-generate",
    ),
    path(
        "embeddings/clear/",
        views.EmbeddingsClearAPIView.as_view(),
        name="embeddings-clear",
    ),
]
