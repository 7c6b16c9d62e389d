"""
URL configuration for the aidoctor project.

Routes:
    /           → Service info (api app)
    /api/v1/    → REST API (api app)
    /admin/     → Django Admin
"""

from django.contrib import admin
from django.urls import include, path

from api.views import ServiceInfoAPIView

urlpatterns = [
    # Django Admin
    path("admin/", admin.site.urls),
    # REST API (DRF)
    path("api/v1/", include("api.urls", namespace="api")),
    # Service info
    path("", ServiceInfoAPIView.as_view(), name="service-info"),
]
