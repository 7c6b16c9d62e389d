"""
api/apps.py
===========
Django app configuration for the AI Doctor REST API.
"""

from django.apps import AppConfig


class ApiConfig(AppConfig):
    """Configuration for the ``api`` application (views and serializers only)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "api"
    verbose_name = "AI Doctor API"
