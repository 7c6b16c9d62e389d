"""
knowledge_base/apps.py
======================
Django app configuration for the medical knowledge graph catalog.
"""

from django.apps import AppConfig


class KnowledgeBaseConfig(AppConfig):
    """Configuration for the ``knowledge_base`` application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "knowledge_base"
    verbose_name = "Knowledge Base"
