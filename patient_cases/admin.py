"""
patient_cases/admin.py
======================
Django admin configuration for the diagnosis query log.
"""

from django.contrib import admin

from .models import QuerySymptomModel, UserQueryModel


class QuerySymptomInline(admin.TabularInline):
    """Matched symptoms shown inline on the query page."""

    model = QuerySymptomModel
    extra = 0
    readonly_fields: list[str] = ["symptom", "confidence"]
    can_delete = False


@admin.register(UserQueryModel)
class UserQueryModelAdmin(admin.ModelAdmin):
    """Admin view for :class:`UserQueryModel`."""

    list_display: list[str] = [
        "id",
        "session_id",
        "confidence",
        "created_at",
    ]
    list_filter: list[str] = ["created_at"]
    search_fields: list[str] = ["session_id", "raw_symptoms"]
    readonly_fields: list[str] = ["created_at"]
    inlines = [QuerySymptomInline]
    list_per_page: int = 25
