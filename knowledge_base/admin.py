"""
knowledge_base/admin.py
=======================
Django admin configuration for the knowledge graph catalog.

Customised DiseaseModelAdmin with:
    - Inline editing of symptom links, treatments, diagnostic criteria
      and supportive care.
    - Importance rendered as a mini bar in the symptom-link list view.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import (
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
    VectorEmbeddingModel,
)


# ─────────────────────────────────────────────────────────────────────
# Symptom Admin
# ─────────────────────────────────────────────────────────────────────


@admin.register(SymptomModel)
class SymptomModelAdmin(admin.ModelAdmin):
    """Admin view for :class:`SymptomModel`."""

    list_display: list[str] = ["name", "category", "vector_id"]
    list_filter: list[str] = ["category"]
    search_fields: list[str] = ["name", "description"]
    list_per_page: int = 25


# ─────────────────────────────────────────────────────────────────────
# Disease Admin
# ─────────────────────────────────────────────────────────────────────


class DiseaseSymptomInline(admin.TabularInline):
    model = DiseaseSymptomModel
    extra = 1
    autocomplete_fields = ["symptom"]


class TreatmentInline(admin.TabularInline):
    model = TreatmentModel
    extra = 0


class DiagnosticCriterionInline(admin.TabularInline):
    model = DiagnosticCriterionModel
    extra = 0


class SupportiveCareInline(admin.StackedInline):
    model = SupportiveCareModel
    extra = 0


@admin.register(DiseaseCategoryModel)
class DiseaseCategoryModelAdmin(admin.ModelAdmin):
    list_display: list[str] = ["name"]
    search_fields: list[str] = ["name"]


@admin.register(DiseaseModel)
class DiseaseModelAdmin(admin.ModelAdmin):
    """Admin view for :class:`DiseaseModel` with all graph relations inline."""

    list_display: list[str] = ["name", "category", "urgency_level", "vector_id"]
    list_filter: list[str] = ["urgency_level", "category"]
    search_fields: list[str] = ["name", "description"]
    inlines = [
        DiseaseSymptomInline,
        TreatmentInline,
        DiagnosticCriterionInline,
        SupportiveCareInline,
    ]
    list_per_page: int = 25


@admin.register(DiseaseSymptomModel)
class DiseaseSymptomModelAdmin(admin.ModelAdmin):
    """Admin view for disease → symptom edges."""

    list_display: list[str] = ["disease", "symptom", "is_primary", "importance_bar"]
    list_filter: list[str] = ["is_primary", "disease"]
    search_fields: list[str] = ["disease__name", "symptom__name"]
    list_per_page: int = 25

    @admin.display(description="Importance")
    def importance_bar(self, obj: DiseaseSymptomModel) -> str:
        """Render a mini progress bar for the 1–10 importance."""
        importance = obj.importance
        if importance >= 7:
            colour = "#10b981"
        elif importance >= 4:
            colour = "#f59e0b"
        else:
            colour = "#ef4444"
        return format_html(
            '<div style="display:flex; align-items:center; gap:8px;">'
            '<div style="width:80px; height:8px; background:#e2e8f0; '
            'border-radius:4px; overflow:hidden;">'
            '<div style="width:{}%; height:100%; background:{}; '
            'border-radius:4px;"></div></div>'
            '<span style="font-weight:600; font-size:0.85em;">{}</span></div>',
            importance * 10,
            colour,
            importance,
        )


# ─────────────────────────────────────────────────────────────────────
# Medication Admin
# ─────────────────────────────────────────────────────────────────────


class MedicationBrandNameInline(admin.TabularInline):
    model = MedicationBrandNameModel
    extra = 0


@admin.register(MedicationModel)
class MedicationModelAdmin(admin.ModelAdmin):
    list_display: list[str] = ["generic_name", "type"]
    search_fields: list[str] = ["generic_name", "brand_names__name"]
    inlines = [MedicationBrandNameInline]


@admin.register(MedicationDosageModel)
class MedicationDosageModelAdmin(admin.ModelAdmin):
    """Admin view for dosage rules; age bounds are in months."""

    list_display: list[str] = [
        "medication",
        "treatment",
        "patient_type",
        "dose",
        "age_min",
        "age_max",
        "weight_min",
        "weight_max",
    ]
    list_filter: list[str] = ["patient_type", "is_alternative"]
    search_fields: list[str] = ["medication__generic_name", "treatment__name"]
    list_per_page: int = 25


# ─────────────────────────────────────────────────────────────────────
# Vector registry
# ─────────────────────────────────────────────────────────────────────


@admin.register(VectorEmbeddingModel)
class VectorEmbeddingModelAdmin(admin.ModelAdmin):
    list_display: list[str] = ["vector_id", "entity_type", "entity_id", "created_at"]
    list_filter: list[str] = ["entity_type"]
    search_fields: list[str] = ["vector_id", "entity_id"]
    readonly_fields: list[str] = ["created_at"]
    exclude: list[str] = ["values"]
