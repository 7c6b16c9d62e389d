"""
diagnosis_engine/services/knowledge_base_repository.py
======================================================
Repository layer providing read access to the knowledge graph catalog.

All catalog queries for symptoms, diseases, treatments, dosage rules,
diagnostic criteria and supportive care are centralised here so
service classes never build querysets themselves.

Nothing is cached between calls: every diagnosis reads the catalog as
it is at request time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from django.db import DatabaseError
from django.db.models import Prefetch, Q, QuerySet

from knowledge_base.models import (
    DiagnosticCriterionModel,
    DiseaseModel,
    DiseaseSymptomModel,
    MedicationDosageModel,
    SupportiveCareModel,
    SymptomModel,
    TreatmentModel,
)

from .exceptions import DatabaseAccessError
from .types import Symptom

logger: logging.Logger = logging.getLogger(__name__)


class KnowledgeBaseRepository:
    """Centralised, read-only access to the catalog.

    Every public method converts Django ``DatabaseError`` into
    :class:`DatabaseAccessError` so callers only deal with the
    engine's own exception hierarchy.
    """

    # ------------------------------------------------------------------
    # Symptoms
    # ------------------------------------------------------------------
    def get_symptom_catalog(self) -> list[Symptom]:
        """Return an immutable snapshot of every catalog symptom."""
        try:
            return [
                Symptom(id=s.id, name=s.name, description=s.description or None)
                for s in SymptomModel.objects.only("id", "name", "description")
            ]
        except DatabaseError as exc:
            logger.exception("failed to load symptom catalog")
            raise DatabaseAccessError("Failed to load symptom catalog", exc) from exc

    def get_disease_ids_for_symptoms(self, symptom_ids: Iterable[int]) -> list[int]:
        """Return IDs of diseases linked to any of *symptom_ids*.

        Args:
            symptom_ids: Catalog symptom primary keys.

        Returns:
            Distinct disease IDs in ascending order.
        """
        ids: list[int] = list(symptom_ids)
        if not ids:
            return []
        try:
            return list(
                DiseaseSymptomModel.objects
                .filter(symptom_id__in=ids)
                .order_by("disease_id")
                .values_list("disease_id", flat=True)
                .distinct()
            )
        except DatabaseError as exc:
            logger.exception("failed to load diseases for symptoms %s", ids)
            raise DatabaseAccessError(
                "Failed to get diseases for symptoms", exc
            ) from exc

    # ------------------------------------------------------------------
    # Diseases
    # ------------------------------------------------------------------
    def get_diseases_with_relations(
        self, disease_ids: Iterable[int]
    ) -> dict[int, DiseaseModel]:
        """Load diseases with every graph relation prefetched and ordered.

        Symptom links are ordered by importance descending; treatments,
        criteria and supportive care by priority ascending.

        Returns:
            Mapping of disease ID to model instance.  IDs that do not
            exist are simply absent.
        """
        ids: list[int] = list(disease_ids)
        if not ids:
            return {}

        queryset: QuerySet[DiseaseModel] = (
            DiseaseModel.objects
            .filter(id__in=ids)
            .select_related("category")
            .prefetch_related(
                Prefetch(
                    "symptom_links",
                    queryset=DiseaseSymptomModel.objects
                    .select_related("symptom")
                    .order_by("-importance", "id"),
                ),
                Prefetch(
                    "treatments",
                    queryset=TreatmentModel.objects.order_by("priority", "id"),
                ),
                Prefetch(
                    "diagnostic_criteria",
                    queryset=DiagnosticCriterionModel.objects.order_by("priority", "id"),
                ),
                Prefetch(
                    "supportive_care",
                    queryset=SupportiveCareModel.objects.order_by("priority", "id"),
                ),
            )
        )
        try:
            return {disease.id: disease for disease in queryset}
        except DatabaseError as exc:
            logger.exception("failed to load disease graph for %s", ids)
            raise DatabaseAccessError("Failed to traverse disease graph", exc) from exc

    def get_all_diseases(self) -> QuerySet[DiseaseModel]:
        return DiseaseModel.objects.select_related("category").all()

    def get_negative_criteria(self, disease_id: int) -> list[DiagnosticCriterionModel]:
        """Return the negative diagnostic criteria of a disease by priority."""
        try:
            return list(
                DiagnosticCriterionModel.objects
                .filter(disease_id=disease_id, type=DiagnosticCriterionModel.CriterionType.NEGATIVE)
                .order_by("priority", "id")
            )
        except DatabaseError as exc:
            logger.exception("failed to load negative criteria for disease %s", disease_id)
            raise DatabaseAccessError(
                "Failed to load negative diagnostic criteria", exc
            ) from exc

    # ------------------------------------------------------------------
    # Treatments & dosages
    # ------------------------------------------------------------------
    def get_treatments(self, disease_id: int) -> list[TreatmentModel]:
        return list(
            TreatmentModel.objects.filter(disease_id=disease_id).order_by("priority", "id")
        )

    def get_eligible_dosages(
        self,
        treatment_id: int,
        patient_type: str,
        age_in_months: float,
        weight: float,
    ) -> list[MedicationDosageModel]:
        """Return dosage rules of a treatment that apply to the patient.

        A rule applies when its ``patient_type`` matches exactly and the
        patient's age (months) and weight (kg) fall inside the rule's
        bounds.  ``NULL`` bounds are unbounded on that side.
        """
        return list(
            MedicationDosageModel.objects
            .filter(treatment_id=treatment_id, patient_type=patient_type)
            .filter(Q(age_min__isnull=True) | Q(age_min__lte=age_in_months))
            .filter(Q(age_max__isnull=True) | Q(age_max__gte=age_in_months))
            .filter(Q(weight_min__isnull=True) | Q(weight_min__lte=weight))
            .filter(Q(weight_max__isnull=True) | Q(weight_max__gte=weight))
            .select_related("medication")
            .prefetch_related("medication__brand_names")
            .order_by("id")
        )

    # ------------------------------------------------------------------
    # Supportive care
    # ------------------------------------------------------------------
    def get_supportive_care(
        self, disease_ids: Iterable[int]
    ) -> QuerySet[SupportiveCareModel]:
        return SupportiveCareModel.objects.filter(
            disease_id__in=list(disease_ids)
        ).order_by("priority", "id")
