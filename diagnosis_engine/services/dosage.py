"""
diagnosis_engine/services/dosage.py
===================================
Patient-specific medication recommendations for a disease.

For every treatment of the disease (priority order) the dosage rules
matching the patient's type, age and weight are turned into
:class:`MedicationRecommendation` objects.  Weight-based doses such as
``"15 mg/kg"`` are resolved to absolute amounts, and a dosage whose
allergy note mentions one of the patient's allergies carries a warning
rather than being excluded.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError

from knowledge_base.models import MedicationDosageModel, TreatmentModel

from .exceptions import DatabaseAccessError
from .knowledge_base_repository import KnowledgeBaseRepository
from .types import DosageInfo, MedicationRecommendation, PatientInfo
from .utils import format_dosage

logger: logging.Logger = logging.getLogger(__name__)


def allergy_warnings(allergy_info: str, allergies: list[str]) -> list[str]:
    """Return ``["Warning: <allergy_info>"]`` when any allergy is mentioned.

    Matching is a case-insensitive substring test of each allergy
    against the dosage's allergy note.
    """
    if not allergy_info or not allergies:
        return []
    note: str = allergy_info.lower()
    if any(allergy.strip() and allergy.strip().lower() in note for allergy in allergies):
        return [f"Warning: {allergy_info}"]
    return []


class DosageService:
    """Resolves medication dosing for a patient."""

    def __init__(
        self,
        repository: KnowledgeBaseRepository | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repository: KnowledgeBaseRepository = repository or KnowledgeBaseRepository()
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def get_medication_recommendations(
        self, disease_id: int, patient: PatientInfo
    ) -> list[MedicationRecommendation]:
        """Build recommendations for *disease_id* tailored to *patient*.

        Args:
            disease_id: Catalog disease primary key.
            patient: Patient attributes (age in years, weight in kg).

        Returns:
            Recommendations with required treatments first, then by
            treatment priority ascending.  Within equal keys the
            treatment order and dosage order of the catalog are kept.

        Raises:
            DatabaseAccessError: If the catalog cannot be read.
        """
        self._logger.info(
            "getting medication recommendations for disease %s (%s patient)",
            disease_id,
            patient.type,
        )
        try:
            recommendations: list[MedicationRecommendation] = []
            for treatment in self.repository.get_treatments(disease_id):
                dosages: list[MedicationDosageModel] = self.repository.get_eligible_dosages(
                    treatment.id,
                    patient.type,
                    patient.age_in_months,
                    patient.weight,
                )
                recommendations.extend(
                    self._build_recommendation(treatment, dosage, patient) for dosage in dosages
                )
        except DatabaseError as exc:
            self._logger.exception("failed to get medication recommendations")
            raise DatabaseAccessError("Failed to get medication recommendations", exc) from exc

        recommendations.sort(key=lambda r: (not r.is_required, r.priority))
        self._logger.info("medication recommendations complete: %d", len(recommendations))
        return recommendations

    @staticmethod
    def _build_recommendation(
        treatment: TreatmentModel, dosage: MedicationDosageModel, patient: PatientInfo
    ) -> MedicationRecommendation:
        medication = dosage.medication
        warnings: list[str] = allergy_warnings(dosage.allergy_info, patient.allergies)

        return MedicationRecommendation(
            medication_id=medication.id,
            generic_name=medication.generic_name,
            brand_names=[brand.name for brand in medication.brand_names.all()],
            type=medication.type,
            dosage=DosageInfo(
                calculated_dose=format_dosage(dosage.dose, patient.weight),
                frequency=dosage.frequency,
                duration=dosage.duration,
                max_single_dose=dosage.max_single_dose or None,
                max_daily_dose=dosage.max_daily_dose or None,
                administration=dosage.administration or None,
                notes=dosage.notes or None,
            ),
            priority=treatment.priority,
            is_required=treatment.is_required,
            is_alternative=dosage.is_alternative,
            contraindications=[medication.contraindications] if medication.contraindications else None,
            warnings=warnings or None,
        )
