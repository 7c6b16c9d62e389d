"""
diagnosis_engine/services/types.py
==================================
Request-scoped value types passed between the pipeline stages.

All of these are created and discarded within a single diagnosis
request; only :class:`DiagnosisResponse` leaves the service layer.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

PatientType = Literal["pediatric", "adult"]


@dataclass(frozen=True)
class Symptom:
    """Immutable snapshot of a catalog symptom."""

    id: int
    name: str
    description: str | None = None


@dataclass
class MatchedSymptom:
    """An extracted phrase resolved to a catalog symptom."""

    symptom_id: int
    symptom_name: str
    user_said: str
    confidence: float
    is_primary: bool | None = None
    importance: int | None = None


@dataclass
class SymptomMatch:
    """A matched symptom paired with its weight for one disease."""

    symptom_id: int
    symptom_name: str
    user_said: str
    confidence: float
    is_primary: bool
    importance: int


@dataclass
class GraphSymptom:
    id: int
    name: str
    is_primary: bool
    importance: int
    description: str | None = None


@dataclass
class GraphTreatment:
    id: int
    type: str
    name: str
    priority: int
    is_required: bool
    conditions: str | None = None


@dataclass
class GraphCriterion:
    criteria: str
    type: str
    priority: int


@dataclass
class SupportiveCareItem:
    category: str
    title: str
    description: str
    priority: int


@dataclass
class DiseaseGraphNode:
    """Denormalised view of a disease and all of its relations.

    Rebuilt from the catalog for every search; never cached.
    """

    disease_id: int
    disease_name: str
    description: str | None = None
    category: str | None = None
    symptoms: list[GraphSymptom] = field(default_factory=list)
    treatments: list[GraphTreatment] = field(default_factory=list)
    diagnostic_criteria: list[GraphCriterion] = field(default_factory=list)
    supportive_care: list[SupportiveCareItem] = field(default_factory=list)

    @property
    def primary_symptoms(self) -> list[GraphSymptom]:
        return [s for s in self.symptoms if s.is_primary]

    @property
    def positive_criteria(self) -> list[GraphCriterion]:
        return [c for c in self.diagnostic_criteria if c.type == "positive"]

    @property
    def negative_criteria(self) -> list[GraphCriterion]:
        return [c for c in self.diagnostic_criteria if c.type == "negative"]


@dataclass
class DiseaseCandidate:
    """A scored disease produced by the hybrid search."""

    disease_id: int
    vector_score: float
    graph_score: float
    combined_score: float
    negative_penalty: float
    graph_node: DiseaseGraphNode


@dataclass
class PatientInfo:
    """Patient attributes used for dosage filtering.

    Attributes:
        age: Age in years.
        weight: Weight in kg.
        type: ``"pediatric"`` or ``"adult"``.
        allergies: Free-text allergy names.
    """

    age: float
    weight: float
    type: PatientType
    allergies: list[str] = field(default_factory=list)

    @property
    def age_in_months(self) -> float:
        return self.age * 12


@dataclass
class DosageInfo:
    calculated_dose: str
    frequency: str
    duration: str
    max_single_dose: str | None = None
    max_daily_dose: str | None = None
    administration: str | None = None
    notes: str | None = None


@dataclass
class MedicationRecommendation:
    medication_id: int
    generic_name: str
    brand_names: list[str]
    type: str
    dosage: DosageInfo
    priority: int
    is_required: bool
    is_alternative: bool
    contraindications: list[str] | None = None
    warnings: list[str] | None = None


@dataclass
class ExtractedSymptoms:
    """Output of a symptom extraction strategy."""

    original_message: str
    extracted_symptoms: list[str]
    confidence: float
    unrecognized_terms: list[str] = field(default_factory=list)
    details: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class VectorSearchResult:
    id: str
    score: float
    metadata: dict[str, Any]

    @property
    def entity_type(self) -> str | None:
        return self.metadata.get("entity_type")

    @property
    def entity_id(self) -> str | None:
        value = self.metadata.get("entity_id")
        return None if value is None else str(value)


@dataclass
class DiagnosisResult:
    disease_id: int
    disease_name: str
    confidence: float
    matched_symptoms: list[MatchedSymptom]
    diagnostic_criteria: list[str]
    vector_score: float
    graph_score: float
    negative_penalty: float = 0.0
    description: str | None = None
    category: str | None = None


@dataclass
class StoreResult:
    """Outcome of persisting a query.

    ``stored`` is ``False`` when persistence failed and ``query_id`` is
    a freshly generated fallback identifier.
    """

    query_id: str
    stored: bool


@dataclass
class DiagnosisResponse:
    extracted_symptoms: list[str]
    extraction_confidence: float
    results: list[DiagnosisResult]
    recommendations: list[MedicationRecommendation]
    supportive_care: list[SupportiveCareItem]
    overall_confidence: float
    session_id: str
    timestamp: str
    explanation: str | None = None
    follow_up_questions: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape returned by the API."""
        data: dict[str, Any] = asdict(self)
        data["extracted_symptoms"] = {
            "identified": data.pop("extracted_symptoms"),
            "confidence": data.pop("extraction_confidence"),
        }
        if self.explanation is None:
            data.pop("explanation")
        if self.follow_up_questions is None:
            data.pop("follow_up_questions")
        return data
