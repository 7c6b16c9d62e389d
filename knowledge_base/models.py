"""
knowledge_base/models.py
========================
Catalog models for the medical knowledge graph.

Contains:
    - SymptomModel: Catalog symptom referenced by ID everywhere else.
    - DiseaseCategoryModel: Grouping for diseases (e.g. "Respiratory").
    - DiseaseModel: A diagnosable condition.
    - DiseaseSymptomModel: Weighted disease → symptom edge (primary flag,
      importance 1–10).
    - TreatmentModel: Ordered treatment protocol entries for a disease.
    - MedicationModel / MedicationBrandNameModel: Medication catalog.
    - MedicationDosageModel: Patient-type / age / weight specific dosage rules.
    - DiagnosticCriterionModel: Positive / negative diagnostic statements.
    - SupportiveCareModel: Non-pharmacological care advice.
    - VectorEmbeddingModel: Registry of vectors pushed to the vector index.
"""

from __future__ import annotations

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class SymptomModel(models.Model):
    """A single catalog symptom.

    Attributes:
        name: Unique human-readable symptom name (e.g. "Sore Throat").
        description: Optional clinical description, used for embeddings
            and as LLM extraction context.
        category: Broad category drawn from ``Category``.
        vector_id: ID of the vector stored for this symptom, if any.
    """

    class Category(models.TextChoices):
        """Allowed symptom categories."""

        GENERAL = "GENERAL", "General"
        RESPIRATORY = "RESPIRATORY", "Respiratory"
        DIGESTIVE = "DIGESTIVE", "Digestive"
        NEUROLOGICAL = "NEUROLOGICAL", "Neurological"
        DERMATOLOGICAL = "DERMATOLOGICAL", "Dermatological"
        MUSCULOSKELETAL = "MUSCULOSKELETAL", "Musculoskeletal"

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------
    name: str = models.CharField(
        max_length=200,
        unique=True,
        help_text="Unique symptom name.",
    )
    description: str = models.TextField(
        blank=True,
        default="",
        help_text="Optional clinical description of the symptom.",
    )
    category: str = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.GENERAL,
        help_text="Broad medical category this symptom belongs to.",
    )
    vector_id: str | None = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Vector index ID once an embedding has been generated.",
    )

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------
    class Meta:
        ordering: list[str] = ["name"]
        verbose_name: str = "Symptom"
        verbose_name_plural: str = "Symptoms"

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------
    def __str__(self) -> str:
        return f"{self.name} ({self.get_category_display()})"


class DiseaseCategoryModel(models.Model):
    """Grouping label for diseases."""

    name: str = models.CharField(max_length=100, unique=True)
    description: str = models.TextField(blank=True, default="")

    class Meta:
        ordering: list[str] = ["name"]
        verbose_name: str = "Disease Category"
        verbose_name_plural: str = "Disease Categories"

    def __str__(self) -> str:
        return self.name


class DiseaseModel(models.Model):
    """A disease / condition that the system can diagnose.

    Attributes:
        name: Unique disease name.
        description: Clinical description.
        category: Optional :class:`DiseaseCategoryModel`.
        urgency_level: Clinical urgency drawn from ``UrgencyLevel``.
        vector_id: ID of the vector stored for this disease, if any.
    """

    class UrgencyLevel(models.TextChoices):
        """Allowed urgency levels."""

        LOW = "LOW", "Low"
        MEDIUM = "MEDIUM", "Medium"
        HIGH = "HIGH", "High"

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------
    name: str = models.CharField(
        max_length=200,
        unique=True,
        help_text="Unique disease name.",
    )
    description: str = models.TextField(
        blank=True,
        default="",
        help_text="Clinical description of the disease.",
    )
    category: models.ForeignKey = models.ForeignKey(
        DiseaseCategoryModel,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="diseases",
        help_text="Category this disease belongs to.",
    )
    urgency_level: str = models.CharField(
        max_length=10,
        choices=UrgencyLevel.choices,
        default=UrgencyLevel.MEDIUM,
        help_text="Clinical urgency level.",
    )
    vector_id: str | None = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Vector index ID once an embedding has been generated.",
    )

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------
    class Meta:
        ordering: list[str] = ["name"]
        verbose_name: str = "Disease"
        verbose_name_plural: str = "Diseases"

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------
    def __str__(self) -> str:
        return f"{self.name} (Urgency: {self.get_urgency_level_display()})"


class DiseaseSymptomModel(models.Model):
    """Weighted edge between a disease and one of its symptoms.

    Attributes:
        disease: Owning disease.
        symptom: Linked catalog symptom.
        is_primary: Whether the symptom is diagnostically central.
        importance: Relative importance on a 1–10 scale.
        description: Optional disease-specific note about the symptom.
    """

    disease: models.ForeignKey = models.ForeignKey(
        DiseaseModel,
        on_delete=models.CASCADE,
        related_name="symptom_links",
    )
    symptom: models.ForeignKey = models.ForeignKey(
        SymptomModel,
        on_delete=models.CASCADE,
        related_name="disease_links",
    )
    is_primary: bool = models.BooleanField(
        default=False,
        help_text="Primary symptoms weigh 0.7 in scoring, secondary 0.3.",
    )
    importance: int = models.PositiveSmallIntegerField(
        default=5,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
        help_text="Importance of this symptom for the disease (1–10).",
    )
    description: str = models.TextField(blank=True, default="")

    class Meta:
        unique_together: list[list[str]] = [["disease", "symptom"]]
        ordering: list[str] = ["-importance", "id"]
        verbose_name: str = "Disease Symptom"
        verbose_name_plural: str = "Disease Symptoms"

    def __str__(self) -> str:
        kind = "primary" if self.is_primary else "secondary"
        return f"{self.disease.name} → {self.symptom.name} ({kind}, {self.importance})"


class TreatmentModel(models.Model):
    """One entry of a disease's treatment protocol.

    Lower ``priority`` values are more important.
    """

    class TreatmentType(models.TextChoices):
        """Allowed treatment types."""

        MEDICATION = "medication", "Medication"
        PROCEDURE = "procedure", "Procedure"
        LIFESTYLE = "lifestyle", "Lifestyle"

    disease: models.ForeignKey = models.ForeignKey(
        DiseaseModel,
        on_delete=models.CASCADE,
        related_name="treatments",
    )
    type: str = models.CharField(
        max_length=20,
        choices=TreatmentType.choices,
        default=TreatmentType.MEDICATION,
    )
    name: str = models.CharField(max_length=200)
    priority: int = models.PositiveSmallIntegerField(default=1)
    is_required: bool = models.BooleanField(default=False)
    conditions: str = models.TextField(
        blank=True,
        default="",
        help_text="Free-text conditions under which this treatment applies.",
    )

    class Meta:
        ordering: list[str] = ["priority", "id"]
        verbose_name: str = "Treatment"
        verbose_name_plural: str = "Treatments"

    def __str__(self) -> str:
        return f"{self.disease.name}: {self.name} (priority {self.priority})"


class MedicationModel(models.Model):
    """A medication referenced by dosage rules."""

    generic_name: str = models.CharField(max_length=200, unique=True)
    type: str = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Pharmacological class, e.g. 'analgesic'.",
    )
    contraindications: str = models.TextField(blank=True, default="")

    class Meta:
        ordering: list[str] = ["generic_name"]
        verbose_name: str = "Medication"
        verbose_name_plural: str = "Medications"

    def __str__(self) -> str:
        return self.generic_name


class MedicationBrandNameModel(models.Model):
    """Commercial brand name of a medication."""

    medication: models.ForeignKey = models.ForeignKey(
        MedicationModel,
        on_delete=models.CASCADE,
        related_name="brand_names",
    )
    name: str = models.CharField(max_length=200)

    class Meta:
        ordering: list[str] = ["name"]
        verbose_name: str = "Brand Name"
        verbose_name_plural: str = "Brand Names"

    def __str__(self) -> str:
        return self.name


class MedicationDosageModel(models.Model):
    """A dosage rule for a medication within a treatment.

    Age bounds are stored in **months**, weight bounds in **kg**.  A
    ``NULL`` bound is unbounded on that side.  ``dose`` may contain a
    weight-based expression such as ``"15 mg/kg"``.
    """

    class PatientType(models.TextChoices):
        """Patient groups a dosage rule applies to."""

        PEDIATRIC = "pediatric", "Pediatric"
        ADULT = "adult", "Adult"

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------
    treatment: models.ForeignKey = models.ForeignKey(
        TreatmentModel,
        on_delete=models.CASCADE,
        related_name="dosages",
    )
    medication: models.ForeignKey = models.ForeignKey(
        MedicationModel,
        on_delete=models.CASCADE,
        related_name="dosages",
    )
    patient_type: str = models.CharField(
        max_length=10,
        choices=PatientType.choices,
    )
    age_min: int | None = models.PositiveIntegerField(
        null=True, blank=True, help_text="Minimum age in months."
    )
    age_max: int | None = models.PositiveIntegerField(
        null=True, blank=True, help_text="Maximum age in months."
    )
    weight_min: float | None = models.FloatField(
        null=True, blank=True, help_text="Minimum weight in kg."
    )
    weight_max: float | None = models.FloatField(
        null=True, blank=True, help_text="Maximum weight in kg."
    )
    dose: str = models.CharField(
        max_length=200,
        help_text='Dose expression, e.g. "15 mg/kg" or "500 mg".',
    )
    frequency: str = models.CharField(max_length=100)
    duration: str = models.CharField(max_length=100)
    max_single_dose: str = models.CharField(max_length=100, blank=True, default="")
    max_daily_dose: str = models.CharField(max_length=100, blank=True, default="")
    administration: str = models.CharField(max_length=200, blank=True, default="")
    notes: str = models.TextField(blank=True, default="")
    allergy_info: str = models.TextField(
        blank=True,
        default="",
        help_text="Allergy information matched against patient allergies.",
    )
    is_alternative: bool = models.BooleanField(default=False)

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------
    class Meta:
        ordering: list[str] = ["id"]
        verbose_name: str = "Medication Dosage"
        verbose_name_plural: str = "Medication Dosages"

    def __str__(self) -> str:
        return f"{self.medication.generic_name} {self.dose} ({self.patient_type})"


class DiagnosticCriterionModel(models.Model):
    """A positive or negative diagnostic statement about a disease.

    Negative criteria argue *against* the disease and feed the
    differential-diagnosis penalty.  Lower ``priority`` is more important.
    """

    class CriterionType(models.TextChoices):
        """Allowed criterion types."""

        POSITIVE = "positive", "Positive"
        NEGATIVE = "negative", "Negative"

    disease: models.ForeignKey = models.ForeignKey(
        DiseaseModel,
        on_delete=models.CASCADE,
        related_name="diagnostic_criteria",
    )
    criteria: str = models.TextField()
    type: str = models.CharField(
        max_length=10,
        choices=CriterionType.choices,
        default=CriterionType.POSITIVE,
    )
    priority: int = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )

    class Meta:
        ordering: list[str] = ["priority", "id"]
        verbose_name: str = "Diagnostic Criterion"
        verbose_name_plural: str = "Diagnostic Criteria"

    def __str__(self) -> str:
        return f"[{self.type}] {self.criteria}"


class SupportiveCareModel(models.Model):
    """Supportive-care advice attached to a disease."""

    disease: models.ForeignKey = models.ForeignKey(
        DiseaseModel,
        on_delete=models.CASCADE,
        related_name="supportive_care",
    )
    category: str = models.CharField(max_length=100)
    title: str = models.CharField(max_length=200)
    description: str = models.TextField()
    priority: int = models.PositiveSmallIntegerField(default=1)

    class Meta:
        ordering: list[str] = ["priority", "id"]
        verbose_name: str = "Supportive Care Item"
        verbose_name_plural: str = "Supportive Care Items"

    def __str__(self) -> str:
        return f"{self.category}: {self.title}"


class VectorEmbeddingModel(models.Model):
    """Registry row for a vector pushed to the vector index.

    ``values`` is only populated by the database-backed index; remote
    indexes keep the vector themselves and only the metadata lives here.
    """

    class EntityType(models.TextChoices):
        """Entity kinds that can carry an embedding."""

        DISEASE = "disease", "Disease"
        SYMPTOM = "symptom", "Symptom"
        TREATMENT = "treatment", "Treatment"
        QUERY = "query", "Query"

    vector_id: str = models.CharField(max_length=100, unique=True)
    entity_type: str = models.CharField(max_length=20, choices=EntityType.choices)
    entity_id: str = models.CharField(max_length=50)
    metadata = models.JSONField(default=dict)
    values = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering: list[str] = ["entity_type", "entity_id"]
        verbose_name: str = "Vector Embedding"
        verbose_name_plural: str = "Vector Embeddings"

    def __str__(self) -> str:
        return f"{self.vector_id} ({self.entity_type} {self.entity_id})"
