"""
api/serializers.py
==================
DRF serializers for the AI Doctor REST API.

Contains:
    - SymptomSerializer: Read-only representation of symptoms.
    - DiseaseSerializer: Read-only representation of diseases.
    - UserQuerySerializer: Read-only representation of stored queries.
    - PatientInfoSerializer: Nested patient attributes of a request.
    - DiagnosisRequestSerializer: Input validation for the /diagnose endpoint.
"""

from __future__ import annotations

from rest_framework import serializers

from diagnosis_engine.services.types import PatientInfo
from knowledge_base.models import DiseaseModel, SymptomModel
from patient_cases.models import QuerySymptomModel, UserQueryModel


# ─────────────────────────────────────────────────────────────────────
# Read-only serializers
# ─────────────────────────────────────────────────────────────────────


class SymptomSerializer(serializers.ModelSerializer):
    """Serializer for :class:`SymptomModel`.

    Exposes all fields needed for the symptom listing.
    """

    category_display = serializers.CharField(
        source="get_category_display",
        read_only=True,
    )

    class Meta:
        model = SymptomModel
        fields = [
            "id",
            "name",
            "description",
            "category",
            "category_display",
        ]
        read_only_fields = fields


class DiseaseSerializer(serializers.ModelSerializer):
    """Serializer for :class:`DiseaseModel`.

    Includes the category name and the human-readable urgency level.
    """

    category = serializers.CharField(source="category.name", read_only=True, default=None)
    urgency_display = serializers.CharField(
        source="get_urgency_level_display",
        read_only=True,
    )

    class Meta:
        model = DiseaseModel
        fields = [
            "id",
            "name",
            "description",
            "category",
            "urgency_level",
            "urgency_display",
        ]
        read_only_fields = fields


class QuerySymptomSerializer(serializers.ModelSerializer):
    symptom_id = serializers.IntegerField(read_only=True)
    symptom_name = serializers.CharField(source="symptom.name", read_only=True)

    class Meta:
        model = QuerySymptomModel
        fields = ["symptom_id", "symptom_name", "confidence"]
        read_only_fields = fields


class UserQuerySerializer(serializers.ModelSerializer):
    """Read-only serializer for :class:`UserQueryModel`.

    Exposes the stored request with its ranked results and the catalog
    symptoms that were matched.
    """

    matched_symptoms = QuerySymptomSerializer(many=True, read_only=True)

    class Meta:
        model = UserQueryModel
        fields = [
            "id",
            "session_id",
            "raw_symptoms",
            "diagnosed_diseases",
            "confidence",
            "matched_symptoms",
            "created_at",
        ]
        read_only_fields = fields


# ─────────────────────────────────────────────────────────────────────
# Input serializers
# ─────────────────────────────────────────────────────────────────────


class PatientInfoSerializer(serializers.Serializer):
    """Patient attributes used for dosage filtering."""

    age = serializers.IntegerField(
        min_value=0,
        max_value=150,
        help_text="Age in years.",
    )
    weight = serializers.FloatField(
        max_value=300,
        help_text="Weight in kg.",
    )
    type = serializers.ChoiceField(choices=["pediatric", "adult"])
    allergies = serializers.ListField(
        child=serializers.CharField(max_length=100),
        required=False,
        default=list,
    )

    def validate_weight(self, value: float) -> float:
        """Weight must be strictly positive."""
        if value <= 0:
            raise serializers.ValidationError("Weight must be greater than 0.")
        return value


class DiagnosisRequestSerializer(serializers.Serializer):
    """Input validation for the diagnosis endpoint.

    Validates the free-text message, the nested patient information and
    the optional session UUID.
    """

    message = serializers.CharField(
        min_length=10,
        max_length=1000,
        help_text="Free-text description of the symptoms.",
    )
    patient_info = PatientInfoSerializer()
    session_id = serializers.UUIDField(required=False, allow_null=True)

    def to_patient_info(self) -> PatientInfo:
        """Build the engine's :class:`PatientInfo` from validated data."""
        data: dict = self.validated_data["patient_info"]
        return PatientInfo(
            age=data["age"],
            weight=data["weight"],
            type=data["type"],
            allergies=list(data.get("allergies") or []),
        )
