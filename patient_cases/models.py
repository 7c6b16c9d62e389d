"""
patient_cases/models.py
=======================
Audit log of diagnosis requests.

Contains:
    - UserQueryModel: One diagnosis request with its ranked results and
      overall confidence.
    - QuerySymptomModel: Catalog symptoms matched for a request, with
      the match confidence.
"""

from __future__ import annotations

import uuid

from django.db import models

from knowledge_base.models import SymptomModel


class UserQueryModel(models.Model):
    """Records a single diagnosis request.

    Attributes:
        id: UUID generated by the query log service.
        session_id: Optional caller-supplied session identifier.
        raw_symptoms: The free-text message exactly as submitted.
        diagnosed_diseases: JSON list of result dicts ranked by
            confidence descending.
        confidence: Overall confidence of the diagnosis (0–1).
        created_at: Timestamp auto-set when the query is stored.
    """

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session_id: str | None = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Optional caller-supplied session identifier.",
    )
    raw_symptoms: str = models.TextField(
        help_text="Free-text symptom description as submitted.",
    )
    diagnosed_diseases = models.JSONField(
        default=list,
        help_text=(
            "Ranked diagnosis results, "
            'e.g. [{"disease_id": 1, "disease_name": "Influenza", "confidence": 0.82}].'
        ),
    )
    confidence: float = models.FloatField(default=0.0)
    created_at = models.DateTimeField(auto_now_add=True)

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------
    class Meta:
        ordering: list[str] = ["-created_at"]
        verbose_name: str = "User Query"
        verbose_name_plural: str = "User Queries"

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------
    def __str__(self) -> str:
        formatted_date: str = (
            self.created_at.strftime("%Y-%m-%d %H:%M") if self.created_at else "N/A"
        )
        return f"Query {self.id} - {formatted_date}"


class QuerySymptomModel(models.Model):
    """A catalog symptom matched for a stored query."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    query: models.ForeignKey = models.ForeignKey(
        UserQueryModel,
        on_delete=models.CASCADE,
        related_name="matched_symptoms",
    )
    symptom: models.ForeignKey = models.ForeignKey(
        SymptomModel,
        on_delete=models.CASCADE,
        related_name="query_matches",
    )
    confidence: float = models.FloatField()

    class Meta:
        ordering: list[str] = ["-confidence"]
        verbose_name: str = "Query Symptom"
        verbose_name_plural: str = "Query Symptoms"

    def __str__(self) -> str:
        return f"{self.symptom.name} ({self.confidence:.2f})"
