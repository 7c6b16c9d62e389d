"""
diagnosis_engine/services/query_log.py
======================================
Best-effort persistence of diagnosis requests.

A request is answered whether or not it could be logged: when storing
fails the error is logged and a fresh UUID is returned in place of the
stored query's ID.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from patient_cases.models import QuerySymptomModel, UserQueryModel

from .exceptions import NotFoundError
from .types import DiagnosisResult, MatchedSymptom, StoreResult

logger: logging.Logger = logging.getLogger(__name__)


class QueryLogService:
    """Stores and retrieves :class:`UserQueryModel` rows."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger: logging.Logger = logger or logging.getLogger(__name__)

    def store(
        self,
        message: str,
        session_id: str | None,
        matched_symptoms: Sequence[MatchedSymptom],
        results: Sequence[DiagnosisResult],
        confidence: float,
    ) -> StoreResult:
        """Persist one diagnosis request and its matched symptoms.

        Args:
            message: Raw patient message.
            session_id: Optional caller session identifier.
            matched_symptoms: Catalog-resolved symptoms.
            results: Final ranked results.
            confidence: Overall confidence of the response.

        Returns:
            :class:`StoreResult`; ``stored`` is ``False`` and ``query_id``
            a fallback UUID when persistence failed.  Never raises for
            storage errors.
        """
        # build the ranked results payload
        diagnosed: list[dict] = [
            {
                "disease_id": r.disease_id,
                "disease_name": r.disease_name,
                "confidence": r.confidence,
            }
            for r in results
        ]

        try:
            with transaction.atomic():
                query: UserQueryModel = UserQueryModel.objects.create(
                    session_id=session_id,
                    raw_symptoms=message,
                    diagnosed_diseases=diagnosed,
                    confidence=confidence,
                )
                QuerySymptomModel.objects.bulk_create(
                    [
                        QuerySymptomModel(
                            query=query,
                            symptom_id=s.symptom_id,
                            confidence=s.confidence,
                        )
                        for s in matched_symptoms
                    ]
                )
        except (DatabaseError, TypeError, ValueError) as exc:
            fallback_id: str = str(uuid.uuid4())
            self._logger.error(
                "failed to store user query, using fallback id %s: %s", fallback_id, exc
            )
            return StoreResult(query_id=fallback_id, stored=False)

        self._logger.info("stored user query %s", query.id)
        return StoreResult(query_id=str(query.id), stored=True)

    def get_query(self, query_id: uuid.UUID | str) -> UserQueryModel:
        """Load a stored query with its matched symptoms.

        Raises:
            NotFoundError: If no query with that ID was stored.
        """
        try:
            return (
                UserQueryModel.objects
                .prefetch_related("matched_symptoms__symptom")
                .get(pk=query_id)
            )
        except (UserQueryModel.DoesNotExist, ValidationError, ValueError) as exc:
            raise NotFoundError(
                f"Query {query_id} not found", entity_type="user_query"
            ) from exc
