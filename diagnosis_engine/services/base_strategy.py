"""
diagnosis_engine/services/base_strategy.py
==========================================
Abstract base class defining the contract every symptom extraction
strategy must fulfil.  Follows the **Strategy** design pattern so the
:class:`DiagnosisService` can swap extraction backends without
changing the rest of the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .types import ExtractedSymptoms


class ExtractionStrategy(ABC):
    """Abstract symptom extraction interface.

    Subclasses turn a free-text patient message into candidate symptom
    phrases (keyword lookup, an LLM completion, structured LLM output)
    while the :class:`DiagnosisService` interacts only with this
    interface.
    """

    @abstractmethod
    def extract(self, message: str) -> ExtractedSymptoms:
        """Extract candidate symptom phrases from *message*.

        Args:
            message: The patient's own description of how they feel.

        Returns:
            :class:`ExtractedSymptoms` whose ``extracted_symptoms`` are
            raw phrases in the order they were found.  They are not yet
            resolved against the catalog.

        Raises:
            NLPError: If extraction cannot be performed at all.
        """
        ...
