"""
diagnosis_engine/services/__init__.py
=====================================
Service layer for the AI Doctor diagnosis engine.

Exports:
    - DiagnosisService: Orchestrates extraction, matching, hybrid search,
      dosing, supportive care, persistence and LLM enrichment.
    - build_diagnosis_service / build_embeddings_service: Factories
      reading ``settings.DIAGNOSIS_ENGINE``.
    - ExtractionStrategy and its keyword, completion and structured
      implementations.
    - KnowledgeBaseRepository: Read access to the catalog.
    - PatientInfo, DiagnosisResponse: Request input and output types.
    - DiagnosisEngineError and its subclasses: Custom exceptions.
"""

from .base_strategy import ExtractionStrategy
from .diagnosis_service import DiagnosisService
from .exceptions import (
    DatabaseAccessError,
    DiagnosisEngineError,
    DiagnosisError,
    EmbeddingError,
    InputValidationError,
    NLPError,
    NotFoundError,
    ServiceError,
    VectorIndexError,
)
from .extraction import (
    CompletionExtractionStrategy,
    KeywordExtractionStrategy,
    StructuredExtractionStrategy,
)
from .factory import build_diagnosis_service, build_embeddings_service
from .knowledge_base_repository import KnowledgeBaseRepository
from .types import DiagnosisResponse, PatientInfo

__all__: list[str] = [
    "ExtractionStrategy",
    "KeywordExtractionStrategy",
    "CompletionExtractionStrategy",
    "StructuredExtractionStrategy",
    "DiagnosisService",
    "build_diagnosis_service",
    "build_embeddings_service",
    "KnowledgeBaseRepository",
    "PatientInfo",
    "DiagnosisResponse",
    "DiagnosisEngineError",
    "InputValidationError",
    "NotFoundError",
    "NLPError",
    "EmbeddingError",
    "DatabaseAccessError",
    "VectorIndexError",
    "DiagnosisError",
    "ServiceError",
]
