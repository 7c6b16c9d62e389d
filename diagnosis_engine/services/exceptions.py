"""
diagnosis_engine/services/exceptions.py
=======================================
Custom exception hierarchy for the diagnosis engine.

Every error carries a stable machine-readable ``code``, the HTTP
``status_code`` the API layer should answer with, a human ``message``
and an optional ``details`` dict.

Exception Tree::

    DiagnosisEngineError (base)
    ├── InputValidationError   VALIDATION_ERROR   400
    ├── NotFoundError          NOT_FOUND          404
    ├── NLPError               NLP_ERROR          500
    ├── EmbeddingError         EMBEDDING_ERROR    500
    ├── DatabaseAccessError    DATABASE_ERROR     500
    ├── VectorIndexError       VECTORIZE_ERROR    500
    ├── DiagnosisError         DIAGNOSIS_ERROR    422
    └── ServiceError           <caller supplied>  502
"""

from __future__ import annotations


class DiagnosisEngineError(Exception):
    """Base exception for all diagnosis engine errors.

    All domain-specific exceptions raised within the service layer
    inherit from this class so callers can catch them uniformly.

    Attributes:
        message: Human-readable error description.
        details: Optional dict with structured error context.
        code: Stable machine-readable error code.
        status_code: HTTP status the API layer maps this error to.
    """

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message: str = message
        self.details: dict = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, "
            f"message={self.message!r}, details={self.details!r})"
        )

    def to_dict(self) -> dict:
        """Return the ``{code, message, details}`` error payload."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InputValidationError(DiagnosisEngineError):
    """Raised when a request does not have the expected shape."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(DiagnosisEngineError):
    """Raised when a requested entity does not exist.

    Attributes:
        entity_type: Kind of entity that was looked up.
    """

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str, entity_type: str | None = None) -> None:
        self.entity_type: str | None = entity_type
        super().__init__(message=message, details={"entity_type": entity_type})


class NLPError(DiagnosisEngineError):
    """Raised when symptom extraction or validation fails."""

    code = "NLP_ERROR"


class EmbeddingError(DiagnosisEngineError):
    """Raised when the embedding backend fails or returns an invalid vector."""

    code = "EMBEDDING_ERROR"


class _CausedError(DiagnosisEngineError):
    """Error wrapping a lower-level exception as ``details["cause"]``."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(
            message=message,
            details={"cause": str(cause)} if cause is not None else None,
        )


class DatabaseAccessError(_CausedError):
    """Raised when catalog or query-log access fails."""

    code = "DATABASE_ERROR"


class VectorIndexError(_CausedError):
    """Raised when the vector index cannot be queried or updated."""

    code = "VECTORIZE_ERROR"


class DiagnosisError(DiagnosisEngineError):
    """Raised when no diagnosis can be produced for the request."""

    code = "DIAGNOSIS_ERROR"
    status_code = 422


class ServiceError(DiagnosisEngineError):
    """Raised by optional collaborators such as the LLM service.

    Unlike the other errors the code is chosen by the raiser, e.g.
    ``LLM_REQUEST_ERROR`` or ``PARSE_ERROR``.
    """

    status_code = 502

    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        self.code = code
        super().__init__(message=message, details=details)
