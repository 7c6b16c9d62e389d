"""
diagnosis_engine/services/factory.py
====================================
Builds the engine's collaborators from ``settings.DIAGNOSIS_ENGINE``.

Each backend (embedding provider, vector index, LLM provider) is
selected once here; the services only ever see the abstract
interfaces.  Unknown backend names raise ``ImproperlyConfigured``.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .base_strategy import ExtractionStrategy
from .diagnosis_service import DiagnosisService
from .dosage import DosageService
from .embeddings import (
    EmbeddingProvider,
    EmbeddingsService,
    OllamaEmbeddingProvider,
    SentenceTransformerEmbeddingProvider,
)
from .extraction import (
    CompletionExtractionStrategy,
    KeywordExtractionStrategy,
    StructuredExtractionStrategy,
)
from .graph import GraphService
from .knowledge_base_repository import KnowledgeBaseRepository
from .llm import (
    AnthropicProvider,
    GeminiProvider,
    LLMProvider,
    LLMService,
    OllamaProvider,
    OpenAIProvider,
    OpenRouterProvider,
)
from .query_log import QueryLogService
from .search import SearchService
from .symptom_matcher import SymptomMatcher
from .vector_store import DatabaseVectorIndex, PineconeVectorIndex, VectorIndex, VectorStoreService

logger: logging.Logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "EMBEDDING_PROVIDER": "ollama",
    "EMBEDDING_MODEL": "nomic-embed-text",
    "EMBEDDING_DIMENSIONS": None,
    "OLLAMA_URL": "http://localhost:11434",
    "VECTOR_INDEX": "database",
    "PINECONE_INDEX": "aidoctor",
    "PINECONE_API_KEY": "",
    "EXTRACTION_STRATEGY": "keyword",
    "LLM_PROVIDER": "",
    "LLM_API_KEY": "",
    "LLM_MODEL": "",
    "LLM_TEMPERATURE": 0.7,
    "LLM_MAX_TOKENS": 1000,
    "LLM_MAX_RETRIES": 3,
    "HTTP_TIMEOUT": 30,
    "MAX_WORKERS": 4,
}

_LLM_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openrouter": OpenRouterProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}


def get_engine_config(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return ``DEFAULTS`` updated with settings and then *overrides*."""
    config: dict[str, Any] = dict(DEFAULTS)
    config.update(getattr(settings, "DIAGNOSIS_ENGINE", {}) or {})
    config.update(overrides or {})
    return config


def build_embedding_provider(config: dict[str, Any]) -> EmbeddingProvider:
    name: str = config["EMBEDDING_PROVIDER"]
    if name == "ollama":
        return OllamaEmbeddingProvider(
            base_url=config["OLLAMA_URL"],
            model=config["EMBEDDING_MODEL"],
            timeout=config["HTTP_TIMEOUT"],
        )
    if name == "sentence-transformers":
        return SentenceTransformerEmbeddingProvider(config["EMBEDDING_MODEL"])
    raise ImproperlyConfigured(f"Unknown EMBEDDING_PROVIDER {name!r}")


def build_vector_index(config: dict[str, Any]) -> VectorIndex:
    name: str = config["VECTOR_INDEX"]
    if name == "database":
        return DatabaseVectorIndex()
    if name == "pinecone":
        if not config["PINECONE_API_KEY"]:
            raise ImproperlyConfigured("PINECONE_API_KEY is required for the pinecone index")
        return PineconeVectorIndex(config["PINECONE_API_KEY"], config["PINECONE_INDEX"])
    raise ImproperlyConfigured(f"Unknown VECTOR_INDEX {name!r}")


def build_llm_provider(config: dict[str, Any]) -> LLMProvider | None:
    """Return the configured provider, or ``None`` when LLM use is disabled."""
    name: str = config["LLM_PROVIDER"] or ""
    if not name:
        return None
    provider_cls: type[LLMProvider] | None = _LLM_PROVIDERS.get(name)
    if provider_cls is None:
        raise ImproperlyConfigured(f"Unknown LLM_PROVIDER {name!r}")

    kwargs: dict[str, Any] = {
        "api_key": config["LLM_API_KEY"],
        "model": config["LLM_MODEL"],
        "temperature": float(config["LLM_TEMPERATURE"]),
        "max_tokens": int(config["LLM_MAX_TOKENS"]),
        "timeout": float(config["HTTP_TIMEOUT"]),
        "max_retries": int(config["LLM_MAX_RETRIES"]),
    }
    if provider_cls is OllamaProvider:
        kwargs["base_url"] = config["OLLAMA_URL"]
    return provider_cls(**kwargs)


def build_embeddings_service(config: dict[str, Any] | None = None) -> EmbeddingsService:
    """Embeddings service wired to the configured vector index."""
    config = get_engine_config(config)
    dimensions = config["EMBEDDING_DIMENSIONS"]
    return EmbeddingsService(
        provider=build_embedding_provider(config),
        vector_store=VectorStoreService(build_vector_index(config)),
        dimensions=int(dimensions) if dimensions else None,
    )


def _build_strategy(
    config: dict[str, Any],
    repository: KnowledgeBaseRepository,
    llm_provider: LLMProvider | None,
    llm_service: LLMService | None,
) -> ExtractionStrategy:
    name: str = config["EXTRACTION_STRATEGY"]
    base: ExtractionStrategy
    if name == "keyword":
        base = KeywordExtractionStrategy(repository)
    elif name == "completion":
        if llm_provider is None:
            raise ImproperlyConfigured("EXTRACTION_STRATEGY 'completion' needs an LLM_PROVIDER")
        base = CompletionExtractionStrategy(llm_provider)
    else:
        raise ImproperlyConfigured(f"Unknown EXTRACTION_STRATEGY {name!r}")

    if llm_service is None:
        return base
    return StructuredExtractionStrategy(llm_service, fallback=base)


def build_diagnosis_service(config: dict[str, Any] | None = None) -> DiagnosisService:
    """Assemble a :class:`DiagnosisService` from configuration.

    Args:
        config: Optional overrides applied on top of
            ``settings.DIAGNOSIS_ENGINE``.

    Raises:
        ImproperlyConfigured: If a backend name is unknown or a required
            credential is missing.
    """
    config = get_engine_config(config)
    repository = KnowledgeBaseRepository()

    embeddings: EmbeddingsService = build_embeddings_service(config)
    llm_provider: LLMProvider | None = build_llm_provider(config)
    llm_service: LLMService | None = (
        LLMService(llm_provider, repository) if llm_provider is not None else None
    )

    logger.debug(
        "building diagnosis service (embedding=%s, index=%s, llm=%s)",
        config["EMBEDDING_PROVIDER"],
        config["VECTOR_INDEX"],
        config["LLM_PROVIDER"] or "disabled",
    )
    return DiagnosisService(
        strategy=_build_strategy(config, repository, llm_provider, llm_service),
        matcher=SymptomMatcher(repository),
        search_service=SearchService(
            embeddings_service=embeddings,
            vector_store_service=embeddings.vector_store,
            graph_service=GraphService(repository),
        ),
        dosage_service=DosageService(repository),
        query_log=QueryLogService(),
        llm_service=llm_service,
        repository=repository,
        max_workers=int(config["MAX_WORKERS"]),
    )
