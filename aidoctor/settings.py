"""
Django settings for the aidoctor project.

Values come from environment variables, optionally loaded from a
``.env`` file in the project root.  Engine settings are grouped in
``DIAGNOSIS_ENGINE`` and read by
:mod:`diagnosis_engine.services.factory`.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables
load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# ─────────────────────────────────────────────────────────────────────
# Core
# ─────────────────────────────────────────────────────────────────────

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "insecure-development-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", "true")
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # third party
    "rest_framework",
    "django_filters",
    # project
    "knowledge_base",
    "patient_cases",
    "api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "aidoctor.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "aidoctor.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ─────────────────────────────────────────────────────────────────────
# REST framework
# ─────────────────────────────────────────────────────────────────────

REST_FRAMEWORK = {
    "DEFAULT_FILTER_BACKENDS": ["django_filters.rest_framework.DjangoFilterBackend"],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
}

# ─────────────────────────────────────────────────────────────────────
# Diagnosis engine
# ─────────────────────────────────────────────────────────────────────

DIAGNOSIS_ENGINE = {
    # embedding backend: "ollama" | "sentence-transformers"
    "EMBEDDING_PROVIDER": os.getenv("EMBEDDING_PROVIDER", "ollama"),
    "EMBEDDING_MODEL": os.getenv("EMBEDDING_MODEL", "nomic-embed-text"),
    "EMBEDDING_DIMENSIONS": int(os.getenv("EMBEDDING_DIMENSIONS", "0")) or None,
    "OLLAMA_URL": os.getenv("OLLAMA_URL", "http://localhost:11434"),
    # vector index: "database" | "pinecone"
    "VECTOR_INDEX": os.getenv("VECTOR_INDEX", "database"),
    "PINECONE_INDEX": os.getenv("PINECONE_INDEX", "aidoctor"),
    "PINECONE_API_KEY": os.getenv("PINECONE_API_KEY", ""),
    # extraction used without an LLM, and as the LLM's fallback: "keyword" | "completion"
    "EXTRACTION_STRATEGY": os.getenv("EXTRACTION_STRATEGY", "keyword"),
    # "" disables the LLM; "openrouter" | "openai" | "anthropic" | "gemini" | "ollama"
    "LLM_PROVIDER": os.getenv("LLM_PROVIDER", ""),
    "LLM_API_KEY": os.getenv("LLM_API_KEY", ""),
    "LLM_MODEL": os.getenv("LLM_MODEL", ""),
    "LLM_TEMPERATURE": float(os.getenv("LLM_TEMPERATURE", "0.7")),
    "LLM_MAX_TOKENS": int(os.getenv("LLM_MAX_TOKENS", "1000")),
    "LLM_MAX_RETRIES": int(os.getenv("LLM_MAX_RETRIES", "3")),
    "HTTP_TIMEOUT": float(os.getenv("HTTP_TIMEOUT", "30")),
    "MAX_WORKERS": int(os.getenv("MAX_WORKERS", "4")),
}

# ─────────────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────────────

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "diagnosis_engine": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "knowledge_base": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
