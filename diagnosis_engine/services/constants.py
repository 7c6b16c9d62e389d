"""
diagnosis_engine/services/constants.py
======================================
Scoring and filtering constants of the hybrid diagnosis pipeline.

These values have no derivation beyond the behaviour they reproduce;
change them only together with the tests that pin them.
"""

from __future__ import annotations

# symptom matching
SYMPTOM_MATCH_THRESHOLD: float = 0.6
EXACT_MATCH_CONFIDENCE: float = 1.0

# hybrid search
DEFAULT_SEARCH_LIMIT: int = 10
MAX_VECTOR_TOP_K: int = 30
VECTOR_TOP_K_MULTIPLIER: int = 3
VECTOR_WEIGHT: float = 0.3
GRAPH_WEIGHT: float = 0.7

# symptom-count → minimum vector similarity; four or more symptoms use the floor
DYNAMIC_THRESHOLDS: dict[int, float] = {1: 0.65, 2: 0.60, 3: 0.55}
DYNAMIC_THRESHOLD_FLOOR: float = 0.50

# disease scoring
PRIMARY_SYMPTOM_WEIGHT: float = 0.7
SECONDARY_SYMPTOM_WEIGHT: float = 0.3
IMPORTANCE_SCALE: float = 10.0
PRIMARY_COVERAGE_MINIMUM: float = 0.5
MULTI_SYMPTOM_MIN_MATCHES: int = 3
MULTI_SYMPTOM_BOOST: float = 0.15
HIGH_COVERAGE_RATIO: float = 0.7
HIGH_COVERAGE_BOOST: float = 0.10

# negative criteria
NEGATIVE_KEYWORD_MIN_LENGTH: int = 4
NEGATIVE_PENALTY_FACTOR: float = 0.15
NEGATIVE_PENALTY_CAP: float = 0.5

# orchestration
MIN_COMBINED_SCORE: float = 0.1
MAX_RESULTS: int = 5
RECOMMENDATION_RESULTS: int = 3
CONFIDENCE_RESULTS: int = 3
SUPPORTIVE_CARE_LIMIT: int = 10

# extraction
COMPLETION_EXTRACTION_CONFIDENCE: float = 0.9
MIN_EXTRACTED_PHRASE_LENGTH: int = 3
LLM_CONTEXT_SYMPTOM_LIMIT: int = 100

# embeddings maintenance
EMBEDDING_BATCH_SIZE: int = 10
