"""
diagnosis_engine/services/scoring.py
====================================
Pure scoring functions of the hybrid search.

Functions:
    - dynamic_threshold: minimum vector similarity for a symptom count.
    - score_disease_likelihood: graph-based likelihood of one disease.
    - negative_criteria_penalty: keyword-overlap differential penalty.
    - combine_scores: fuse vector and graph scores minus the penalty.

Disease likelihood (per matched symptom ``m``)::

    contribution(m) = confidence * weight * importance / 10
    weight          = 0.7 if primary else 0.3
    normalised      = sum(contribution) / sum over *all* disease symptoms

then a primary-coverage penalty (< 50% of primary symptoms matched
multiplies by the coverage), a 1.15 boost for three or more matches, a
1.10 boost when more than 70% of the disease's symptoms matched, and a
clamp to 1.0.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from .constants import (
    DYNAMIC_THRESHOLD_FLOOR,
    DYNAMIC_THRESHOLDS,
    GRAPH_WEIGHT,
    HIGH_COVERAGE_BOOST,
    HIGH_COVERAGE_RATIO,
    IMPORTANCE_SCALE,
    MULTI_SYMPTOM_BOOST,
    MULTI_SYMPTOM_MIN_MATCHES,
    NEGATIVE_KEYWORD_MIN_LENGTH,
    NEGATIVE_PENALTY_CAP,
    NEGATIVE_PENALTY_FACTOR,
    PRIMARY_COVERAGE_MINIMUM,
    PRIMARY_SYMPTOM_WEIGHT,
    SECONDARY_SYMPTOM_WEIGHT,
    VECTOR_WEIGHT,
)
from .types import DiseaseGraphNode, GraphCriterion, SymptomMatch

logger: logging.Logger = logging.getLogger(__name__)

_KEYWORD_SPLIT_RE = re.compile(r"[\s,]+")


def dynamic_threshold(symptom_count: int) -> float:
    """Fewer symptoms are more ambiguous, so demand closer vectors."""
    for count, threshold in sorted(DYNAMIC_THRESHOLDS.items()):
        if symptom_count <= count:
            return threshold
    return DYNAMIC_THRESHOLD_FLOOR


def _symptom_weight(is_primary: bool, importance: int) -> float:
    weight: float = PRIMARY_SYMPTOM_WEIGHT if is_primary else SECONDARY_SYMPTOM_WEIGHT
    return weight * (importance / IMPORTANCE_SCALE)


def score_disease_likelihood(
    matches: Sequence[SymptomMatch], node: DiseaseGraphNode
) -> float:
    """Score how well *matches* explain the disease in *node*.

    Args:
        matches: Matched symptoms annotated with this disease's primary
            flag and importance.
        node: The disease graph node.

    Returns:
        Likelihood in ``[0, 1]``; 0 when nothing matched.
    """
    if not matches:
        return 0.0

    score: float = sum(
        m.confidence * _symptom_weight(m.is_primary, m.importance) for m in matches
    )
    max_possible: float = sum(
        _symptom_weight(s.is_primary, s.importance) for s in node.symptoms
    )
    result: float = score / max_possible if max_possible > 0 else 0.0

    primary_total: int = len(node.primary_symptoms)
    if primary_total > 0:
        primary_ratio: float = sum(1 for m in matches if m.is_primary) / primary_total
        if primary_ratio < PRIMARY_COVERAGE_MINIMUM:
            result *= primary_ratio

    if len(matches) >= MULTI_SYMPTOM_MIN_MATCHES:
        result *= 1 + MULTI_SYMPTOM_BOOST
        logger.debug(
            "multi-symptom boost applied to disease %s (%d matches)",
            node.disease_id,
            len(matches),
        )

    match_ratio: float = len(matches) / max(len(node.symptoms), 1)
    if match_ratio > HIGH_COVERAGE_RATIO:
        result *= 1 + HIGH_COVERAGE_BOOST
        logger.debug(
            "high coverage boost applied to disease %s (ratio %.2f)",
            node.disease_id,
            match_ratio,
        )

    return min(result, 1.0)


def _keywords(criterion_text: str) -> list[str]:
    return [
        token
        for token in _KEYWORD_SPLIT_RE.split(criterion_text.lower())
        if len(token) >= NEGATIVE_KEYWORD_MIN_LENGTH
    ]


def negative_criteria_penalty(
    criteria: Iterable[GraphCriterion], symptom_names: Iterable[str]
) -> float:
    """Penalty in ``[0, 0.5]`` for symptoms that hit negative criteria.

    This is lexical overlap only: a criterion conflicts when any of its
    words longer than three characters is a substring of a matched
    symptom name, or the other way round.  Each conflicting criterion
    adds ``0.15 / priority``.
    """
    names: list[str] = [name.lower() for name in symptom_names]
    penalty: float = 0.0

    for criterion in criteria:
        if criterion.type != "negative":
            continue
        keywords: list[str] = _keywords(criterion.criteria)
        conflict: bool = any(
            keyword in name or name in keyword for keyword in keywords for name in names
        )
        if conflict:
            criterion_penalty: float = (1 / max(criterion.priority, 1)) * NEGATIVE_PENALTY_FACTOR
            penalty += criterion_penalty
            logger.debug(
                "negative criterion conflict %r (penalty %.3f)",
                criterion.criteria,
                criterion_penalty,
            )

    return min(penalty, NEGATIVE_PENALTY_CAP)


def combine_scores(vector_score: float, graph_score: float, penalty: float) -> float:
    """``clamp(vector * 0.3 + graph * 0.7 - penalty, 0, 1)``."""
    combined: float = vector_score * VECTOR_WEIGHT + graph_score * GRAPH_WEIGHT - penalty
    return max(0.0, min(combined, 1.0))
