"""
Tests for resolving extracted phrases to catalog symptoms.
"""

import pytest

from diagnosis_engine.services.exceptions import DatabaseAccessError, NLPError
from diagnosis_engine.services.symptom_matcher import SymptomMatcher
from diagnosis_engine.services.types import Symptom

CATALOG = [
    Symptom(id=1, name="Fever"),
    Symptom(id=2, name="Sore Throat"),
    Symptom(id=3, name="Headache"),
]


class StubRepository:
    def __init__(self, catalog=None, error=None):
        self.catalog = catalog or []
        self.error = error

    def get_symptom_catalog(self):
        if self.error is not None:
            raise self.error
        return self.catalog


class TestMatch:
    """Exact and fuzzy matching against a catalog snapshot."""

    def test_exact_match_after_normalisation(self):
        matched = SymptomMatcher(StubRepository()).match(["  SORE throat!"], CATALOG)
        assert [(m.symptom_id, m.confidence) for m in matched] == [(2, 1.0)]
        assert matched[0].user_said == "  SORE throat!"

    def test_fuzzy_match_reports_similarity(self):
        matched = SymptomMatcher(StubRepository()).match(["feverr"], CATALOG)
        assert matched[0].symptom_name == "Fever"
        assert matched[0].confidence == pytest.approx(5 / 6)

    def test_unmatched_phrase_is_dropped(self):
        assert SymptomMatcher(StubRepository()).match(["broken leg"], CATALOG) == []

    def test_every_phrase_for_the_same_symptom_is_kept(self):
        matched = SymptomMatcher(StubRepository()).match(["fever", "Fever!", "feverr"], CATALOG)
        assert [m.symptom_id for m in matched] == [1, 1, 1]
        assert [m.user_said for m in matched] == ["fever", "Fever!", "feverr"]
        assert [m.confidence for m in matched] == [1.0, 1.0, pytest.approx(5 / 6)]

    def test_dropped_letter_matches_and_unrelated_phrase_does_not(self):
        matched = SymptomMatcher(StubRepository()).match(
            ["feve", "headache"], [Symptom(id=1, name="Fever")]
        )
        assert [(m.symptom_name, m.user_said) for m in matched] == [("Fever", "feve")]
        assert matched[0].confidence == pytest.approx(0.8)

    def test_order_follows_phrases(self):
        matched = SymptomMatcher(StubRepository()).match(["headache", "fever"], CATALOG)
        assert [m.symptom_name for m in matched] == ["Headache", "Fever"]

    def test_empty_phrases_are_skipped(self):
        assert SymptomMatcher(StubRepository()).match(["", "!!"], CATALOG) == []


class TestValidateAndMatch:
    """Catalog loading through the repository."""

    def test_uses_repository_catalog(self):
        matcher = SymptomMatcher(StubRepository(CATALOG))
        assert [m.symptom_id for m in matcher.validate_and_match(["fever"])] == [1]

    def test_catalog_failure_becomes_nlp_error(self):
        matcher = SymptomMatcher(StubRepository(error=DatabaseAccessError("down")))
        with pytest.raises(NLPError, match="Failed to validate symptoms"):
            matcher.validate_and_match(["fever"])

    def test_reads_catalog_from_database(self, catalog):
        matched = SymptomMatcher().validate_and_match(["Runny nose", "sneezin"])
        assert [m.symptom_name for m in matched] == ["Runny Nose", "Sneezing"]
