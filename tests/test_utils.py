"""
Tests for the string, dosage, batching and concurrency helpers.
"""

import threading

import pytest

from diagnosis_engine.services import utils
from diagnosis_engine.services.utils import (
    chunk,
    format_dosage,
    levenshtein_distance,
    normalize_text,
    retry,
    run_concurrently,
    similarity_score,
)


class TestNormalizeText:
    """Lowercasing, punctuation stripping and whitespace collapsing."""

    def test_strips_punctuation_and_collapses_spaces(self):
        assert normalize_text("  Sore   Throat!! ") == "sore throat"

    def test_keeps_word_characters(self):
        assert normalize_text("COVID_19, fever.") == "covid_19 fever"

    def test_empty(self):
        assert normalize_text("   ") == ""


class TestSimilarity:
    """Edit distance and the derived similarity score."""

    def test_levenshtein_known_values(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("Fever", "fever") == 0

    def test_similarity_of_typo(self):
        assert similarity_score("feverr", "fever") == pytest.approx(5 / 6)

    def test_two_empty_strings_are_identical(self):
        assert similarity_score("", "") == 1.0

    def test_completely_different(self):
        assert similarity_score("abc", "xyz") == 0.0

    def test_dropped_letter_stays_above_match_threshold(self):
        assert similarity_score("feve", "fever") == pytest.approx(0.8)
        assert similarity_score("feve", "fever") > 0.6

    def test_unrelated_symptom_stays_below_match_threshold(self):
        assert similarity_score("headache", "fever") < 0.6

    def test_similarity_ignores_case(self):
        assert similarity_score("FEVER", "fever") == 1.0


class TestFormatDosage:
    """Weight-based dose resolution."""

    def test_mg_per_kg_is_multiplied(self):
        assert format_dosage("15 mg/kg every 6 hours", 20) == "300 mg every 6 hours"

    def test_fractional_result(self):
        assert format_dosage("2.5 mg/kg", 13) == "32.5 mg"

    def test_absolute_dose_unchanged(self):
        assert format_dosage("500 mg", 70) == "500 mg"

    def test_only_first_occurrence_replaced(self):
        assert format_dosage("10 mg/kg, max 40 mg/kg", 2) == "20 mg, max 40 mg/kg"


class TestChunk:
    def test_even_and_uneven_batches(self):
        assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunk([], 3) == []


class TestRetry:
    """Retry with exponential backoff."""

    def test_succeeds_after_failures(self, monkeypatch):
        sleeps = []
        monkeypatch.setattr(utils.time, "sleep", sleeps.append)
        attempts = iter([ValueError("a"), ValueError("b"), "ok"])

        def flaky():
            value = next(attempts)
            if isinstance(value, Exception):
                raise value
            return value

        assert retry(flaky, max_retries=3, delay_seconds=1.0) == "ok"
        assert sleeps == [1.0, 2.0]

    def test_reraises_last_error(self, monkeypatch):
        monkeypatch.setattr(utils.time, "sleep", lambda _: None)
        calls = []

        def always_fails():
            calls.append(1)
            raise ValueError(f"failure {len(calls)}")

        with pytest.raises(ValueError, match="failure 2"):
            retry(always_fails, max_retries=2, delay_seconds=0)
        assert len(calls) == 2

    def test_unlisted_exceptions_are_not_retried(self):
        calls = []

        def fails():
            calls.append(1)
            raise KeyError("x")

        with pytest.raises(KeyError):
            retry(fails, max_retries=3, exceptions=(ValueError,))
        assert len(calls) == 1


class TestRunConcurrently:
    """Thread-pool fan-out preserving submission order."""

    def test_results_in_submission_order(self):
        tasks = [lambda i=i: i * i for i in range(6)]
        assert run_concurrently(tasks, max_workers=3) == [0, 1, 4, 9, 16, 25]

    def test_single_worker_runs_inline(self):
        main = threading.get_ident()
        assert run_concurrently([threading.get_ident, threading.get_ident], 1) == [main, main]

    def test_exception_propagates(self):
        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            run_concurrently([lambda: 1, boom], max_workers=2)
