"""
diagnosis_engine/services/utils.py
==================================
Small helpers shared by the pipeline stages.

Contains:
    - normalize_text / levenshtein_distance / similarity_score:
      string comparison used by symptom matching.
    - format_dosage: resolve ``<n> mg/kg`` dose expressions.
    - chunk: fixed-size batching.
    - retry: retry-with-exponential-backoff for collaborators.
    - run_concurrently: join a handful of blocking calls on a thread pool.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from django.db import connections
from rapidfuzz.distance import Levenshtein

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar("T")

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_MG_PER_KG_RE = re.compile(r"(\d+(?:\.\d+)?)\s*mg/kg", re.IGNORECASE)


def normalize_text(text: str) -> str:
    """Lowercase, trim, strip punctuation and collapse whitespace."""
    text = text.lower().strip()
    text = _NON_WORD_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text)


def levenshtein_distance(first: str, second: str) -> int:
    """Case-insensitive edit distance between two strings."""
    return Levenshtein.distance(first.lower(), second.lower())


def similarity_score(first: str, second: str) -> float:
    """Return ``1 - distance / max_length`` in ``[0, 1]``.

    Two empty strings are identical (score 1).
    """
    return Levenshtein.normalized_similarity(first.lower(), second.lower())


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def format_dosage(dose: str, weight: float) -> str:
    """Replace the first ``<n> mg/kg`` in *dose* with the absolute dose.

    ``format_dosage("15 mg/kg every 6 hours", 20)`` returns
    ``"300 mg every 6 hours"``.  Doses without a weight-based part
    (e.g. ``"500 mg"``) are returned unchanged.
    """
    match = _MG_PER_KG_RE.search(dose)
    if match is None:
        return dose

    calculated: float = float(match.group(1)) * weight
    return dose.replace(match.group(0), f"{_format_number(calculated)} mg", 1)


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    delay_seconds: float = 1.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Call *fn* until it succeeds, sleeping ``delay * 2**attempt`` between tries.

    The last exception is re-raised once *max_retries* attempts have
    failed.  Only exceptions listed in *exceptions* are retried.
    """
    attempts: int = max(max_retries, 1)
    for attempt in range(attempts):
        try:
            return fn()
        except exceptions as exc:
            if attempt == attempts - 1:
                raise
            wait: float = delay_seconds * 2**attempt
            logger.warning(
                "attempt %d/%d failed (%s), retrying in %.1fs",
                attempt + 1,
                attempts,
                exc,
                wait,
            )
            time.sleep(wait)
    raise AssertionError("unreachable")


def _close_connections_after(fn: Callable[[], T]) -> Callable[[], T]:
    def wrapper() -> T:
        try:
            return fn()
        finally:
            # worker threads own their connections
            connections.close_all()

    return wrapper


def run_concurrently(tasks: Sequence[Callable[[], T]], max_workers: int) -> list[T]:
    """Run *tasks* and return their results in submission order.

    With ``max_workers <= 1`` (or a single task) the calls run inline
    on the current thread.  Any exception raised by a task propagates
    to the caller once all tasks have been joined.
    """
    if max_workers <= 1 or len(tasks) <= 1:
        return [task() for task in tasks]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as executor:
        futures = [executor.submit(_close_connections_after(task)) for task in tasks]
        return [future.result() for future in futures]
