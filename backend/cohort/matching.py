from __future__ import annotations

"""
Rank de-identified patients that are comparable to a selected profile.

Design intent:
- Only compare like with like: same device family and a narrow age window.
- Prefer shared clinical history over age proximity when ranking.
- Stay deterministic so the same selection always yields the same candidates.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from backend.internal_core.contracts import DeidentifiedPatient

AGE_WINDOW_YEARS = 3
MIN_HISTORY_SIMILARITY = 0.45
MAX_CANDIDATES = 5
HISTORY_WEIGHT = 0.7
AGE_WEIGHT = 0.3
MIN_KEYWORD_LENGTH = 4

_FAMILY_SUFFIX_RE = re.compile(r"-?F\b")
_NUMBER_RE = re.compile(r"[\d.]+")
_PUNCT_RE = re.compile(r"[^\w\s]", flags=re.ASCII)

_STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "to", "of", "in", "on", "under", "over", "at", "for",
        "with", "past", "last", "this", "that", "no", "none", "not", "issues", "issue",
        "stable", "occasionally", "occasional", "spikes", "above", "below", "up", "down",
        "degree", "degrees", "deg", "°", "c", "celsius",
    }
)


@dataclass(frozen=True)
class CompareCandidate:
    patient: DeidentifiedPatient
    score: float
    history_similarity: float
    age_similarity: float


def device_family(model: str) -> str:
    return _FAMILY_SUFFIX_RE.sub("", str(model or "").strip().upper())


def history_keywords(history: Iterable[str]) -> set[str]:
    keywords: set[str] = set()
    for line in history or []:
        text = _NUMBER_RE.sub(" ", str(line).lower())
        text = _PUNCT_RE.sub(" ", text)
        for word in text.split():
            if len(word) < MIN_KEYWORD_LENGTH or word in _STOP_WORDS:
                continue
            keywords.add(word)
    return keywords


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 1.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0


def find_compare_candidates(
    selected: DeidentifiedPatient,
    patients: Sequence[DeidentifiedPatient],
    *,
    limit: int = MAX_CANDIDATES,
) -> list[CompareCandidate]:
    family = device_family(selected.device_model)
    keywords = history_keywords(selected.history)

    ranked: list[CompareCandidate] = []
    for patient in patients:
        if patient.id == selected.id:
            continue
        if device_family(patient.device_model) != family:
            continue
        age_gap = abs(patient.age - selected.age)
        if age_gap > AGE_WINDOW_YEARS:
            continue
        history_similarity = jaccard(keywords, history_keywords(patient.history))
        if history_similarity < MIN_HISTORY_SIMILARITY:
            continue
        age_similarity = 1.0 - min(age_gap, AGE_WINDOW_YEARS) / AGE_WINDOW_YEARS
        ranked.append(
            CompareCandidate(
                patient=patient,
                score=HISTORY_WEIGHT * history_similarity + AGE_WEIGHT * age_similarity,
                history_similarity=history_similarity,
                age_similarity=age_similarity,
            )
        )

    # Stable sort keeps source order among equal scores.
    ranked.sort(key=lambda item: item.score, reverse=True)
    return ranked[: max(0, int(limit))]
