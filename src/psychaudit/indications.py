"""Fuzzy indication matching against a clinical dictionary or facility map.

An indication ("for agitation in dementia", "F32.9 depression") is scored
against the dictionary entries for the medication's therapeutic class:

1. An embedded ICD-10 or SNOMED code equal to one of an entry's codes is an
   immediate match at 0.95 confidence.
2. Otherwise every label and synonym is scored with score_text_match() and the
   best entry wins; 0.6 or better counts as matched.
3. When the dictionary has no match, the facility's allowed-indication strings
   for the class are scored the same way.

"No match" is a normal result, never an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

from psychaudit.models import IndicationMatchResult

DICTIONARY_PATH = Path(__file__).parent / "data" / "indications.yaml"

MATCH_THRESHOLD = 0.6
CODE_MATCH_CONFIDENCE = 0.95
LOW_CONFIDENCE_THRESHOLD = 0.75

SOURCE_DICTIONARY = "clinical-dictionary"
SOURCE_INDICATION_MAP = "indication-map"
SOURCE_NONE = "none"

STOP_WORDS = frozenset({
    "a", "an", "and", "for", "of", "or", "the", "to", "with", "per", "some",
    "agent", "agents", "short", "term", "related", "dependent", "other", "cns",
    "condition", "conditions", "disorder", "disorders",
})

_ICD10_RE = re.compile(r"\b([A-Z][0-9][0-9A-Z](?:\.[0-9A-Z]+)?)\b")
_SNOMED_RE = re.compile(r"\b(\d{6,9})\b")
_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class IndicationCode:
    system: str  # ICD-10, SNOMED
    code: str


@dataclass
class IndicationEntry:
    """One diagnosis in the clinical dictionary."""

    id: str
    label: str
    medication_class: str
    codes: list[IndicationCode] = field(default_factory=list)
    synonyms: list[str] = field(default_factory=list)

    def terms(self) -> list[str]:
        return [self.label, *self.synonyms]


def load_dictionary(path: str | Path = DICTIONARY_PATH) -> list[IndicationEntry]:
    """Load clinical dictionary entries from a YAML file."""
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or []

    entries = []
    for item in raw:
        entries.append(
            IndicationEntry(
                id=str(item["id"]),
                label=str(item["label"]),
                medication_class=str(item["medication_class"]),
                codes=[
                    IndicationCode(system=str(c["system"]), code=str(c["code"]))
                    for c in item.get("codes", [])
                ],
                synonyms=[str(s) for s in item.get("synonyms", [])],
            )
        )
    return entries


@lru_cache(maxsize=1)
def default_dictionary() -> tuple[IndicationEntry, ...]:
    return tuple(load_dictionary())


def _norm(text: str | None) -> str:
    return (text or "").strip().lower()


def tokenize(text: str) -> list[str]:
    """Split into lowercase alphanumeric tokens, dropping noise words."""
    return [
        tok for tok in _TOKEN_SPLIT_RE.split(_norm(text))
        if len(tok) > 1 and tok not in STOP_WORDS
    ]


def token_overlap_ratio(left: str, right: str) -> float:
    left_tokens = tokenize(left)
    right_tokens = tokenize(right)
    if not left_tokens or not right_tokens:
        return 0.0
    overlap = sum(1 for tok in right_tokens if tok in left_tokens)
    return overlap / max(len(left_tokens), len(right_tokens))


def score_text_match(indication: str, candidate: str) -> float:
    """Similarity score in {0, 0.5, 0.65, 0.8, 0.85, 1.0}.

    Exact (case-insensitive) equality scores 1.0 and containment in either
    direction 0.85, so a superstring always beats any partial token overlap.
    """
    a = _norm(indication)
    b = _norm(candidate)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.85

    overlap = token_overlap_ratio(a, b)
    if overlap >= 0.75:
        return 0.8
    if overlap >= 0.5:
        return 0.65
    if overlap >= 0.35:
        return 0.5
    return 0.0


def extract_codes(text: str) -> list[str]:
    """Find ICD-10-shaped and SNOMED-shaped codes in free text."""
    if not text:
        return []
    upper = text.upper()
    return _ICD10_RE.findall(upper) + _SNOMED_RE.findall(upper)


def match_against_dictionary(
    indication: str,
    medication_class: str | None,
    dictionary: list[IndicationEntry] | tuple[IndicationEntry, ...] | None = None,
) -> IndicationMatchResult:
    """Best dictionary entry for the class; a None class searches every entry."""
    entries = default_dictionary() if dictionary is None else dictionary
    candidates = [
        e for e in entries if medication_class is None or e.medication_class == medication_class
    ]
    codes = set(extract_codes(indication))

    best = IndicationMatchResult()
    for entry in candidates:
        if any(c.code.upper() in codes for c in entry.codes):
            return IndicationMatchResult(
                matched=True,
                confidence=CODE_MATCH_CONFIDENCE,
                source=SOURCE_DICTIONARY,
                label=entry.label,
                entry_id=entry.id,
            )
        score = max((score_text_match(indication, term) for term in entry.terms()), default=0.0)
        if score > best.confidence:
            best = IndicationMatchResult(
                matched=score >= MATCH_THRESHOLD,
                confidence=score,
                source=SOURCE_DICTIONARY,
                label=entry.label,
                entry_id=entry.id,
            )

    if not best.matched:
        return IndicationMatchResult(matched=False, confidence=best.confidence, source=SOURCE_NONE)
    return best


def match_indication_map(indication: str, allowed: list[str]) -> IndicationMatchResult:
    """Score an indication against a facility's allowed strings for a class."""
    if not indication or not allowed:
        return IndicationMatchResult()

    best_score = 0.0
    best_label = None
    for candidate in allowed:
        score = score_text_match(indication, candidate)
        if score > best_score:
            best_score = score
            best_label = candidate

    matched = best_score >= MATCH_THRESHOLD
    return IndicationMatchResult(
        matched=matched,
        confidence=best_score,
        source=SOURCE_INDICATION_MAP if matched else SOURCE_NONE,
        label=best_label,
    )


def resolve_indication_match(
    indication: str,
    medication_class: str,
    allowed: list[str],
    dictionary: list[IndicationEntry] | None = None,
) -> IndicationMatchResult:
    """Dictionary first, facility indication map second."""
    result = match_against_dictionary(indication, medication_class, dictionary)
    if result.matched:
        return result
    return match_indication_map(indication, allowed)
