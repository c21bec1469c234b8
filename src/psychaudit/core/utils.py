"""Shared utility functions for text normalization, dates, MRNs and merging."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Callable, TypeVar

T = TypeVar("T")

DATE_TOKEN_RE = re.compile(r"(\d{1,2})[-/](\d{1,2})[-/](\d{2,4})")
MRN_RE = re.compile(r"\(([A-Za-z0-9]+)\)")

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def normalize_text(text: str | None) -> str:
    """Collapse whitespace (including non-breaking spaces) and trim."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.replace("\u00a0", " ")).strip()


def split_lines(raw: str | None) -> list[str]:
    return _LINE_SPLIT_RE.split(raw or "")


def find_date_token(text: str) -> str:
    """Return the first slash/dash-delimited numeric date token, or ''."""
    m = DATE_TOKEN_RE.search(text or "")
    return m.group(0) if m else ""


def parse_date_string(text: str) -> str:
    """Parse the first US-style M/D/Y date in text to ISO YYYY-MM-DD.

    Two-digit years below 50 land in the 2000s, the rest in the 1900s.
    An out-of-range month (1-12) or day (1-31) gives '' rather than a guess:

        "01/02/99"   -> "1999-01-02"
        "01/02/49"   -> "2049-01-02"
        "13/40/2024" -> ""
    """
    if not text or not text.strip():
        return ""
    m = DATE_TOKEN_RE.search(text.strip())
    if not m:
        return ""

    month = int(m.group(1))
    day = int(m.group(2))
    year = int(m.group(3))
    if year < 100:
        year = 2000 + year if year < 50 else 1900 + year

    if month < 1 or month > 12 or day < 1 or day > 31:
        return ""
    return f"{year}-{month:02d}-{day:02d}"


def to_date(iso: str) -> date | None:
    """Convert an ISO YYYY-MM-DD string to a date, None when unparseable."""
    if not iso:
        return None
    try:
        return date.fromisoformat(iso[:10])
    except ValueError:
        return None


def within_days(iso: str, reference: date, days: int) -> bool:
    """True when iso is no more than `days` days before reference.

    Dates after the reference count as within the window.
    """
    d = to_date(iso)
    if d is None:
        return False
    return (reference - d).days <= days


def extract_mrn(text: str) -> str | None:
    """Return the first parenthesised alphanumeric token, uppercased."""
    m = MRN_RE.search(text or "")
    return m.group(1).upper() if m else None


def merge_unique(
    existing: list[T], incoming: list[T], key_func: Callable[[T], Any]
) -> tuple[list[T], list[T]]:
    """Append incoming items whose key is not already present.

    Returns (merged, added). Existing items keep their order and are never
    dropped, even when two of them share a key.
    """
    seen = {key_func(item) for item in existing}
    added = []
    for item in incoming:
        k = key_func(item)
        if k not in seen:
            seen.add(k)
            added.append(item)
    return existing + added, added
