"""Psychiatric consult report parser."""

from __future__ import annotations

import re

from psychaudit.models import ConsultEvent
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState

SNIPPET_LIMIT = 150

_COMPLETE_RE = re.compile(r"complete", re.IGNORECASE)
_PENDING_RE = re.compile(r"pending", re.IGNORECASE)


def consult_status(text: str) -> str:
    if _COMPLETE_RE.search(text):
        return "Complete"
    if _PENDING_RE.search(text):
        return "Pending"
    return "Unknown"


def parse_consults(raw: str, context: ParseContext | None = None) -> ParseResult:
    """Every dated line under a known resident is one consult event.

    The resident is the most recent (MRN) seen, on this line or above it.
    """
    result = ParseResult(ReportType.CONSULTS)
    state = ScanState()

    for text in state.scan(raw):
        state.observe_mrn(text)
        date = state.date_from(text)
        if not date or not state.current_mrn:
            continue
        result.add(
            state.current_mrn,
            ConsultEvent(date=date, status=consult_status(text), snippet=text[:SNIPPET_LIMIT]),
        )

    result.warnings = state.warnings
    return result
