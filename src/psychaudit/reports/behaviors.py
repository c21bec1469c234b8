"""Behavior monitoring log parser."""

from __future__ import annotations

from psychaudit.models import BehaviorEvent
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState


def parse_behaviors(raw: str, context: ParseContext | None = None) -> ParseResult:
    """One BehaviorEvent per dated line; the whole line is kept as the snippet."""
    result = ParseResult(ReportType.BEHAVIORS)
    state = ScanState()

    for text in state.scan(raw):
        state.observe_mrn(text)
        date = state.date_from(text)
        if date and state.current_mrn:
            result.add(state.current_mrn, BehaviorEvent(date=date, snippet=text))

    result.warnings = state.warnings
    return result
