"""Care-plan focus listing parser."""

from __future__ import annotations

import re

from psychaudit.models import CarePlanItem
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState

CAREPLAN_PSYCH_RE = re.compile(
    r"psychotropic|antipsychotic|behavior management|behavioral|agitation|hallucination|"
    r"anxiety|insomnia|delusion|mood|depression|bipolar|schiz|psychosis",
    re.IGNORECASE,
)

_LINE_RE = re.compile(r"^(.+?)\s*\(([A-Za-z0-9]+)\)\s+(.+)$")


def is_psych_related(text: str) -> bool:
    return bool(CAREPLAN_PSYCH_RE.search(text))


def parse_care_plans(raw: str, context: ParseContext | None = None) -> ParseResult:
    """Parse '<resident> (MRN) <focus text>' lines into CarePlanItems."""
    result = ParseResult(ReportType.CAREPLAN)
    state = ScanState()

    for text in state.scan(raw):
        m = _LINE_RE.match(text)
        if not m:
            continue
        mrn = m.group(2).upper()
        plan_text = m.group(3)
        result.add(mrn, CarePlanItem(text=plan_text, psych_related=is_psych_related(plan_text)))

    result.warnings = state.warnings
    return result
