"""Physician order parser — psychiatry consult/evaluation orders only.

Order listings often omit the MRN, so a line without an (MRN) token is matched
to a resident whose name appears in it, using the census already on file.
"""

from __future__ import annotations

import re

from psychaudit.core.utils import extract_mrn, normalize_text
from psychaudit.models import PsychMdOrder
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState

ORDER_TEXT_LIMIT = 200

PSYCH_ORDER_RE = re.compile(
    r"\b(psychiatry|psychiatric|psych)\b.*\b(consult|eval|evaluation)\b"
    r"|\b(consult|eval|evaluation)\b.*\b(psychiatry|psychiatric|psych)\b",
    re.IGNORECASE,
)
_COMPLETED_RE = re.compile(r"complete|completed", re.IGNORECASE)


def parse_psych_md_orders(raw: str, context: ParseContext | None = None) -> ParseResult:
    context = context or ParseContext()
    result = ParseResult(ReportType.PSYCH_MD_ORDERS)
    state = ScanState()

    known = [
        (r.mrn.upper(), normalize_text(r.name).lower())
        for r in context.residents
    ]
    fallback_date = context.reference_today().isoformat()

    for text in state.scan(raw):
        if not PSYCH_ORDER_RE.search(text):
            continue

        mrn = extract_mrn(text)
        if not mrn:
            lower = text.lower()
            mrn = next((m for m, name in known if name and name in lower), None)
        if not mrn:
            continue

        date = state.date_from(text) or fallback_date
        result.add(
            mrn,
            PsychMdOrder(
                date=date,
                order_text=text[:ORDER_TEXT_LIMIT],
                status="Completed" if _COMPLETED_RE.search(text) else "Ordered",
            ),
        )

    result.warnings = state.warnings
    return result
