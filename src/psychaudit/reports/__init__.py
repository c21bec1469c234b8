"""Report parsers — one per report type, all pure functions of (text, context).

Use parse_report() to dispatch on a ReportType; the individual parse_* functions
are importable for callers that already know the report shape.
"""

from __future__ import annotations

from psychaudit.core.html import html_to_text
from psychaudit.reports.base import (
    ParseContext,
    ParsedItem,
    ParseResult,
    ReportType,
    ScanState,
)
from psychaudit.reports.behaviors import parse_behaviors
from psychaudit.reports.care_plan import parse_care_plans
from psychaudit.reports.census import parse_census
from psychaudit.reports.consults import parse_consults
from psychaudit.reports.episodic import parse_episodic_behaviors
from psychaudit.reports.medications import parse_medications
from psychaudit.reports.orders import parse_psych_md_orders


def parse_gdr(raw: str, context: ParseContext | None = None) -> ParseResult:
    """Dated GDR reports are not parsed; GDR status is recorded by staff."""
    result = ParseResult(ReportType.GDR)
    if raw and raw.strip():
        result.warnings.append(
            "GDR reports are not parsed automatically; record GDR status manually."
        )
    return result


PARSERS = {
    ReportType.CENSUS: parse_census,
    ReportType.MEDS: parse_medications,
    ReportType.CONSULTS: parse_consults,
    ReportType.BEHAVIORS: parse_behaviors,
    ReportType.CAREPLAN: parse_care_plans,
    ReportType.GDR: parse_gdr,
    ReportType.PSYCH_MD_ORDERS: parse_psych_md_orders,
    ReportType.EPISODIC_BEHAVIORS: parse_episodic_behaviors,
}


def parse_report(
    report_type: ReportType | str,
    raw_text: str,
    context: ParseContext | None = None,
) -> ParseResult:
    """Parse one pasted report.

    HTML exports are flattened to lines first. Raises ValueError for an
    unknown report type; bad lines inside the report never raise.
    """
    rtype = ReportType(report_type)
    text = html_to_text(raw_text or "")
    return PARSERS[rtype](text, context)


__all__ = [
    "PARSERS",
    "ParseContext",
    "ParseResult",
    "ParsedItem",
    "ReportType",
    "ScanState",
    "parse_behaviors",
    "parse_care_plans",
    "parse_census",
    "parse_consults",
    "parse_episodic_behaviors",
    "parse_gdr",
    "parse_medications",
    "parse_psych_md_orders",
    "parse_report",
]
