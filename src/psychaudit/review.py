"""Per-period review accumulator — merge parsed reports into resident records.

A review period (YYYY-MM) holds one ResidentRecords per MRN. Parse results are
merged by report type:

- census       updates name/room/unit, keeps everything else
- meds         replaces the resident's medication list
- behaviors    appended, deduplicated by date
- consults     appended, deduplicated by (date, snippet)
- orders       appended, deduplicated by (date, order text)
- episodic     appended, deduplicated by (date, snippet)
- care plan    appended, deduplicated by text

Every function returns a new mapping; the caller's state is never modified.
Merging the same parse result twice leaves the records unchanged apart from
audit entries.
"""

from __future__ import annotations

import copy
from datetime import datetime

from psychaudit.analysis.compliance import evaluate_compliance, period_end
from psychaudit.config import Settings, normalize_settings
from psychaudit.core.utils import merge_unique, to_date
from psychaudit.drugs import ANTIPSYCHOTIC
from psychaudit.models import (
    AuditEntry,
    GdrEvent,
    ManualGdrData,
    Medication,
    Resident,
    ResidentRecords,
    ReviewHistoryItem,
)
from psychaudit.reports import ParseContext, ParseResult, ReportType, parse_report

Residents = dict[str, ResidentRecords]

# (ResidentRecords attribute, dedup key, audit label) for append-only types
_APPEND_RULES = {
    ReportType.BEHAVIORS: ("behaviors", lambda e: e.date, None),
    ReportType.CONSULTS: ("consults", lambda e: (e.date, e.snippet), "Consult added"),
    ReportType.PSYCH_MD_ORDERS: (
        "psych_md_orders", lambda e: (e.date, e.order_text), "Psych MD order added"
    ),
    ReportType.EPISODIC_BEHAVIORS: (
        "episodic_behaviors", lambda e: (e.date, e.snippet), "Episodic behavior added"
    ),
    ReportType.CAREPLAN: ("care_plan", lambda e: e.text, "Care plan item added"),
    ReportType.GDR: ("gdr_events", lambda e: e.date, "GDR event added"),
}


def _audit(record: ResidentRecords, message: str, kind: str = "update") -> None:
    timestamp = datetime.now().isoformat(timespec="seconds")
    record.logs.append(AuditEntry(timestamp=timestamp, message=message, kind=kind))


def _ensure(residents: Residents, mrn: str) -> ResidentRecords:
    mrn = mrn.upper()
    if mrn not in residents:
        record = ResidentRecords(mrn=mrn)
        _audit(record, "Partial record created", "info")
        residents[mrn] = record
    return residents[mrn]


def _first_antipsychotic_date(meds: list[Medication]) -> str:
    dated = [
        m.start_date for m in meds
        if m.effective_class == ANTIPSYCHOTIC and to_date(m.start_date) is not None
    ]
    return min(dated) if dated else ""


def merge_parse_result(residents: Residents, result: ParseResult) -> Residents:
    """Merge one parse result into a copy of the period's residents."""
    merged = copy.deepcopy(residents)
    rtype = ReportType(result.report_type)

    if rtype == ReportType.CENSUS:
        for parsed in result.items:
            ident: Resident = parsed.item
            record = _ensure(merged, ident.mrn)
            record.name = ident.name
            record.room = ident.room
            record.unit = ident.unit
        return merged

    if rtype == ReportType.MEDS:
        for mrn, meds in result.by_mrn().items():
            record = _ensure(merged, mrn)
            record.medications = copy.deepcopy(meds)
            first_ap = _first_antipsychotic_date(meds)
            if first_ap and not record.first_antipsychotic_date:
                record.first_antipsychotic_date = first_ap
                _audit(record, f"First antipsychotic date set: {first_ap}")
            _audit(record, f"Medications updated ({len(meds)} active)")
        return merged

    attr, key_func, label = _APPEND_RULES[rtype]
    for mrn, events in result.by_mrn().items():
        record = _ensure(merged, mrn)
        combined, added = merge_unique(getattr(record, attr), copy.deepcopy(events), key_func)
        setattr(record, attr, combined)
        if label:
            for event in added:
                _audit(record, f"{label}: {getattr(event, 'date', '') or getattr(event, 'text', '')}")
        elif added:
            _audit(record, f"{len(added)} behavior note(s) added")
    return merged


def recompute_compliance(
    residents: Residents, month: str, settings: Settings | None = None
) -> Residents:
    """Re-evaluate every resident as of the last day of the review month."""
    reference = period_end(month)
    settings = normalize_settings(settings)
    updated = copy.deepcopy(residents)
    for record in updated.values():
        verdict = evaluate_compliance(record, reference, settings)
        record.compliance = verdict
        record.medications = copy.deepcopy(verdict.medications)
    return updated


def ingest_report(
    residents: Residents,
    report_type: ReportType | str,
    raw_text: str,
    month: str,
    settings: Settings | None = None,
    context: ParseContext | None = None,
) -> tuple[Residents, ParseResult]:
    """Parse a report, merge it into the period and recompute compliance.

    When no context is given, the period's own census supplies resident names
    for order matching and the settings supply custom drug classes.
    """
    settings = normalize_settings(settings)
    if context is None:
        context = ParseContext(
            residents=[r.identity() for r in residents.values()],
            custom_medication_map=dict(settings.custom_medication_map),
        )
    result = parse_report(report_type, raw_text, context)
    merged = merge_parse_result(residents, result)
    return recompute_compliance(merged, month, settings), result


def set_manual_gdr(
    residents: Residents,
    mrn: str,
    data: ManualGdrData,
    month: str,
    settings: Settings | None = None,
    updated_by: str = "",
) -> Residents:
    """Record a staff GDR decision and recompute compliance."""
    updated = copy.deepcopy(residents)
    record = _ensure(updated, mrn)
    manual = copy.deepcopy(data)
    manual.updated_at = manual.updated_at or datetime.now().isoformat(timespec="seconds")
    manual.updated_by = updated_by or manual.updated_by
    record.manual_gdr = manual
    _audit(record, f"Manual GDR set to {manual.status}")
    return recompute_compliance(updated, month, settings)


def add_gdr_event(residents: Residents, mrn: str, event: GdrEvent) -> Residents:
    """Append a staff-entered GDR timeline event (deduplicated by date)."""
    result = ParseResult(ReportType.GDR)
    result.add(mrn.upper(), event)
    return merge_parse_result(residents, result)


def review_history(reviews: dict[str, Residents], mrn: str) -> list[ReviewHistoryItem]:
    """Compliance snapshot per review month for one resident, newest first."""
    mrn = mrn.upper()
    history = []
    for month in sorted(reviews, reverse=True):
        record = reviews[month].get(mrn)
        if record is None:
            continue
        history.append(
            ReviewHistoryItem(
                month=month,
                status=record.compliance.status,
                issue_count=len(record.compliance.issues),
            )
        )
    return history
