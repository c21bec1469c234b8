"""Compliance evaluation for one resident's monthly psychotropic review.

evaluate_compliance() is a pure function of (records, reference date, settings)
and recomputes the whole verdict on every call, so status and issues can never
drift apart. Rules, each independent:

- care plan:    CRITICAL when no care-plan item is psych-related
- behaviors:    WARNING when fewer than behavior_threshold notes fall inside
                behavior_window_days
- follow-up:    CRITICAL with neither consult nor order inside
                consult_recency_days; WARNING with only an order. Any dated
                consult in the window counts whatever its status, so a
                Pending consult satisfies the rule
- manual GDR:   CRITICAL when unset, done without a note, or contraindicated
                without reasons (or with "Other" but no detail)
- indications:  per medication; see _evaluate_indication()

A resident with no medications is UNKNOWN and no rule runs.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import replace
from datetime import date

from psychaudit.config import Settings, normalize_settings
from psychaudit.core.utils import within_days
from psychaudit.indications import LOW_CONFIDENCE_THRESHOLD, resolve_indication_match
from psychaudit.models import (
    COMPLIANT,
    CRITICAL,
    GDR_CONTRAINDICATED,
    GDR_DONE,
    GDR_NOT_SET,
    WARNING,
    ComplianceFinding,
    ComplianceResult,
    Medication,
    ResidentRecords,
)

_NEEDS_REVIEW_RE = re.compile(r"unknown|review|uncertain|tbd", re.IGNORECASE)


def period_end(month: str) -> date:
    """Last day of a YYYY-MM review period."""
    try:
        year, mon = (int(p) for p in month.split("-"))
        return date(year, mon, calendar.monthrange(year, mon)[1])
    except ValueError as e:
        raise ValueError(f"Review month must be YYYY-MM, got {month!r}") from e


def needs_review(indication: str) -> bool:
    return bool(_NEEDS_REVIEW_RE.search(indication))


class _Findings:
    """Ordered issue collector."""

    def __init__(self):
        self.findings: list[ComplianceFinding] = []

    def add(self, rule_id: str, severity: str, summary: str, **data) -> None:
        self.findings.append(ComplianceFinding(rule_id, severity, summary, data))

    def status(self) -> str:
        severities = {f.severity for f in self.findings}
        if CRITICAL in severities:
            return CRITICAL
        if WARNING in severities:
            return WARNING
        return COMPLIANT


def _evaluate_indication(
    med: Medication, settings: Settings, out: _Findings
) -> tuple[Medication, str]:
    """Check one medication's indication.

    Returns (annotated medication copy, indication status for this med).
    """
    indication = (med.indication or "").strip()
    drug = med.drug_name or med.display_name
    effective = med.effective_class

    if not indication or indication.lower() == "unknown":
        out.add("indication.missing", CRITICAL, f"Missing indication for {drug}",
                drug=drug, medication_class=effective)
        return replace(med, indication_match=None), "MISSING"

    if needs_review(indication):
        out.add("indication.needs_review", WARNING, f"Indication needs review for {drug}",
                drug=drug, indication=indication)
        return replace(med, indication_match=None), "NEEDS_REVIEW"

    allowed = settings.allowed_indications(effective)
    match = resolve_indication_match(indication, effective, allowed)
    pct = f"{round(match.confidence * 100)}%"
    status = "OK"

    if match.matched:
        if match.confidence < LOW_CONFIDENCE_THRESHOLD:
            out.add("indication.low_confidence", WARNING,
                    f"Indication match confidence low for {drug} ({pct})",
                    drug=drug, indication=indication, confidence=match.confidence,
                    source=match.source, label=match.label)
            status = "NEEDS_REVIEW"
    elif allowed:
        out.add("indication.mismatch", settings.indication_mismatch_severity,
                f"Indication mismatch for {drug} ({effective}, {pct})",
                drug=drug, indication=indication, medication_class=effective,
                confidence=match.confidence, allowed=list(allowed))
        status = "MISMATCH"

    return replace(med, indication_match=match), status


# MISSING outranks MISMATCH outranks NEEDS_REVIEW outranks OK
_INDICATION_RANK = {"OK": 0, "NEEDS_REVIEW": 1, "MISMATCH": 2, "MISSING": 3}


def evaluate_compliance(
    records: ResidentRecords,
    reference_date: date,
    settings: Settings | None = None,
) -> ComplianceResult:
    """Compute the full compliance verdict for one resident.

    Never raises for missing or odd data; the input is not modified.
    """
    settings = normalize_settings(settings)

    window = settings.behavior_window_days
    recent_behaviors = [b for b in records.behaviors if within_days(b.date, reference_date, window)]
    psych_care_plan = any(item.psych_related for item in records.care_plan)

    result = ComplianceResult(
        manual_gdr_status=records.manual_gdr.status,
        behavior_notes_count=len(recent_behaviors),
        care_plan_psych_present=psych_care_plan,
        medications=list(records.medications),
    )
    if not records.medications:
        return result

    out = _Findings()

    if not psych_care_plan:
        out.add("care_plan.psych_missing", CRITICAL, "Missing psychotropic care plan")

    threshold = settings.behavior_threshold
    if len(recent_behaviors) < threshold:
        out.add("behaviors.below_threshold", WARNING,
                f"Behavior monitoring below threshold "
                f"({len(recent_behaviors)}/{threshold} in {window} days)",
                count=len(recent_behaviors), threshold=threshold, window_days=window)

    consult_window = settings.consult_recency_days
    has_consult = any(within_days(c.date, reference_date, consult_window) for c in records.consults)
    has_order = any(
        within_days(o.date, reference_date, consult_window) for o in records.psych_md_orders
    )
    if has_consult:
        result.consult_status = "CONSULT"
    elif has_order:
        result.consult_status = "ORDER"
        out.add("follow_up.order_only", WARNING,
                f"Psychiatry order present but consult not completed (last {consult_window} days)",
                window_days=consult_window)
    else:
        result.consult_status = "MISSING"
        out.add("follow_up.missing", CRITICAL,
                f"No psychiatry consult or order in last {consult_window} days",
                window_days=consult_window)

    gdr = records.manual_gdr
    if gdr.status == GDR_NOT_SET:
        out.add("gdr.not_set", CRITICAL, "Manual GDR status not set")
    elif gdr.status == GDR_DONE:
        if not (gdr.note or "").strip():
            out.add("gdr.done_without_note", CRITICAL, "Manual GDR marked done without note")
    elif gdr.status == GDR_CONTRAINDICATED:
        reasons = gdr.contraindications
        if not reasons.any_checked():
            out.add("gdr.contraindicated_without_reason", CRITICAL,
                    "Manual GDR contraindicated without documented reasons")
        if reasons.other and not (reasons.other_text or "").strip():
            out.add("gdr.other_without_detail", CRITICAL,
                    "Manual GDR contraindicated: 'Other' selected without detail")

    indication_status = "OK"
    annotated = []
    for med in records.medications:
        med_copy, med_status = _evaluate_indication(med, settings, out)
        annotated.append(med_copy)
        if _INDICATION_RANK[med_status] > _INDICATION_RANK[indication_status]:
            indication_status = med_status

    result.status = out.status()
    result.findings = out.findings
    result.issues = [f.summary for f in out.findings]
    result.indication_status = indication_status
    result.missing_care_plan = not psych_care_plan
    result.medications = annotated
    return result


