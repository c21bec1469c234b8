"""Unified data model for parsed report records and compliance results.

Every parser emits these dataclasses; the review accumulator groups them into
one ResidentRecords per resident per review period.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

COMPLIANT = "COMPLIANT"
WARNING = "WARNING"
CRITICAL = "CRITICAL"
UNKNOWN = "UNKNOWN"

GDR_NOT_SET = "NOT_SET"
GDR_DONE = "DONE"
GDR_CONTRAINDICATED = "CONTRAINDICATED"


@dataclass
class Resident:
    """Resident identity from the census."""

    mrn: str  # uppercased canonical form
    name: str = ""
    room: str = ""
    unit: str = ""


@dataclass
class IndicationMatchResult:
    """Outcome of matching an indication against the dictionary or facility map."""

    matched: bool = False
    confidence: float = 0.0
    source: str = "none"  # clinical-dictionary, indication-map, none
    label: str | None = None
    entry_id: str | None = None


@dataclass
class Medication:
    """One line of a medication report."""

    mrn: str
    drug_name: str = ""  # short name, e.g. "Abilify"
    display_name: str = ""  # name + strength + form
    normalized_name: str = ""  # classifier lookup key
    therapeutic_class: str = "Other"
    class_override: str | None = None
    frequency: str = ""
    dose: str = ""
    start_date: str = ""  # ISO YYYY-MM-DD
    indication: str = "Unknown"
    indication_match: IndicationMatchResult | None = None

    @property
    def effective_class(self) -> str:
        return self.class_override or self.therapeutic_class


@dataclass
class ConsultEvent:
    date: str  # ISO YYYY-MM-DD
    status: str = "Unknown"  # Complete, Pending, Unknown
    snippet: str = ""


@dataclass
class BehaviorEvent:
    date: str
    snippet: str = ""


@dataclass
class PsychMdOrder:
    date: str
    order_text: str = ""
    status: str = "Ordered"  # Ordered, Completed


@dataclass
class EpisodicBehaviorEvent:
    date: str
    snippet: str = ""


@dataclass
class CarePlanItem:
    text: str
    psych_related: bool = False


@dataclass
class GdrEvent:
    """A dated GDR timeline entry recorded by staff."""

    date: str
    status: str = ""
    medication: str = ""
    dose: str = ""
    last_psych_eval: str = ""


@dataclass
class GdrContraindications:
    symptoms_returned: bool = False
    additional_gdr_likely_to_impair: bool = False
    risk_to_self_or_others: bool = False
    other: bool = False
    other_text: str = ""

    def any_checked(self) -> bool:
        return (
            self.symptoms_returned
            or self.additional_gdr_likely_to_impair
            or self.risk_to_self_or_others
            or self.other
        )


@dataclass
class ManualGdrData:
    """Staff-entered GDR status for one resident in one review period."""

    status: str = GDR_NOT_SET  # NOT_SET, DONE, CONTRAINDICATED
    contraindications: GdrContraindications = field(default_factory=GdrContraindications)
    note: str = ""
    updated_at: str = ""
    updated_by: str = ""


@dataclass
class AuditEntry:
    timestamp: str
    message: str
    kind: str = "info"  # info, update, alert


@dataclass
class ComplianceFinding:
    """One explainable rule outcome behind an issue message."""

    rule_id: str
    severity: str  # CRITICAL, WARNING
    summary: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ComplianceResult:
    """Full compliance verdict for one resident at one reference date."""

    status: str = UNKNOWN
    issues: list[str] = field(default_factory=list)
    findings: list[ComplianceFinding] = field(default_factory=list)
    indication_status: str = "OK"  # OK, MISSING, MISMATCH, NEEDS_REVIEW
    consult_status: str = "MISSING"  # CONSULT, ORDER, MISSING
    manual_gdr_status: str = GDR_NOT_SET
    behavior_notes_count: int = 0
    care_plan_psych_present: bool = False
    missing_care_plan: bool = False
    medications: list[Medication] = field(default_factory=list)


@dataclass
class ResidentRecords:
    """Everything known about one resident within one review period."""

    mrn: str
    name: str = "Unknown"
    room: str = ""
    unit: str = ""
    medications: list[Medication] = field(default_factory=list)
    consults: list[ConsultEvent] = field(default_factory=list)
    behaviors: list[BehaviorEvent] = field(default_factory=list)
    gdr_events: list[GdrEvent] = field(default_factory=list)
    care_plan: list[CarePlanItem] = field(default_factory=list)
    psych_md_orders: list[PsychMdOrder] = field(default_factory=list)
    episodic_behaviors: list[EpisodicBehaviorEvent] = field(default_factory=list)
    manual_gdr: ManualGdrData = field(default_factory=ManualGdrData)
    logs: list[AuditEntry] = field(default_factory=list)
    first_antipsychotic_date: str = ""
    compliance: ComplianceResult = field(default_factory=ComplianceResult)

    def identity(self) -> Resident:
        return Resident(mrn=self.mrn, name=self.name, room=self.room, unit=self.unit)

    def counts(self) -> dict[str, int]:
        """Return record counts per collection."""
        return {
            "medications": len(self.medications),
            "consults": len(self.consults),
            "behaviors": len(self.behaviors),
            "gdr_events": len(self.gdr_events),
            "care_plan": len(self.care_plan),
            "psych_md_orders": len(self.psych_md_orders),
            "episodic_behaviors": len(self.episodic_behaviors),
        }


@dataclass
class ReviewHistoryItem:
    month: str  # YYYY-MM
    status: str
    issue_count: int
