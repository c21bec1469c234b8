"""Shared types for the line-scanning report parsers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterator

from psychaudit.core.utils import (
    extract_mrn,
    find_date_token,
    normalize_text,
    parse_date_string,
    split_lines,
)
from psychaudit.models import Resident


class ReportType(str, Enum):
    CENSUS = "census"
    MEDS = "meds"
    CONSULTS = "consults"
    BEHAVIORS = "behaviors"
    CAREPLAN = "careplan"
    GDR = "gdr"
    PSYCH_MD_ORDERS = "psych_md_orders"
    EPISODIC_BEHAVIORS = "episodic_behaviors"


@dataclass
class ParseContext:
    """Caller-supplied context for a parse call."""

    residents: list[Resident] = field(default_factory=list)  # for name -> MRN lookup
    custom_medication_map: dict[str, str] = field(default_factory=dict)
    today: date | None = None  # fallback date for undated orders

    def reference_today(self) -> date:
        return self.today or date.today()


@dataclass
class ScanState:
    """Cross-line context carried through one parse call."""

    current_unit: str = "UNKNOWN"
    current_mrn: str = ""
    line_no: int = 0
    warnings: list[str] = field(default_factory=list)

    def scan(self, raw: str) -> Iterator[str]:
        """Yield each non-blank normalized line, tracking its line number."""
        for line_no, line in enumerate(split_lines(raw), start=1):
            self.line_no = line_no
            text = normalize_text(line)
            if text:
                yield text

    def observe_mrn(self, text: str) -> str | None:
        """Update current_mrn from a '(MRN)' token on the line, if any."""
        mrn = extract_mrn(text)
        if mrn:
            self.current_mrn = mrn
        return mrn

    def date_from(self, text: str) -> str:
        """Parse the line's first date, warning when a date token is malformed."""
        token = find_date_token(text)
        if not token:
            return ""
        parsed = parse_date_string(token)
        if not parsed:
            self.warnings.append(f"Line {self.line_no}: unparseable date '{token}'")
        return parsed


@dataclass
class ParsedItem:
    """A parsed record tagged with the resident it belongs to."""

    mrn: str
    item: Any


@dataclass
class ParseResult:
    report_type: ReportType
    items: list[ParsedItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def add(self, mrn: str, item: Any) -> None:
        self.items.append(ParsedItem(mrn=mrn, item=item))

    def records(self) -> list[Any]:
        return [p.item for p in self.items]

    def by_mrn(self) -> dict[str, list[Any]]:
        """Group parsed records per resident, preserving input order."""
        grouped: dict[str, list[Any]] = {}
        for p in self.items:
            grouped.setdefault(p.mrn, []).append(p.item)
        return grouped
