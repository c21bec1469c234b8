"""Census roster parser — unit headers and room/name/MRN lines."""

from __future__ import annotations

import re

from psychaudit.core.utils import normalize_text
from psychaudit.models import Resident
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState

_EMPTY_BED_RE = re.compile(r"\bEMPTY\b", re.IGNORECASE)
_UNIT_RE = re.compile(r"(?:Unit\s*[:\-]?\s*Unit\s*|Unit\s+)(\d+)", re.IGNORECASE)
# "101-A John Doe (ABC123)"; room letter must be uppercase
_ROOM_NAME_MRN_RE = re.compile(r"^([0-9]{2,4}\s*[-–]?\s*[A-Z]?)\s+(.+?)\s*\(([A-Za-z0-9]+)\)")
_NAME_MRN_RE = re.compile(r"^(.+?)\s*\(([A-Za-z0-9]+)\)")


def parse_census(raw: str, context: ParseContext | None = None) -> ParseResult:
    """Parse a census roster into Resident records.

    A "Unit 3" (or "Unit: Unit 3") header applies to every following line
    until the next header. Lines flagged EMPTY are vacant beds.
    """
    result = ParseResult(ReportType.CENSUS)
    state = ScanState()

    for text in state.scan(raw):
        if _EMPTY_BED_RE.search(text):
            continue

        unit = _UNIT_RE.search(text)
        if unit:
            state.current_unit = f"Unit {unit.group(1)}"
            continue

        m = _ROOM_NAME_MRN_RE.match(text)
        if m:
            room, name, mrn = m.group(1), m.group(2), m.group(3)
        else:
            m = _NAME_MRN_RE.match(text)
            if not m:
                continue
            room, name, mrn = "", m.group(1), m.group(2)

        mrn = mrn.upper()
        result.add(
            mrn,
            Resident(
                mrn=mrn,
                name=normalize_text(name),
                room=normalize_text(room),
                unit=state.current_unit,
            ),
        )

    result.warnings = state.warnings
    return result
