"""Episodic behavior note parser.

Episodic notes are multi-line narratives. A note opens at an "Episodic
Behavior Note" header (or at a "Situation" label when no note is open) and runs
until the next header or the end of the input. Each finished note becomes one
event whose snippet is stitched together from its labelled sections.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from psychaudit.core.utils import normalize_text, parse_date_string
from psychaudit.models import EpisodicBehaviorEvent
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState

SNIPPET_LIMIT = 260

_NOTE_START_RE = re.compile(r"Episodic Behavior Note", re.IGNORECASE)
_SITUATION_START_RE = re.compile(r"Situation\s*:?", re.IGNORECASE)
_EFFECTIVE_DATE_RE = re.compile(r"Effective Date:\s*([0-9/-]+)", re.IGNORECASE)


def _labels(*patterns: str) -> re.Pattern:
    return re.compile("|".join(patterns), re.IGNORECASE)


# (start label, end labels, boilerplate prompt to drop, snippet prefix)
_SECTIONS = [
    (
        re.compile(r"Situation\s*:?", re.IGNORECASE),
        _labels("Immediate Action", "Physical Evaluation", "Intervention", "Notification",
                "Comments", "Author"),
        [
            re.compile(r"What behavior was observed\??", re.IGNORECASE),
            re.compile(r"What time did the behavior start\??[^.]*\.?", re.IGNORECASE),
            re.compile(r"Location where behavior was observed\??[^.]*\.?", re.IGNORECASE),
        ],
        "Situation",
    ),
    (
        re.compile(r"Immediate Action\s*:?", re.IGNORECASE),
        _labels("Physical Evaluation", "Intervention", "Notification", "Comments", "Author"),
        [re.compile(r"Immediate action/?s? were taken to ensure safety:?", re.IGNORECASE)],
        "Immediate action",
    ),
    (
        re.compile(r"Intervention\s*:?", re.IGNORECASE),
        _labels("Notification", "Comments", "Author"),
        [re.compile(r"The following non-pharmacological interventions were attempted:?",
                    re.IGNORECASE)],
        "Intervention",
    ),
    (
        re.compile(r"Resident response to non-pharmacological intervention/?s?\s*:?",
                   re.IGNORECASE),
        _labels("Was any medication", "Notification", "Comments", "Author"),
        [re.compile(r"Resident response to non-pharmacological intervention/?s?:?",
                    re.IGNORECASE)],
        "Response",
    ),
]


@dataclass
class _NoteBlock:
    mrn: str
    lines: list[str] = field(default_factory=list)

    def text(self) -> str:
        return " ".join(self.lines)


def _clean_section(value: str) -> str:
    return re.sub(r"^[:\-]\s*", "", normalize_text(value))


def extract_section(note: str, start: re.Pattern, end: re.Pattern) -> str:
    """Text between a start label and the first following end label."""
    m = start.search(note)
    if not m:
        return ""
    rest = note[m.end():]
    stop = end.search(rest)
    return _clean_section(rest[: stop.start()] if stop else rest)


def build_snippet(note_text: str) -> str:
    """Summarize a note from its Situation/Action/Intervention/Response sections."""
    normalized = normalize_text(note_text)
    parts = []
    for start, end, prompts, prefix in _SECTIONS:
        section = extract_section(normalized, start, end)
        for prompt in prompts:
            section = prompt.sub("", section, count=1)
        section = section.strip()
        if section:
            parts.append(f"{prefix}: {section}")

    summary = " ".join(parts) if parts else normalized
    if len(summary) > SNIPPET_LIMIT:
        return summary[: SNIPPET_LIMIT - 3] + "..."
    return summary


def note_date(note_text: str) -> str:
    """Prefer the 'Effective Date:' field, else the first date in the note."""
    m = _EFFECTIVE_DATE_RE.search(note_text)
    if m:
        parsed = parse_date_string(m.group(1))
        if parsed:
            return parsed
    return parse_date_string(note_text)


def parse_episodic_behaviors(raw: str, context: ParseContext | None = None) -> ParseResult:
    result = ParseResult(ReportType.EPISODIC_BEHAVIORS)
    state = ScanState()
    block: _NoteBlock | None = None

    def finalize(current: _NoteBlock | None) -> None:
        if current is None:
            return
        text = current.text()
        date = note_date(text)
        if current.mrn and date:
            result.add(current.mrn, EpisodicBehaviorEvent(date=date, snippet=build_snippet(text)))

    for text in state.scan(raw):
        mrn = state.observe_mrn(text)

        if _NOTE_START_RE.search(text) or (block is None and _SITUATION_START_RE.search(text)):
            finalize(block)
            block = _NoteBlock(mrn=state.current_mrn, lines=[text])
            continue

        if block is not None:
            if mrn and not block.mrn:
                block.mrn = mrn
            block.lines.append(text)

    finalize(block)
    result.warnings = state.warnings
    return result
