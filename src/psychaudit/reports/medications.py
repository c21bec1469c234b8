"""Medication order listing parser.

Expected line shape::

    Doe, John (ABC123) Quetiapine Fumarate Tablet 25 MG Give 1 tablet by mouth
        at bedtime for agitation 01/15/2024 ANTIPSYCHOTICS/ANTIMANIC AGENTS

Everything after the (MRN) token runs through an ordered list of extraction
stages. Each stage takes the remaining text and returns (value, remaining), so
the pipeline stays linear and each stage can be tested on its own:

    start date -> class label -> indication -> name/dose vs instructions
    -> short drug name
"""

from __future__ import annotations

import re

from psychaudit.core.utils import DATE_TOKEN_RE, normalize_text, parse_date_string
from psychaudit.drugs import classify_medication, extract_class_label, normalize_drug_name
from psychaudit.models import Medication
from psychaudit.reports.base import ParseContext, ParseResult, ReportType, ScanState

UNKNOWN_INDICATION = "Unknown"
UNRESOLVED_FREQUENCY = "See Order"

_LINE_RE = re.compile(r"^(.+?)\s*\(([A-Za-z0-9]+)\)\s+(.+)$")

_INDICATION_RE = re.compile(
    r"\bfor\s+([a-zA-Z0-9\s/.,\-]+?)"
    r"(?=\s*$|\s+(?:Start|Date|Give|Take|Apply|Inject|Inhale|Use|By|Orally|Topically)\b)",
    re.IGNORECASE,
)
_CONDITION_KEYWORD_RE = re.compile(
    r"depression|anxiety|psychosis|insomnia|schizophrenia|agitation|bipolar|pain",
    re.IGNORECASE,
)

# Start of the administration instructions ("sig")
_SIG_START_RE = re.compile(
    r"\b(?:Give|Take|Apply|Inject|Inhale|Infuse|Use|Instill|Place|Patch|Spray|Chew|Swallow|Dissolve)\b"
    r"|\b(?:\d+|One|Two|Three|Four|Five|Half)\s+"
    r"(?:Tablet|Tab|Cap|Capsule|Puff|Spray|Drop|Patch|App|Application|Inj|Injection)s?\b",
    re.IGNORECASE,
)
_FORM_STRENGTH_RE = re.compile(
    r"\b(?:Oral|Tablet|Tab|Capsule|Cap|Soln|Solution|Susp|Inj|MG|MCG|ML)\b|%",
    re.IGNORECASE,
)
_FREQUENCY_RE = re.compile(r"\b(?:BID|TID|QID|Daily|QAM|QPM|PRN|Once)\b", re.IGNORECASE)


def extract_start_date(text: str) -> tuple[str, str]:
    """Pull the first numeric date out of the text.

    Returns (iso_date, remaining). A malformed date is still removed from the
    text but yields ''.
    """
    m = DATE_TOKEN_RE.search(text)
    if not m:
        return "", text
    remaining = normalize_text(text[: m.start()] + text[m.end():])
    return parse_date_string(m.group(0)), remaining


def _dedupe_words(phrase: str) -> str:
    seen = set()
    words = []
    for word in phrase.split():
        lower = word.lower()
        if lower not in seen:
            seen.add(lower)
            words.append(word)
    return " ".join(words)


def extract_indication(text: str) -> tuple[str, str]:
    """Find the 'for <condition>' phrase, else a trailing condition keyword."""
    m = _INDICATION_RE.search(text)
    if m:
        indication = _dedupe_words(m.group(1).strip())
        remaining = normalize_text(text[: m.start()] + text[m.end():])
        # Some exports repeat the indication at the end of the line
        remaining = re.sub(
            r"\s+" + re.escape(indication) + r"$", "", remaining, flags=re.IGNORECASE
        ).strip()
        return indication, remaining

    words = text.split(" ")
    if len(words) > 2:
        last = words[-1]
        if len(last) > 3 and _CONDITION_KEYWORD_RE.search(last):
            return last, text[: text.rfind(last)].strip()

    return UNKNOWN_INDICATION, text


def split_instructions(text: str) -> tuple[str, str]:
    """Split 'name + dose' from administration instructions.

    Returns (name_and_dose, frequency). When no instruction marker follows
    the drug name, the frequency is left unresolved.
    """
    m = _SIG_START_RE.search(text)
    if m and m.start() > 0:
        return text[: m.start()].strip(), text[m.start():].strip()
    return text, UNRESOLVED_FREQUENCY


def extract_drug_name(name_and_dose: str) -> tuple[str, str]:
    """Approximate the drug-name boundary at the first form/strength token.

    Returns (drug_name, remainder). Falls back to the first word.
    """
    first_word = name_and_dose.split(" ")[0] if name_and_dose else ""
    m = _FORM_STRENGTH_RE.search(name_and_dose)
    if m and m.start() > 0:
        drug_name = name_and_dose[: m.start()].strip()
        if drug_name:
            return drug_name, name_and_dose[m.start():].strip()
    return first_word, name_and_dose[len(first_word):].strip()


def parse_medication_text(mrn: str, raw_med_text: str, custom_map: dict[str, str] | None = None,
                          state: ScanState | None = None) -> Medication:
    """Run the extraction stages over the text following a (MRN) token."""
    text = normalize_text(raw_med_text)

    date_token = DATE_TOKEN_RE.search(text)
    start_date, text = extract_start_date(text)
    if date_token and not start_date and state is not None:
        state.warnings.append(f"Line {state.line_no}: unparseable date '{date_token.group(0)}'")

    class_override, text = extract_class_label(text)
    indication, text = extract_indication(text)
    name_and_dose, frequency = split_instructions(text)
    drug_name, tail = extract_drug_name(name_and_dose)

    if frequency == UNRESOLVED_FREQUENCY and tail and _FREQUENCY_RE.search(tail):
        frequency = tail

    return Medication(
        mrn=mrn,
        drug_name=drug_name,
        display_name=name_and_dose,
        normalized_name=normalize_drug_name(name_and_dose),
        therapeutic_class=classify_medication(name_and_dose, custom_map),
        class_override=class_override,
        frequency=frequency,
        dose=name_and_dose,
        start_date=start_date,
        indication=indication,
    )


def parse_medications(raw: str, context: ParseContext | None = None) -> ParseResult:
    """Parse a medication listing into one Medication per order line."""
    context = context or ParseContext()
    result = ParseResult(ReportType.MEDS)
    state = ScanState()

    for text in state.scan(raw):
        m = _LINE_RE.match(text)
        if not m:
            continue
        mrn = m.group(2).upper()
        med = parse_medication_text(mrn, m.group(3), context.custom_medication_map, state)
        result.add(mrn, med)

    result.warnings = state.warnings
    return result
