"""MCP server for psychaudit — Claude parses reports and reviews compliance.

Run with: python -m psychaudit.mcp.server
Configure env: PSYCHAUDIT_CONFIG=/path/to/psychaudit.toml
"""

from __future__ import annotations

import os
from dataclasses import asdict
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from psychaudit.config import (
    Settings,
    load_settings,
    parse_custom_medication_map_text,
    parse_indication_map_text,
)
from psychaudit.drugs import classify_medication, is_psychotropic, normalize_drug_name
from psychaudit.indications import match_against_dictionary, resolve_indication_match
from psychaudit.reports import ParseContext, ReportType, parse_report
from psychaudit.review import ingest_report

CONFIG_PATH = os.environ.get("PSYCHAUDIT_CONFIG", "psychaudit.toml")

mcp = FastMCP(
    "psychaudit",
    instructions=(
        "Psychotropic medication compliance auditor for nursing-home reports.\n\n"
        "Key capabilities:\n"
        "- parse_report_text: Parse one pasted report (census, meds, consults, behaviors, "
        "careplan, psych_md_orders, episodic_behaviors) into structured records\n"
        "- review_reports: Run a full monthly review over several reports\n"
        "- classify_drug: Therapeutic class of a drug name\n"
        "- match_indication: Score an indication against the clinical dictionary "
        "and the facility's allowed indications\n"
        "- validate_mapping_text: Check facility mapping text for malformed lines\n\n"
        "Start with review_reports when you have a census and medication report. "
        "Issues are listed per resident with CRITICAL or WARNING severity."
    ),
)


def _get_settings() -> Settings:
    if not Path(CONFIG_PATH).exists():
        return Settings()
    return load_settings(CONFIG_PATH)


@mcp.tool()
def parse_report_text(report_type: str, text: str) -> dict | str:
    """Parse one pasted report into per-resident records.

    Args:
        report_type: One of census, meds, consults, behaviors, careplan, gdr,
            psych_md_orders, episodic_behaviors.
        text: Report text as copied from the EHR (plain text or HTML).
    """
    try:
        rtype = ReportType(report_type)
    except ValueError:
        valid = ", ".join(t.value for t in ReportType)
        return f"Error: Unknown report type '{report_type}'. Valid types: {valid}"

    settings = _get_settings()
    context = ParseContext(custom_medication_map=dict(settings.custom_medication_map))
    result = parse_report(rtype, text, context)
    return {
        "report_type": rtype.value,
        "count": len(result),
        "records": [asdict(p) for p in result.items],
        "warnings": result.warnings,
    }


@mcp.tool()
def review_reports(month: str, reports: dict[str, str]) -> dict | str:
    """Run a monthly compliance review over several reports.

    Args:
        month: Review period as YYYY-MM. Recency windows end on its last day.
        reports: Report type -> pasted text. Include "census" for names and rooms.

    Returns per-resident status, issues and counts, plus parse warnings.
    """
    try:
        rtypes = {ReportType(k): v for k, v in reports.items()}
    except ValueError as e:
        return f"Error: {e}"

    settings = _get_settings()
    residents = {}
    warnings = {}
    # census first so order lines can resolve resident names
    for rtype in sorted(rtypes, key=lambda t: t != ReportType.CENSUS):
        try:
            residents, result = ingest_report(residents, rtype, rtypes[rtype], month, settings)
        except ValueError as e:
            return f"Error: {e}"
        if result.warnings:
            warnings[rtype.value] = result.warnings

    return {
        "month": month,
        "residents": [
            {
                "mrn": r.mrn,
                "name": r.name,
                "room": r.room,
                "unit": r.unit,
                "status": r.compliance.status,
                "issues": r.compliance.issues,
                "consult_status": r.compliance.consult_status,
                "indication_status": r.compliance.indication_status,
                "counts": r.counts(),
            }
            for r in sorted(residents.values(), key=lambda r: r.mrn)
        ],
        "warnings": warnings,
    }


@mcp.tool()
def classify_drug(drug_name: str) -> dict:
    """Classify a drug name into its therapeutic class.

    Uses the built-in drug dictionary plus the facility's custom medication map.

    Args:
        drug_name: Raw name as it appears on a report, e.g. "Seroquel 25 MG Tablet".
    """
    settings = _get_settings()
    cls = classify_medication(drug_name, settings.custom_medication_map)
    return {
        "drug_name": drug_name,
        "normalized_name": normalize_drug_name(drug_name),
        "therapeutic_class": cls,
        "psychotropic": is_psychotropic(cls),
        "allowed_indications": settings.allowed_indications(cls),
    }


@mcp.tool()
def match_indication(indication: str, medication_class: str = "") -> dict:
    """Score an indication for a medication class.

    Args:
        indication: Free-text indication, e.g. "major depression" or "F32.9".
        medication_class: Therapeutic class; empty = dictionary lookup only.
    """
    if not medication_class:
        return asdict(match_against_dictionary(indication, None))
    settings = _get_settings()
    allowed = settings.allowed_indications(medication_class)
    return asdict(resolve_indication_match(indication, medication_class, allowed))


@mcp.tool()
def validate_mapping_text(indication_map_text: str = "", custom_medication_map_text: str = "") -> dict:
    """Validate facility mapping text before saving it.

    Args:
        indication_map_text: Lines of "Class: indication, indication".
        custom_medication_map_text: Lines of "drug name = Class".

    Returns the parsed mappings and per-line errors (1-based line numbers).
    """
    indication_map, indication_errors = parse_indication_map_text(indication_map_text)
    custom_map, custom_errors = parse_custom_medication_map_text(custom_medication_map_text)
    return {
        "indication_map": indication_map,
        "indication_map_errors": [asdict(e) for e in indication_errors],
        "custom_medication_map": custom_map,
        "custom_medication_map_errors": [asdict(e) for e in custom_errors],
    }


def main():
    mcp.run()


if __name__ == "__main__":
    main()
