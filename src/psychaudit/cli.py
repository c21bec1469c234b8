#!/usr/bin/env python3
"""CLI entry point for psychaudit package.

Usage:
    psychaudit parse <type> <file>
    psychaudit review --month YYYY-MM --census <file> --meds <file> [...] [--json]
    psychaudit init-config [--output psychaudit.toml]
    psychaudit check-mappings [--indications <file>] [--medications <file>]
    psychaudit serve-mcp [--config psychaudit.toml]
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from psychaudit.config import DEFAULT_CONFIG_PATH
from psychaudit.reports.base import ReportType

# review flag -> report type, in ingest order (census first so names resolve)
REVIEW_INPUTS = [
    ("census", ReportType.CENSUS),
    ("meds", ReportType.MEDS),
    ("consults", ReportType.CONSULTS),
    ("behaviors", ReportType.BEHAVIORS),
    ("careplan", ReportType.CAREPLAN),
    ("orders", ReportType.PSYCH_MD_ORDERS),
    ("episodic", ReportType.EPISODIC_BEHAVIORS),
]


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="psychaudit",
        description="Parse nursing-home reports and audit psychotropic medication compliance.",
    )
    sub = parser.add_subparsers(dest="command")

    # --- parse ---
    parse_parser = sub.add_parser("parse", help="Parse one report and print records as JSON")
    parse_parser.add_argument("report_type", choices=[t.value for t in ReportType], help="Report type")
    parse_parser.add_argument("file", help="Report text or HTML file")
    parse_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to psychaudit.toml")

    # --- review ---
    review_parser = sub.add_parser("review", help="Run a monthly compliance review")
    review_parser.add_argument("--month", required=True, help="Review period (YYYY-MM)")
    for flag, rtype in REVIEW_INPUTS:
        review_parser.add_argument(f"--{flag}", default="", help=f"{rtype.value} report file")
    review_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to psychaudit.toml")
    review_parser.add_argument("--json", action="store_true", help="Print full records as JSON")

    # --- init-config ---
    config_parser = sub.add_parser("init-config", help="Generate psychaudit.toml with default settings")
    config_parser.add_argument("--output", default=DEFAULT_CONFIG_PATH, help="Config file output path")

    # --- check-mappings ---
    check_parser = sub.add_parser("check-mappings", help="Validate facility mapping text files")
    check_parser.add_argument("--indications", default="", help="Indication map text ('Class: a, b')")
    check_parser.add_argument("--medications", default="", help="Custom medication map text ('drug = Class')")

    # --- serve-mcp ---
    mcp_parser = sub.add_parser("serve-mcp", help="Start MCP server for Claude integration")
    mcp_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to psychaudit.toml")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "parse":
        _handle_parse(args)
    elif args.command == "review":
        _handle_review(args)
    elif args.command == "init-config":
        _handle_init_config(args)
    elif args.command == "check-mappings":
        _handle_check_mappings(args)
    elif args.command == "serve-mcp":
        _handle_serve_mcp(args)


def _read_input(path: str) -> str:
    p = Path(path)
    if not p.is_file():
        print(f"Error: {path} is not a file.", file=sys.stderr)
        sys.exit(1)
    return p.read_text(encoding="utf-8", errors="replace")


def _settings(args):
    from psychaudit.config import Settings, load_settings

    # The default path is optional; an explicit --config that is missing still warns.
    if args.config == DEFAULT_CONFIG_PATH and not Path(args.config).exists():
        return Settings()
    return load_settings(args.config)


def _handle_parse(args):
    from psychaudit.reports import ParseContext, parse_report

    settings = _settings(args)
    context = ParseContext(custom_medication_map=dict(settings.custom_medication_map))
    result = parse_report(args.report_type, _read_input(args.file), context)

    for warning in result.warnings:
        print(f"  Warning: {warning}", file=sys.stderr)
    print(json.dumps(asdict(result), indent=2, default=str))


def _handle_review(args):
    from psychaudit.analysis.compliance import period_end
    from psychaudit.review import ingest_report

    try:
        period_end(args.month)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    settings = _settings(args)
    residents = {}
    loaded = 0
    for flag, rtype in REVIEW_INPUTS:
        path = getattr(args, flag)
        if not path:
            continue
        residents, result = ingest_report(residents, rtype, _read_input(path), args.month, settings)
        loaded += 1
        print(f"  {rtype.value}: {len(result)} records", file=sys.stderr)
        for warning in result.warnings:
            print(f"    Warning: {warning}", file=sys.stderr)

    if not loaded:
        print("Error: provide at least one report file (e.g. --census, --meds).", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps({mrn: asdict(r) for mrn, r in residents.items()}, indent=2, default=str))
        return

    _print_review_table(args.month, residents)


def _print_review_table(month, residents):
    print(f"\nPsychotropic review for {month}")
    print(f"\n{'MRN':<10}  {'Name':<25}  {'Room':<8}  {'Status':<10}  {'Issues':>6}")
    print(f"{'─'*10}  {'─'*25}  {'─'*8}  {'─'*10}  {'─'*6}")

    totals = {}
    for mrn in sorted(residents):
        record = residents[mrn]
        verdict = record.compliance
        totals[verdict.status] = totals.get(verdict.status, 0) + 1
        print(
            f"{mrn:<10}  {record.name[:25]:<25}  {record.room[:8]:<8}  "
            f"{verdict.status:<10}  {len(verdict.issues):>6}"
        )
        for issue in verdict.issues:
            print(f"{'':<10}    - {issue}")

    summary = ", ".join(f"{count} {status}" for status, count in sorted(totals.items()))
    print(f"\n({len(residents)} residents: {summary})")


def _handle_init_config(args):
    from psychaudit.config import generate_settings_file

    path = generate_settings_file(args.output)
    print(f"Config written to {path}")


def _handle_check_mappings(args):
    from psychaudit.config import parse_custom_medication_map_text, parse_indication_map_text

    if not args.indications and not args.medications:
        print("Usage: psychaudit check-mappings --indications <file> --medications <file>")
        sys.exit(1)

    failed = False
    checks = [
        (args.indications, "Indication map", parse_indication_map_text),
        (args.medications, "Custom medication map", parse_custom_medication_map_text),
    ]
    for path, label, parse in checks:
        if not path:
            continue
        mapping, errors = parse(_read_input(path))
        print(f"{label}: {len(mapping)} entries, {len(errors)} errors")
        for err in errors:
            print(f"  Line {err.line}: {err.message}  [{err.content.strip()}]")
        failed = failed or bool(errors)

    if failed:
        sys.exit(1)


def _handle_serve_mcp(args):
    import os

    os.environ["PSYCHAUDIT_CONFIG"] = args.config

    from psychaudit.mcp.server import mcp

    mcp.run()


if __name__ == "__main__":
    main()
