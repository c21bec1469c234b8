"""Tests for psychaudit.mcp.server tools.

Tests the tool functions directly (not via MCP protocol).
"""

import pytest

from psychaudit.drugs import ANTIDEPRESSANT, ANTIPSYCHOTIC


@pytest.fixture
def srv(tmp_path, monkeypatch):
    """Point the MCP server at a temporary config file."""
    config_path = tmp_path / "psychaudit.toml"
    config_path.write_text('[custom_medication_map]\n"seroquel" = "ANTIPSYCHOTICS/ANTIMANIC AGENTS"\n')

    import psychaudit.mcp.server as server

    monkeypatch.setattr(server, "CONFIG_PATH", str(config_path))
    return server


class TestParseReportText:
    def test_census(self, srv, report_texts):
        result = srv.parse_report_text("census", report_texts["census"])
        assert result["count"] == 3
        assert result["records"][0]["mrn"] == "ABC123"
        assert result["warnings"] == []

    def test_custom_map_from_config(self, srv):
        result = srv.parse_report_text("meds", "Doe, John (ABC123) Seroquel 25 MG Give 1 tablet")
        assert result["records"][0]["item"]["therapeutic_class"] == ANTIPSYCHOTIC

    def test_unknown_type(self, srv):
        result = srv.parse_report_text("labs", "x")
        assert isinstance(result, str)
        assert "Unknown report type" in result


class TestReviewReports:
    def test_review(self, srv, report_texts):
        # census deliberately listed last; names must still resolve for orders
        reports = {k: report_texts[k] for k in ("meds", "psych_md_orders", "census")}
        result = srv.review_reports("2024-03", reports)
        by_mrn = {r["mrn"]: r for r in result["residents"]}
        assert by_mrn["ABC123"]["name"] == "John Doe"
        assert by_mrn["XYZ789"]["consult_status"] == "ORDER"
        assert by_mrn["ABC123"]["counts"]["medications"] == 1

    def test_bad_month(self, srv, report_texts):
        result = srv.review_reports("March", {"census": report_texts["census"]})
        assert result.startswith("Error:")

    def test_bad_report_type(self, srv):
        assert srv.review_reports("2024-03", {"labs": "x"}).startswith("Error:")


class TestLookupTools:
    def test_classify_drug(self, srv):
        result = srv.classify_drug("Sertraline 50 MG Tablet")
        assert result["therapeutic_class"] == ANTIDEPRESSANT
        assert result["psychotropic"] is True
        assert "Depression" in result["allowed_indications"]

    def test_classify_custom_drug(self, srv):
        assert srv.classify_drug("Seroquel")["therapeutic_class"] == ANTIPSYCHOTIC

    def test_match_indication_with_class(self, srv):
        result = srv.match_indication("major depression", ANTIDEPRESSANT)
        assert result["matched"] is True
        assert result["entry_id"] == "MDD"

    def test_match_indication_any_class(self, srv):
        result = srv.match_indication("F41.1")
        assert result["entry_id"] == "GAD"
        assert result["confidence"] == 0.95

    def test_validate_mapping_text(self, srv):
        result = srv.validate_mapping_text(
            indication_map_text="ANTIDEPRESSANTS: Depression\nbad",
            custom_medication_map_text="ambien = hypnotic",
        )
        assert result["indication_map"] == {ANTIDEPRESSANT: ["Depression"]}
        assert result["indication_map_errors"][0]["line"] == 2
        assert result["custom_medication_map_errors"] == []


def test_missing_config_uses_defaults(tmp_path, monkeypatch):
    import psychaudit.mcp.server as server

    monkeypatch.setattr(server, "CONFIG_PATH", str(tmp_path / "absent.toml"))
    assert server.classify_drug("Seroquel")["therapeutic_class"] == "Other"
