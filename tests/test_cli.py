"""Tests for the psychaudit command-line interface."""

import json

import pytest

from psychaudit.cli import main


@pytest.fixture
def report_dir(tmp_path, monkeypatch, report_texts):
    """Write each sample report to a file and run from that directory."""
    monkeypatch.chdir(tmp_path)
    for name, text in report_texts.items():
        (tmp_path / f"{name}.txt").write_text(text)
    return tmp_path


class TestParseCommand:
    def test_census_json(self, report_dir, capsys):
        main(["parse", "census", str(report_dir / "census.txt")])
        data = json.loads(capsys.readouterr().out)
        mrns = [item["mrn"] for item in data["items"]]
        assert mrns == ["ABC123", "XYZ789", "MS42"]
        assert data["items"][0]["item"]["room"] == "101-A"

    def test_missing_file(self, report_dir, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["parse", "meds", "nope.txt"])
        assert exc.value.code == 1
        assert "not a file" in capsys.readouterr().err

    def test_warnings_to_stderr(self, report_dir, capsys):
        (report_dir / "bad.txt").write_text("Doe, John (ABC123)\n13/40/2024 consult")
        main(["parse", "consults", str(report_dir / "bad.txt")])
        assert "unparseable date" in capsys.readouterr().err


class TestReviewCommand:
    def test_table(self, report_dir, capsys):
        main([
            "review", "--month", "2024-03",
            "--census", "census.txt", "--meds", "meds.txt", "--consults", "consults.txt",
            "--behaviors", "behaviors.txt", "--careplan", "careplan.txt",
            "--orders", "psych_md_orders.txt",
        ])
        out = capsys.readouterr().out
        assert "Psychotropic review for 2024-03" in out
        assert "ABC123" in out
        assert "Manual GDR status not set" in out
        assert "(3 residents:" in out

    def test_json(self, report_dir, capsys):
        main(["review", "--month", "2024-03", "--census", "census.txt", "--meds", "meds.txt", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["ABC123"]["name"] == "John Doe"
        assert data["ABC123"]["compliance"]["status"] == "CRITICAL"

    def test_bad_month(self, report_dir, capsys):
        with pytest.raises(SystemExit):
            main(["review", "--month", "03-2024", "--census", "census.txt"])
        assert "YYYY-MM" in capsys.readouterr().err

    def test_no_reports(self, report_dir):
        with pytest.raises(SystemExit):
            main(["review", "--month", "2024-03"])

    def test_config_applied(self, report_dir, capsys):
        (report_dir / "strict.toml").write_text("behavior_threshold = 20\n")
        main([
            "review", "--month", "2024-03", "--config", "strict.toml", "--json",
            "--meds", "meds.txt", "--behaviors", "behaviors.txt",
        ])
        data = json.loads(capsys.readouterr().out)
        issues = data["ABC123"]["compliance"]["issues"]
        assert "Behavior monitoring below threshold (8/20 in 56 days)" in issues


class TestConfigCommands:
    def test_init_config(self, tmp_path, capsys):
        out_path = tmp_path / "psychaudit.toml"
        main(["init-config", "--output", str(out_path)])
        assert out_path.exists()
        assert "Config written" in capsys.readouterr().out

    def test_check_mappings_ok(self, tmp_path, capsys):
        path = tmp_path / "ind.txt"
        path.write_text("ANTIDEPRESSANTS: Depression\n")
        main(["check-mappings", "--indications", str(path)])
        assert "1 entries, 0 errors" in capsys.readouterr().out

    def test_check_mappings_errors(self, tmp_path, capsys):
        path = tmp_path / "meds.txt"
        path.write_text("seroquel = ANTIPSYCHOTICS/ANTIMANIC AGENTS\nbroken line\n")
        with pytest.raises(SystemExit) as exc:
            main(["check-mappings", "--medications", str(path)])
        assert exc.value.code == 1
        assert 'Line 2: Missing "=" separator.' in capsys.readouterr().out


def test_no_command(capsys):
    with pytest.raises(SystemExit):
        main([])
