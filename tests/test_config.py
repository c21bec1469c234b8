"""Tests for psychaudit.config module."""

import pytest

from psychaudit.config import (
    DEFAULT_INDICATION_MAP,
    Settings,
    apply_mapping_text,
    format_custom_medication_map,
    format_indication_map,
    generate_settings_file,
    load_settings,
    normalize_settings,
    parse_custom_medication_map_text,
    parse_indication_map_text,
)
from psychaudit.drugs import ANTIANXIETY, ANTIDEPRESSANT, ANTIPSYCHOTIC, HYPNOTIC, OTHER


class TestLoadSettings:
    def test_missing_file_returns_defaults(self, tmp_path, capsys):
        settings = load_settings(str(tmp_path / "nonexistent.toml"))
        assert settings == Settings()
        assert "not found" in capsys.readouterr().err

    def test_loads_toml_file(self, tmp_path):
        toml_path = tmp_path / "test.toml"
        toml_path.write_text("""
consult_recency_days = 60
indication_mismatch_severity = "critical"

[indication_map]
"ANTIDEPRESSANTS" = ["Depression"]

[custom_medication_map]
"seroquel" = "ANTIPSYCHOTICS/ANTIMANIC AGENTS"
""")
        settings = load_settings(str(toml_path))
        assert settings.consult_recency_days == 60
        assert settings.behavior_threshold == 8
        assert settings.indication_mismatch_severity == "CRITICAL"
        assert settings.indication_map[ANTIDEPRESSANT] == ["Depression"]
        assert settings.indication_map[ANTIPSYCHOTIC] == DEFAULT_INDICATION_MAP[ANTIPSYCHOTIC]
        assert settings.custom_medication_map == {"seroquel": ANTIPSYCHOTIC}

    def test_generated_file_round_trips(self, tmp_path):
        path = str(tmp_path / "psychaudit.toml")
        custom = Settings(behavior_threshold=4, custom_medication_map={'dr. "k" mix': HYPNOTIC})
        assert generate_settings_file(path, custom) == path
        assert load_settings(path) == custom

    def test_generate_defaults(self, tmp_path):
        path = tmp_path / "psychaudit.toml"
        generate_settings_file(str(path))
        assert "consult_recency_days = 90" in path.read_text()
        assert load_settings(str(path)) == Settings()


class TestNormalizeSettings:
    def test_none_is_defaults(self):
        assert normalize_settings(None) == Settings()

    def test_camel_case_keys(self):
        settings = normalize_settings({"consultRecencyDays": "30", "behaviorWindowDays": 28})
        assert settings.consult_recency_days == 30
        assert settings.behavior_window_days == 28

    def test_bad_values_keep_defaults(self):
        settings = normalize_settings(
            {"behavior_threshold": "lots", "indication_mismatch_severity": "INFO"}
        )
        assert settings.behavior_threshold == 8
        assert settings.indication_mismatch_severity == "WARNING"

    def test_legacy_class_names(self):
        settings = normalize_settings({"indicationMap": {"Anxiolytic": ["Worry"], "Nonsense": ["x"]}})
        assert settings.indication_map[ANTIANXIETY] == ["Worry"]
        assert "Nonsense" not in settings.indication_map

    def test_settings_instance_copied(self):
        original = Settings(behavior_threshold=2)
        settings = normalize_settings(original)
        settings.indication_map[OTHER].append("x")
        assert original.indication_map[OTHER] == []
        assert settings.behavior_threshold == 2

    def test_defaults_not_shared(self):
        a = Settings()
        a.indication_map[ANTIDEPRESSANT].append("Grief")
        assert "Grief" not in Settings().indication_map[ANTIDEPRESSANT]


class TestIndicationMapText:
    def test_valid_lines(self):
        mapping, errors = parse_indication_map_text(
            "ANTIDEPRESSANTS: Depression, Anxiety\n\nantipsychotic: Psychosis"
        )
        assert errors == []
        assert mapping == {
            ANTIDEPRESSANT: ["Depression", "Anxiety"],
            ANTIPSYCHOTIC: ["Psychosis"],
        }

    def test_errors_numbered(self):
        text = (
            "ANTIDEPRESSANTS: Depression\n"
            "badline\n"
            "Foo: bar\n"
            "ANTIPSYCHOTICS/ANTIMANIC AGENTS:\n"
            ": Depression"
        )
        mapping, errors = parse_indication_map_text(text)
        assert mapping == {ANTIDEPRESSANT: ["Depression"]}
        assert [(e.line, e.message) for e in errors] == [
            (2, 'Missing ":" separator.'),
            (3, 'Unknown class "Foo".'),
            (4, 'Provide at least one indication after ":".'),
            (5, 'Missing class name before ":".'),
        ]
        assert errors[0].content == "badline"

    def test_formatted_defaults_parse_cleanly(self):
        settings = Settings()
        mapping, errors = parse_indication_map_text(format_indication_map(settings))
        assert errors == []
        assert mapping[ANTIPSYCHOTIC] == settings.indication_map[ANTIPSYCHOTIC]
        assert OTHER not in mapping


class TestCustomMedicationMapText:
    def test_valid_line(self):
        mapping, errors = parse_custom_medication_map_text(
            "Seroquel XR = ANTIPSYCHOTICS/ANTIMANIC AGENTS"
        )
        assert errors == []
        assert mapping == {"seroquel xr": ANTIPSYCHOTIC}

    def test_errors_numbered(self):
        text = (
            "seroquel xr = ANTIPSYCHOTICS/ANTIMANIC AGENTS\n"
            "no separator\n"
            "= Other\n"
            "foo =\n"
            "mg = Other\n"
            "bar = Nonsense"
        )
        mapping, errors = parse_custom_medication_map_text(text)
        assert mapping == {"seroquel xr": ANTIPSYCHOTIC}
        assert [e.line for e in errors] == [2, 3, 4, 5, 6]
        assert errors[0].message == 'Missing "=" separator.'
        assert errors[1].message == 'Missing drug name before "=".'
        assert errors[2].message == 'Missing class name after "=".'
        assert "no usable words" in errors[3].message
        assert errors[4].message == 'Unknown class "Nonsense".'

    def test_format(self):
        settings = Settings(custom_medication_map={"ambien": HYPNOTIC})
        assert format_custom_medication_map(settings) == f"ambien = {HYPNOTIC}"


class TestApplyMappingText:
    def test_valid_lines_applied_errors_returned(self):
        base = Settings()
        settings, ind_errors, custom_errors = apply_mapping_text(
            base,
            indication_map_text="ANTIDEPRESSANTS: Grief\nbroken",
            custom_medication_map_text="ambien = hypnotic",
        )
        assert settings.indication_map[ANTIDEPRESSANT] == ["Grief"]
        assert settings.custom_medication_map == {"ambien": HYPNOTIC}
        assert [e.line for e in ind_errors] == [2]
        assert custom_errors == []
        assert base.indication_map[ANTIDEPRESSANT] == DEFAULT_INDICATION_MAP[ANTIDEPRESSANT]

    def test_none_leaves_mapping(self):
        base = Settings(custom_medication_map={"ambien": HYPNOTIC})
        settings, _, _ = apply_mapping_text(base)
        assert settings == base

    @pytest.mark.parametrize("severity", ["WARNING", "CRITICAL"])
    def test_scalar_settings_kept(self, severity):
        base = Settings(indication_mismatch_severity=severity, behavior_threshold=5)
        settings, _, _ = apply_mapping_text(base, indication_map_text="")
        assert settings.indication_mismatch_severity == severity
        assert settings.behavior_threshold == 5
