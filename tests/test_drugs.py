"""Tests for psychaudit.drugs — drug-name normalization and classification."""

import pytest

from psychaudit.drugs import (
    ANTIANXIETY,
    ANTIDEPRESSANT,
    ANTIPSYCHOTIC,
    DRUG_CLASS_MAP,
    HYPNOTIC,
    NEURO_MISC,
    OTHER,
    canonical_class,
    classify_medication,
    extract_class_label,
    is_psychotropic,
    normalize_drug_name,
)


class TestNormalizeDrugName:
    def test_strips_parenthetical_and_form(self):
        assert normalize_drug_name("Seroquel (quetiapine) Oral Tablet 25 MG") == "seroquel 25"

    def test_punctuation_becomes_space(self):
        assert normalize_drug_name("Divalproex-Sodium DR") == "divalproex sodium dr"

    def test_frequency_words_removed(self):
        assert normalize_drug_name("Trazodone 50 mg PO QHS PRN") == "trazodone 50"

    def test_empty(self):
        assert normalize_drug_name("") == ""
        assert normalize_drug_name(None) == ""


class TestClassifyMedication:
    @pytest.mark.parametrize("drug,cls", sorted(DRUG_CLASS_MAP.items()))
    def test_every_dictionary_drug(self, drug, cls):
        assert classify_medication(drug) == cls

    @pytest.mark.parametrize("raw", ["SERTRALINE", "  sertraline  ", "Sertraline"])
    def test_case_and_whitespace_insensitive(self, raw):
        assert classify_medication(raw) == ANTIDEPRESSANT

    def test_substring_match(self):
        assert classify_medication("Quetiapine Fumarate Tablet 25 MG") == ANTIPSYCHOTIC

    def test_unknown_is_other(self):
        assert classify_medication("Metoprolol Tartrate 25 MG") == OTHER

    def test_custom_map_adds_drug(self):
        custom = {"Seroquel": ANTIPSYCHOTIC}
        assert classify_medication("Seroquel 25 MG", custom) == ANTIPSYCHOTIC

    def test_custom_map_overrides_builtin(self):
        custom = {"melatonin": ANTIANXIETY}
        assert classify_medication("Melatonin 3 MG", custom) == ANTIANXIETY

    def test_custom_map_legacy_class_name(self):
        assert classify_medication("Ambien 5 MG", {"ambien": "hypnotic/sedative"}) == HYPNOTIC


class TestCanonicalClass:
    def test_exact_case_insensitive(self):
        assert canonical_class("antidepressants") == ANTIDEPRESSANT

    def test_legacy_alias(self):
        assert canonical_class("Antipsychotic") == ANTIPSYCHOTIC
        assert canonical_class("Mood Stabilizer") == NEURO_MISC

    def test_empty_is_other(self):
        assert canonical_class("") == OTHER

    def test_unknown(self):
        assert canonical_class("Beta Blockers") is None


class TestExtractClassLabel:
    def test_label_removed(self):
        cls, rest = extract_class_label("Sertraline 50 MG ANTIDEPRESSANTS")
        assert cls == ANTIDEPRESSANT
        assert rest == "Sertraline 50 MG"

    def test_slash_spacing_tolerated(self):
        cls, _ = extract_class_label("Haldol 1 MG Antipsychotics / Antimanic Agents")
        assert cls == ANTIPSYCHOTIC

    def test_no_label(self):
        assert extract_class_label("Metoprolol 25 MG") == (None, "Metoprolol 25 MG")


class TestIsPsychotropic:
    def test_psych_class(self):
        assert is_psychotropic(ANTIPSYCHOTIC)

    def test_other(self):
        assert not is_psychotropic(OTHER)
