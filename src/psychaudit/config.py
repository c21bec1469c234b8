"""Configuration management for psychaudit.

Facility settings (compliance thresholds, the allowed-indication map and custom
drug classifications) live in a TOML file. Anything not set there falls back to
built-in defaults, and every consumer receives a fully-populated Settings built
by normalize_settings().

The two mappings can also be edited as plain text, one entry per line:

    ANTIDEPRESSANTS: Depression, Anxiety        (indication map)
    seroquel xr = ANTIPSYCHOTICS/ANTIMANIC AGENTS   (custom medication map)
"""

from __future__ import annotations

import sys
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from psychaudit.drugs import (
    ADHD,
    ANTIANXIETY,
    ANTIDEPRESSANT,
    ANTIPSYCHOTIC,
    HYPNOTIC,
    NEURO_MISC,
    OTHER,
    canonical_class,
    normalize_drug_name,
)

DEFAULT_CONFIG_PATH = "psychaudit.toml"

SEVERITIES = ("WARNING", "CRITICAL")

DEFAULT_INDICATION_MAP: dict[str, list[str]] = {
    ANTIPSYCHOTIC: [
        "Schizophrenia",
        "Schizoaffective disorder",
        "Bipolar disorder",
        "Psychosis",
        "Tourette",
        "Huntington",
    ],
    ANTIDEPRESSANT: [
        "Major depressive disorder",
        "Depression",
        "Anxiety",
        "Panic disorder",
        "PTSD",
        "OCD",
    ],
    ANTIANXIETY: ["Generalized anxiety disorder", "Anxiety", "Panic disorder"],
    HYPNOTIC: ["Insomnia", "Sleep disorder"],
    NEURO_MISC: [
        "Bipolar disorder",
        "Mood disorder",
        "Alzheimer disease",
        "Dementia",
        "Cognitive impairment",
    ],
    ADHD: [],
    OTHER: [],
}

DEFAULT_CONFIG_TEMPLATE = """\
# psychaudit configuration
# Edit freely; anything omitted falls back to the built-in default.

# Days a psychiatry consult or order stays current
consult_recency_days = {consult_recency_days}
# Minimum behavior notes within behavior_window_days
behavior_threshold = {behavior_threshold}
behavior_window_days = {behavior_window_days}
# WARNING or CRITICAL when an indication does not match the allowed list
indication_mismatch_severity = "{indication_mismatch_severity}"

# Allowed indications per therapeutic class
[indication_map]
{indication_map_lines}

# Facility drug names -> therapeutic class (substring match)
[custom_medication_map]
{custom_map_lines}
"""


@dataclass
class Settings:
    """Compliance thresholds and facility mappings, always fully populated."""

    consult_recency_days: int = 90
    behavior_threshold: int = 8
    behavior_window_days: int = 56
    indication_mismatch_severity: str = "WARNING"
    indication_map: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_INDICATION_MAP.items()}
    )
    custom_medication_map: dict[str, str] = field(default_factory=dict)

    def allowed_indications(self, medication_class: str) -> list[str]:
        return self.indication_map.get(medication_class, [])


@dataclass
class SettingsLineError:
    """One malformed line of facility mapping text."""

    line: int  # 1-based
    message: str
    content: str


# camelCase keys as exported by the browser application
_KEY_ALIASES = {
    "consultRecencyDays": "consult_recency_days",
    "behaviorThreshold": "behavior_threshold",
    "behaviorWindowDays": "behavior_window_days",
    "indicationMismatchSeverity": "indication_mismatch_severity",
    "indicationMap": "indication_map",
    "customMedicationMap": "custom_medication_map",
}

_INT_FIELDS = ("consult_recency_days", "behavior_threshold", "behavior_window_days")


def normalize_settings(overrides: Settings | Mapping[str, Any] | None = None) -> Settings:
    """Merge partial overrides over the defaults.

    Accepts a Settings, a dict with snake_case or camelCase keys, or None.
    Mapping entries are merged per key; class names are canonicalised and
    unrecognised classes are dropped. Non-numeric thresholds and unknown
    severities keep their defaults.
    """
    settings = Settings()
    if overrides is None:
        return settings

    if isinstance(overrides, Settings):
        raw = {f.name: getattr(overrides, f.name) for f in fields(Settings)}
    else:
        raw = {_KEY_ALIASES.get(k, k): v for k, v in overrides.items()}

    for name in _INT_FIELDS:
        if raw.get(name) is not None:
            try:
                setattr(settings, name, int(raw[name]))
            except (TypeError, ValueError):
                pass

    severity = str(raw.get("indication_mismatch_severity") or "").upper()
    if severity in SEVERITIES:
        settings.indication_mismatch_severity = severity

    for cls, values in (raw.get("indication_map") or {}).items():
        key = canonical_class(cls)
        if key is None:
            continue
        settings.indication_map[key] = [str(v).strip() for v in values or [] if str(v).strip()]

    for drug, cls in (raw.get("custom_medication_map") or {}).items():
        key = canonical_class(cls)
        name = str(drug).strip().lower()
        if key is None or not name:
            continue
        settings.custom_medication_map[name] = key

    return settings


def load_settings(config_path: str = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from a TOML file.

    Falls back to defaults if the config file doesn't exist.
    """
    path = Path(config_path)
    if not path.exists():
        print(
            f"Warning: Config file '{config_path}' not found, using defaults. "
            f"Run 'psychaudit init-config' to generate one.",
            file=sys.stderr,
        )
        return Settings()

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    return normalize_settings(raw)


def _toml_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def generate_settings_file(
    config_path: str = DEFAULT_CONFIG_PATH, settings: Settings | None = None
) -> str:
    """Write settings (defaults when omitted) as a TOML config file.

    Returns the path of the written config file.
    """
    settings = settings or Settings()
    indication_lines = "\n".join(
        f"{_toml_string(cls)} = [{', '.join(_toml_string(v) for v in values)}]"
        for cls, values in settings.indication_map.items()
    )
    custom_lines = "\n".join(
        f"{_toml_string(drug)} = {_toml_string(cls)}"
        for drug, cls in settings.custom_medication_map.items()
    )
    content = DEFAULT_CONFIG_TEMPLATE.format(
        consult_recency_days=settings.consult_recency_days,
        behavior_threshold=settings.behavior_threshold,
        behavior_window_days=settings.behavior_window_days,
        indication_mismatch_severity=settings.indication_mismatch_severity,
        indication_map_lines=indication_lines,
        custom_map_lines=custom_lines,
    )
    Path(config_path).write_text(content)
    return config_path


# --- facility-editable text formats ---


def parse_indication_map_text(text: str) -> tuple[dict[str, list[str]], list[SettingsLineError]]:
    """Parse 'Class: indication1, indication2' lines.

    Returns (mapping, errors). Malformed lines are reported and skipped; the
    rest of the mapping is still usable.
    """
    mapping: dict[str, list[str]] = {}
    errors: list[SettingsLineError] = []

    for i, line in enumerate((text or "").splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        sep = trimmed.find(":")
        if sep == -1:
            errors.append(SettingsLineError(i, 'Missing ":" separator.', line))
            continue
        cls = trimmed[:sep].strip()
        values = [v.strip() for v in trimmed[sep + 1:].split(",") if v.strip()]
        if not cls:
            errors.append(SettingsLineError(i, 'Missing class name before ":".', line))
            continue
        if not values:
            errors.append(SettingsLineError(i, 'Provide at least one indication after ":".', line))
            continue
        key = canonical_class(cls)
        if key is None:
            errors.append(SettingsLineError(i, f'Unknown class "{cls}".', line))
            continue
        mapping[key] = values

    return mapping, errors


def parse_custom_medication_map_text(text: str) -> tuple[dict[str, str], list[SettingsLineError]]:
    """Parse 'drug name = Class' lines. Returns (mapping, errors)."""
    mapping: dict[str, str] = {}
    errors: list[SettingsLineError] = []

    for i, line in enumerate((text or "").splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        sep = trimmed.find("=")
        if sep == -1:
            errors.append(SettingsLineError(i, 'Missing "=" separator.', line))
            continue
        drug = trimmed[:sep].strip()
        cls = trimmed[sep + 1:].strip()
        if not drug:
            errors.append(SettingsLineError(i, 'Missing drug name before "=".', line))
            continue
        if not cls:
            errors.append(SettingsLineError(i, 'Missing class name after "=".', line))
            continue
        key = canonical_class(cls)
        if key is None:
            errors.append(SettingsLineError(i, f'Unknown class "{cls}".', line))
            continue
        if not normalize_drug_name(drug):
            errors.append(SettingsLineError(i, f'Drug name "{drug}" has no usable words.', line))
            continue
        mapping[drug.lower()] = key

    return mapping, errors


def format_indication_map(settings: Settings) -> str:
    return "\n".join(
        f"{cls}: {', '.join(values)}" for cls, values in settings.indication_map.items() if values
    )


def format_custom_medication_map(settings: Settings) -> str:
    return "\n".join(f"{drug} = {cls}" for drug, cls in settings.custom_medication_map.items())


def apply_mapping_text(
    settings: Settings,
    indication_map_text: str | None = None,
    custom_medication_map_text: str | None = None,
) -> tuple[Settings, list[SettingsLineError], list[SettingsLineError]]:
    """Return new Settings with the valid lines of edited mapping text applied.

    Returns (settings, indication_map_errors, custom_medication_map_errors).
    """
    updates: dict[str, Any] = {f.name: getattr(settings, f.name) for f in fields(Settings)}
    indication_errors: list[SettingsLineError] = []
    custom_errors: list[SettingsLineError] = []

    if indication_map_text is not None:
        mapping, indication_errors = parse_indication_map_text(indication_map_text)
        updates["indication_map"] = {**settings.indication_map, **mapping}
    if custom_medication_map_text is not None:
        mapping, custom_errors = parse_custom_medication_map_text(custom_medication_map_text)
        updates["custom_medication_map"] = {**settings.custom_medication_map, **mapping}

    return normalize_settings(updates), indication_errors, custom_errors
