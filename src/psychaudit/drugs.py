"""Drug-name normalization and therapeutic classification.

Maps raw medication text from an order listing onto one of seven fixed
therapeutic classes using a built-in dictionary of psychotropics plus any
facility-configured overrides.
"""

from __future__ import annotations

import re

ADHD = "ADHD/ANTI-NARCOLEPSY/ANTI-OBESITY/ANOREXIANTS"
ANTIANXIETY = "ANTIANXIETY AGENTS"
ANTIDEPRESSANT = "ANTIDEPRESSANTS"
ANTIPSYCHOTIC = "ANTIPSYCHOTICS/ANTIMANIC AGENTS"
HYPNOTIC = "HYPNOTICS/SEDATIVES/SLEEP DISORDER AGENTS"
NEURO_MISC = "PSYCHOTHERAPEUTIC AND NEUROLOGICAL AGENTS - MISC."
OTHER = "Other"

PSYCH_CLASSES = [ADHD, ANTIANXIETY, ANTIDEPRESSANT, ANTIPSYCHOTIC, HYPNOTIC, NEURO_MISC]
MEDICATION_CLASSES = PSYCH_CLASSES + [OTHER]

# Short labels used by older facility settings files
CLASS_ALIASES: dict[str, str] = {
    "antipsychotic": ANTIPSYCHOTIC,
    "antidepressant": ANTIDEPRESSANT,
    "anxiolytic": ANTIANXIETY,
    "hypnotic": HYPNOTIC,
    "hypnotic/sedative": HYPNOTIC,
    "mood stabilizer": NEURO_MISC,
    "cognitive enhancer": NEURO_MISC,
    "stimulant": ADHD,
}

DRUG_CLASS_MAP: dict[str, str] = {
    # Antipsychotics
    "haloperidol": ANTIPSYCHOTIC,
    "haldol": ANTIPSYCHOTIC,
    "risperidone": ANTIPSYCHOTIC,
    "quetiapine": ANTIPSYCHOTIC,
    "olanzapine": ANTIPSYCHOTIC,
    "aripiprazole": ANTIPSYCHOTIC,
    "ziprasidone": ANTIPSYCHOTIC,
    "clozapine": ANTIPSYCHOTIC,
    "lurasidone": ANTIPSYCHOTIC,
    "brexpiprazole": ANTIPSYCHOTIC,
    "cariprazine": ANTIPSYCHOTIC,
    "paliperidone": ANTIPSYCHOTIC,
    "chlorpromazine": ANTIPSYCHOTIC,
    "fluphenazine": ANTIPSYCHOTIC,
    # Antidepressants
    "citalopram": ANTIDEPRESSANT,
    "sertraline": ANTIDEPRESSANT,
    "fluoxetine": ANTIDEPRESSANT,
    "paroxetine": ANTIDEPRESSANT,
    "escitalopram": ANTIDEPRESSANT,
    "venlafaxine": ANTIDEPRESSANT,
    "trazodone": ANTIDEPRESSANT,
    "mirtazapine": ANTIDEPRESSANT,
    "duloxetine": ANTIDEPRESSANT,
    "bupropion": ANTIDEPRESSANT,
    "amitriptyline": ANTIDEPRESSANT,
    "nortriptyline": ANTIDEPRESSANT,
    # Antianxiety
    "diazepam": ANTIANXIETY,
    "clonazepam": ANTIANXIETY,
    "alprazolam": ANTIANXIETY,
    "lorazepam": ANTIANXIETY,
    "buspirone": ANTIANXIETY,
    "hydroxyzine": ANTIANXIETY,
    "oxazepam": ANTIANXIETY,
    # Hypnotics / sedatives
    "temazepam": HYPNOTIC,
    "zolpidem": HYPNOTIC,
    "eszopiclone": HYPNOTIC,
    "melatonin": HYPNOTIC,
    "zaleplon": HYPNOTIC,
    "suvorexant": HYPNOTIC,
    # ADHD / stimulants
    "methylphenidate": ADHD,
    "amphetamine": ADHD,
    "dextroamphetamine": ADHD,
    "lisdexamfetamine": ADHD,
    "modafinil": ADHD,
    "armodafinil": ADHD,
    "phentermine": ADHD,
    # Mood stabilizers, anticonvulsants, cognitive enhancers
    "divalproex": NEURO_MISC,
    "valproate": NEURO_MISC,
    "lamotrigine": NEURO_MISC,
    "carbamazepine": NEURO_MISC,
    "lithium": NEURO_MISC,
    "donepezil": NEURO_MISC,
    "memantine": NEURO_MISC,
    "rivastigmine": NEURO_MISC,
    "galantamine": NEURO_MISC,
}

# Label phrases an order listing prints next to the drug; the first hit wins.
CLASS_LABEL_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"adhd\s*/\s*anti-narcolepsy\s*/\s*anti-obesity\s*/\s*anorexiants", re.I), ADHD),
    (re.compile(r"antianxiety agents", re.I), ANTIANXIETY),
    (re.compile(r"antidepressants", re.I), ANTIDEPRESSANT),
    (re.compile(r"antipsychotics\s*/\s*antimanic agents", re.I), ANTIPSYCHOTIC),
    (re.compile(r"hypnotics\s*/\s*sedatives\s*/\s*sleep disorder agents", re.I), HYPNOTIC),
    (re.compile(r"psychotherapeutic and neurological agents\s*-\s*misc\.?", re.I), NEURO_MISC),
]

_NOISE_WORDS_RE = re.compile(
    r"\b(mg|mcg|g|ml|unit|units|tablet|tab|capsule|cap|solution|suspension|susp|inj|"
    r"injection|iv|im|po|oral|sl|subq|daily|bid|tid|qid|qhs|qam|qpm|prn|patch|spray|"
    r"drop|drops|puff|puffs|chew|dissolve|take|give|apply|inhale|instill|place)\b",
    re.IGNORECASE,
)


def normalize_drug_name(text: str) -> str:
    """Reduce raw drug text to a lowercase lookup key.

    >>> normalize_drug_name("Seroquel (quetiapine) Oral Tablet 25 MG")
    'seroquel 25'
    """
    s = re.sub(r"\([^)]*\)", " ", text or "")
    s = re.sub(r"[^a-zA-Z0-9\s]", " ", s)
    s = _NOISE_WORDS_RE.sub(" ", s)
    return re.sub(r"\s+", " ", s).strip().lower()


def canonical_class(value: str | None) -> str | None:
    """Map a class label (full or legacy short form) to its canonical name.

    Empty input is "Other"; an unrecognised label is None.
    """
    if not value or not value.strip():
        return OTHER
    v = re.sub(r"\s+", " ", value.strip())
    for cls in MEDICATION_CLASSES:
        if v.lower() == cls.lower():
            return cls
    return CLASS_ALIASES.get(v.lower())


def classify_medication(raw_text: str, custom_map: dict[str, str] | None = None) -> str:
    """Classify drug text: exact key, then first contained key, then Other."""
    name = normalize_drug_name(raw_text)
    combined = dict(DRUG_CLASS_MAP)
    for drug, cls in (custom_map or {}).items():
        key = normalize_drug_name(drug)
        if key:
            combined[key] = canonical_class(cls) or OTHER

    if name in combined:
        return combined[name]
    for key, cls in combined.items():
        if key in name:
            return cls
    return OTHER


def extract_class_label(text: str) -> tuple[str | None, str]:
    """Pull a printed therapeutic-class label out of a medication line."""
    for pattern, cls in CLASS_LABEL_PATTERNS:
        m = pattern.search(text)
        if m:
            cleaned = (text[: m.start()] + text[m.end():]).strip()
            return cls, re.sub(r"\s+", " ", cleaned)
    return None, text


def is_psychotropic(cls: str) -> bool:
    return cls in PSYCH_CLASSES
