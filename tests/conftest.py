"""Shared test fixtures for psychaudit tests."""

from datetime import date

import pytest

from psychaudit.drugs import ANTIPSYCHOTIC
from psychaudit.models import (
    GDR_DONE,
    BehaviorEvent,
    CarePlanItem,
    ConsultEvent,
    ManualGdrData,
    Medication,
    ResidentRecords,
)

REVIEW_MONTH = "2024-03"
REFERENCE_DATE = date(2024, 3, 31)


CENSUS_TEXT = """\
Census Report - Sunrise Care Center
Unit 3
101-A John Doe (ABC123)
102-B EMPTY
103 Jane Roe (XYZ789)
Unit 4
Smith, Mary (MS42)
"""

MEDS_TEXT = """\
Doe, John (ABC123) Quetiapine Fumarate Tablet 25 MG Give 1 tablet by mouth at bedtime for agitation 01/15/2024 ANTIPSYCHOTICS/ANTIMANIC AGENTS
Roe, Jane (XYZ789) Sertraline HCl Tablet 50 MG Give 1 tablet by mouth one time a day for depression 02/01/2024
Roe, Jane (XYZ789) Risperidone Tablet 0.5 MG Give 1 tablet by mouth at bedtime 02/10/2024
"""

CONSULTS_TEXT = """\
Doe, John (ABC123)
03/10/2024 Psychiatry consult completed, continue current regimen
Roe, Jane (XYZ789)
12/01/2023 Psychiatry consult pending
"""

BEHAVIORS_TEXT = "Doe, John (ABC123)\n" + "".join(
    f"03/{day:02d}/2024 Behavior monitoring: no behaviors observed\n" for day in range(1, 9)
)

CAREPLAN_TEXT = """\
Doe, John (ABC123) Resident receives psychotropic medication for agitation
Doe, John (ABC123) At risk for falls
Roe, Jane (XYZ789) Nutrition: regular diet
"""

ORDERS_TEXT = """\
03/05/2024 Psychiatry consult for evaluation - Jane Roe
03/06/2024 Cardiology consult (ABC123)
"""

EPISODIC_TEXT = """\
Doe, John (ABC123)
Episodic Behavior Note
Effective Date: 03/12/2024 14:00
Situation: What behavior was observed? Resident yelling at staff.
Immediate Action: Immediate actions were taken to ensure safety: Redirected resident.
Intervention: The following non-pharmacological interventions were attempted: Music therapy.
Author: RN Smith
"""


@pytest.fixture
def report_texts():
    """Pasted report text per report type for one small facility."""
    return {
        "census": CENSUS_TEXT,
        "meds": MEDS_TEXT,
        "consults": CONSULTS_TEXT,
        "behaviors": BEHAVIORS_TEXT,
        "careplan": CAREPLAN_TEXT,
        "psych_md_orders": ORDERS_TEXT,
        "episodic_behaviors": EPISODIC_TEXT,
    }


@pytest.fixture
def compliant_records():
    """A resident who satisfies every compliance rule as of 2024-03-31."""
    return ResidentRecords(
        mrn="ABC123",
        name="John Doe",
        room="101-A",
        unit="Unit 3",
        medications=[
            Medication(
                mrn="ABC123",
                drug_name="Quetiapine",
                display_name="Quetiapine Tablet 25 MG",
                normalized_name="quetiapine 25",
                therapeutic_class=ANTIPSYCHOTIC,
                frequency="at bedtime",
                start_date="2024-01-15",
                indication="Schizophrenia",
            ),
        ],
        consults=[ConsultEvent(date="2024-03-10", status="Complete", snippet="Psychiatry consult")],
        behaviors=[BehaviorEvent(date=f"2024-03-{day:02d}", snippet="monitored") for day in range(1, 9)],
        care_plan=[CarePlanItem(text="Psychotropic medication management", psych_related=True)],
        manual_gdr=ManualGdrData(status=GDR_DONE, note="Dose reduced 02/2024, tolerated well"),
    )
