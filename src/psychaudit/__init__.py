"""psychaudit — Parse long-term-care EHR report text and audit psychotropic reviews.

Turns pasted census, medication, consult, behavior, care-plan, order and
episodic-behavior reports into per-resident records, then evaluates monthly
gradual-dose-reduction (GDR) review compliance.
"""

__version__ = "0.4.0"
