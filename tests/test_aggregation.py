"""
Cross-section aggregation tests.
"""

import pytest

from dentalsync.application.reconciliation.aggregation import (
    apply_findings,
    build_overviews,
    collect_findings,
    normalize_treatment,
)
from dentalsync.domain.entities.tooth_record import ToothAggregate, ToothRecord
from dentalsync.domain.enums.clinical import SectionId
from dentalsync.domain.sections import ClinicalDiagnosisSection, TreatmentPlanSection

PATIENT = "PAT-001"


def _aggregate(*records):
    return ToothAggregate(records={str(record.tooth_number): record for record in records})


def _tooth(tooth, status="healthy", diagnoses=(), treatments=()):
    return ToothRecord(
        tooth_number=tooth,
        patient_id=PATIENT,
        status=status,
        diagnoses=diagnoses,
        treatments=treatments,
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Composite filling", "Dental filling"),
        ("RCT", "Root canal therapy"),
        ("Zirconia crown", "Crown placement"),
        ("Surgical extraction", "Tooth extraction"),
        ("Fluoride varnish", "Fluoride varnish"),
    ],
)
def test_normalize_treatment(raw, expected):
    assert normalize_treatment(raw) == expected


def test_findings_follow_tooth_order_and_are_unique():
    aggregate = _aggregate(
        _tooth("36", "caries", ["Caries"], ["Filling"]),
        _tooth("16", "caries", ["Caries", "Pulpitis"], ["Root canal", "Composite filling"]),
    )
    findings = collect_findings(aggregate)
    assert findings.diagnoses == ("Caries", "Pulpitis")
    assert findings.treatments == ("Root canal therapy", "Dental filling")


class TestApplyFindings:
    def test_pushes_new_lists_into_both_sections(self):
        findings = collect_findings(_aggregate(_tooth("16", "caries", ["Caries"], ["Filling"])))
        updates = apply_findings(findings, None, None)

        assert updates[SectionId.CLINICAL_DIAGNOSIS].provisional_diagnosis == ["Caries"]
        assert updates[SectionId.CLINICAL_DIAGNOSIS].final_diagnosis == ["Caries"]
        assert updates[SectionId.TREATMENT_PLAN].planned_procedures == ["Dental filling"]

    def test_same_lists_in_other_order_change_nothing(self):
        findings = collect_findings(
            _aggregate(_tooth("16", "caries", ["Caries", "Pulpitis"], ["Filling", "Crown"]))
        )
        diagnosis = ClinicalDiagnosisSection(provisional_diagnosis=["Pulpitis", "Caries"])
        plan = TreatmentPlanSection(planned_procedures=["Crown placement", "Dental filling"])
        assert apply_findings(findings, diagnosis, plan) == {}

    def test_final_diagnosis_is_only_seeded_while_empty(self):
        findings = collect_findings(_aggregate(_tooth("16", "caries", ["Caries"])))
        diagnosis = ClinicalDiagnosisSection(final_diagnosis=["Reversible pulpitis"])
        updated = apply_findings(findings, diagnosis, None)[SectionId.CLINICAL_DIAGNOSIS]

        assert updated.provisional_diagnosis == ["Caries"]
        assert updated.final_diagnosis == ["Reversible pulpitis"]

    def test_other_fields_are_preserved(self):
        findings = collect_findings(_aggregate(_tooth("16", treatments=["Crown"])))
        plan = TreatmentPlanSection(prognosis="Good", notes="Review in 6 months")
        updated = apply_findings(findings, None, plan)[SectionId.TREATMENT_PLAN]
        assert (updated.prognosis, updated.notes) == ("Good", "Review in 6 months")


def test_overviews_are_derived_from_the_chart():
    aggregate = _aggregate(
        _tooth("16", "caries", ["Caries"], ["Filling"]),
        _tooth("21", "filled", treatments=["Composite filling"]),
        _tooth("48", "extraction_needed", ["Impacted"]),
    )
    overviews = build_overviews(aggregate, collect_findings(aggregate))

    diagnosis = overviews[SectionId.DIAGNOSIS_OVERVIEW]
    assert diagnosis.tooth_diagnoses == {"16": ["Caries"], "48": ["Impacted"]}
    assert overviews[SectionId.TREATMENT_OVERVIEW].aggregate_treatments == ["Dental filling"]
    assert overviews[SectionId.FOLLOW_UP_OVERVIEW].teeth_requiring_follow_up == {
        "16": "caries",
        "48": "extraction_needed",
    }


def test_empty_chart_gives_empty_overviews():
    aggregate = ToothAggregate.empty()
    overviews = build_overviews(aggregate, collect_findings(aggregate))
    assert overviews[SectionId.DIAGNOSIS_OVERVIEW].tooth_diagnoses == {}
    assert overviews[SectionId.FOLLOW_UP_OVERVIEW].teeth_requiring_follow_up == {}
