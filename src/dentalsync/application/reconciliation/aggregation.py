"""
Cross-section aggregation rule.

Derives consultation-wide diagnosis and treatment lists from the tooth
aggregate and pushes them into the clinical-diagnosis and treatment-plan
sections, but only when the lists actually differ (compared sorted).
That keeps an unchanged chart from re-arming autosave.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ...domain.entities.tooth_record import ToothAggregate
from ...domain.enums.clinical import SectionId
from ...domain.sections import (
    ClinicalDiagnosisSection,
    DiagnosisOverviewSection,
    FollowUpOverviewSection,
    SectionModel,
    TreatmentOverviewSection,
    TreatmentPlanSection,
)

# (keywords, canonical name); first match wins, unmatched names pass through
TREATMENT_VOCABULARY: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("filling",), "Dental filling"),
    (("extraction",), "Tooth extraction"),
    (("root canal", "rct"), "Root canal therapy"),
    (("crown",), "Crown placement"),
    (("implant",), "Dental implant"),
    (("periodontal",), "Periodontal treatment"),
    (("orthodont",), "Orthodontic treatment"),
    (("cleaning", "maintenance"), "Routine cleaning"),
)


def normalize_treatment(name: str) -> str:
    lowered = (name or "").lower()
    for keywords, canonical in TREATMENT_VOCABULARY:
        if any(keyword in lowered for keyword in keywords):
            return canonical
    return name


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for value in values:
        if value and value not in seen:
            seen[value] = None
    return tuple(seen)


@dataclass(frozen=True)
class ChartFindings:
    """Diagnoses and treatments collected across every charted tooth."""

    diagnoses: Tuple[str, ...]
    treatments: Tuple[str, ...]


def collect_findings(aggregate: ToothAggregate) -> ChartFindings:
    """Walk teeth in FDI order so the same chart always yields the same lists."""
    records = aggregate.values()
    return ChartFindings(
        diagnoses=_unique(diagnosis for record in records for diagnosis in record.diagnoses),
        treatments=_unique(
            normalize_treatment(treatment) for record in records for treatment in record.treatments
        ),
    )


def _differs(current: Sequence[str], proposed: Sequence[str]) -> bool:
    return sorted(current) != sorted(proposed)


def apply_findings(
    findings: ChartFindings,
    diagnosis: Optional[ClinicalDiagnosisSection],
    plan: Optional[TreatmentPlanSection],
) -> Dict[SectionId, SectionModel]:
    """Sections that need rewriting; an empty dict means nothing changed.

    Final diagnosis is seeded from the chart only while it is still empty.
    """
    updates: Dict[SectionId, SectionModel] = {}
    diagnosis = diagnosis or ClinicalDiagnosisSection()
    plan = plan or TreatmentPlanSection()

    if _differs(diagnosis.provisional_diagnosis, findings.diagnoses):
        changes = {"provisional_diagnosis": list(findings.diagnoses)}
        if not diagnosis.final_diagnosis:
            changes["final_diagnosis"] = list(findings.diagnoses)
        updates[SectionId.CLINICAL_DIAGNOSIS] = diagnosis.model_copy(update=changes)

    if _differs(plan.planned_procedures, findings.treatments):
        updates[SectionId.TREATMENT_PLAN] = plan.model_copy(
            update={"planned_procedures": list(findings.treatments)}
        )
    return updates


def build_overviews(aggregate: ToothAggregate, findings: ChartFindings) -> Dict[SectionId, SectionModel]:
    """Read-only overview payloads derived from the chart."""
    tooth_diagnoses: Dict[str, List[str]] = {}
    tooth_treatments: Dict[str, List[str]] = {}
    follow_up: Dict[str, str] = {}
    for record in aggregate.values():
        key = str(record.tooth_number)
        if record.diagnoses:
            tooth_diagnoses[key] = list(record.diagnoses)
        if record.treatments:
            tooth_treatments[key] = list(record.treatments)
        if record.requires_attention:
            follow_up[key] = record.status.value

    return {
        SectionId.DIAGNOSIS_OVERVIEW: DiagnosisOverviewSection(
            tooth_diagnoses=tooth_diagnoses, aggregate_diagnoses=list(findings.diagnoses)
        ),
        SectionId.TREATMENT_OVERVIEW: TreatmentOverviewSection(
            tooth_treatments=tooth_treatments, aggregate_treatments=list(findings.treatments)
        ),
        SectionId.FOLLOW_UP_OVERVIEW: FollowUpOverviewSection(teeth_requiring_follow_up=follow_up),
    }
