"""
Voice extraction distribution.

Maps the structured payload produced by the AI voice pipeline onto
consultation sections and turns per-tooth findings into voice-pending
overlays. The confidence gate is all-or-nothing: a payload below the
threshold leaves every section and the chart untouched.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from ...domain.entities.tooth_record import ToothRecord
from ...domain.enums.clinical import RecordOrigin, SectionId, ToothStatus, TreatmentPriority
from ...domain.errors import InvalidToothNumberError, LowConfidenceExtractionError
from ...domain.sections import (
    ChiefComplaintSection,
    ClinicalDiagnosisSection,
    ClinicalExaminationSection,
    HistoryOfPresentIllnessSection,
    InvestigationsSection,
    MedicalHistorySection,
    SectionModel,
    TreatmentPlanSection,
    empty_payload,
)
from ...domain.tooth_status import initial_status_from_diagnosis
from ...domain.value_objects.tooth_number import ToothNumber
from ...observability import record_rejected_extraction
from .reconciler import ToothOverlay

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 60
DEFAULT_UNSUPPORTED_PENALTY = 10

_NAME_KEYS = ("name", "condition", "medication", "allergen", "diagnosis", "procedure", "treatment")


def _coerce_names(value: Any) -> List[str]:
    """Accept plain strings or objects such as {"condition": "Diabetes"}."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    names = []
    for item in value:
        if isinstance(item, Mapping):
            item = next((item[key] for key in _NAME_KEYS if item.get(key)), "")
        text = str(item).strip()
        if text:
            names.append(text)
    return names


NameList = Annotated[List[str], BeforeValidator(_coerce_names)]


class _Extract(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ChiefComplaintExtract(_Extract):
    primary_complaint: str = ""
    location: str = ""
    pain_scale: Optional[int] = Field(default=None, ge=0, le=10)
    duration: str = ""


class HistoryExtract(_Extract):
    pain_quality: str = ""
    onset_details: str = ""
    aggravating_factors: NameList = Field(default_factory=list)
    relieving_factors: NameList = Field(default_factory=list)


class MedicalHistoryExtract(_Extract):
    medical_conditions: NameList = Field(default_factory=list)
    current_medications: NameList = Field(default_factory=list)
    allergies: NameList = Field(default_factory=list)
    previous_dental_treatments: NameList = Field(default_factory=list)


class ClinicalExaminationExtract(_Extract):
    extraoral_findings: Dict[str, str] = Field(default_factory=dict)
    intraoral_findings: Dict[str, str] = Field(default_factory=dict)
    periodontal_status: str = ""


class RadiographicExtract(_Extract):
    findings: str = ""
    types: NameList = Field(default_factory=list)


class InvestigationsExtract(_Extract):
    radiographic: Optional[RadiographicExtract] = None
    clinical_tests: Dict[str, str] = Field(default_factory=dict)


class DiagnosisExtract(_Extract):
    provisional_diagnosis: NameList = Field(default_factory=list)
    differential_diagnosis: NameList = Field(default_factory=list)


class TreatmentPlanExtract(_Extract):
    procedures: NameList = Field(default_factory=list)
    prognosis: str = ""
    recommendations: str = ""


class ToothFinding(_Extract):
    tooth_number: str
    status: Optional[ToothStatus] = None
    diagnosis: NameList = Field(default_factory=list)
    treatment: NameList = Field(default_factory=list)
    urgency: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=100)
    notes: str = ""

    @field_validator("tooth_number", mode="before")
    @classmethod
    def validate_tooth_number(cls, v: Any) -> str:
        try:
            return str(ToothNumber.parse(str(v).strip()))
        except InvalidToothNumberError as exc:
            raise ValueError(exc.message) from exc


class ExtractionSource(str, Enum):
    VOICE = "voice"
    SUGGESTION = "suggestion"


class VoiceExtraction(_Extract):
    """Structured output of the AI extraction pipeline."""

    confidence: float = Field(..., ge=0, le=100)
    source: ExtractionSource = ExtractionSource.VOICE
    evidence_sources: List[str] = Field(default_factory=list)
    chief_complaint: Optional[ChiefComplaintExtract] = None
    history_of_present_illness: Optional[HistoryExtract] = None
    medical_history: Optional[MedicalHistoryExtract] = None
    clinical_examination: Optional[ClinicalExaminationExtract] = None
    investigations: Optional[InvestigationsExtract] = None
    diagnosis: Optional[DiagnosisExtract] = None
    treatment_plan: Optional[TreatmentPlanExtract] = None
    tooth_findings: List[ToothFinding] = Field(default_factory=list)


_URGENCY_PRIORITY: Dict[str, TreatmentPriority] = {
    "immediate": TreatmentPriority.URGENT,
    "urgent": TreatmentPriority.URGENT,
    "high": TreatmentPriority.HIGH,
    "medium": TreatmentPriority.MEDIUM,
    "moderate": TreatmentPriority.MEDIUM,
    "low": TreatmentPriority.LOW,
    "routine": TreatmentPriority.ROUTINE,
}


@dataclass(frozen=True)
class VoiceDistribution:
    """Everything a gated extraction contributes."""

    sections: Dict[SectionId, SectionModel] = field(default_factory=dict)
    overlays: Tuple[ToothOverlay, ...] = ()
    effective_confidence: float = 0.0


def _set(changes: Dict[str, Any], name: str, value: Any) -> None:
    """Only non-empty extracted values overwrite what the dentist already has."""
    if value not in (None, "", [], {}):
        changes[name] = value


def _joined(findings: Mapping[str, str]) -> str:
    return "; ".join(str(value).strip() for value in findings.values() if str(value).strip())


class VoiceDistributor:
    """Applies the confidence gate and spreads an extraction over sections."""

    def __init__(
        self,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        unsupported_penalty: float = DEFAULT_UNSUPPORTED_PENALTY,
    ) -> None:
        self._min_confidence = min_confidence
        self._unsupported_penalty = unsupported_penalty

    def effective_confidence(self, extraction: VoiceExtraction) -> float:
        """Suggestions made without supporting evidence are marked down."""
        confidence = extraction.confidence
        if extraction.source == ExtractionSource.SUGGESTION and not extraction.evidence_sources:
            confidence = max(0.0, confidence - self._unsupported_penalty)
        return confidence

    def distribute(
        self,
        extraction: VoiceExtraction,
        current: Mapping[SectionId, SectionModel],
        patient_id: str,
        consultation_id: Optional[str] = None,
    ) -> VoiceDistribution:
        """Build the section updates and tooth overlays for one extraction.

        Raises:
            LowConfidenceExtractionError: confidence below the threshold;
                nothing is returned, so nothing can be partially applied
        """
        confidence = self.effective_confidence(extraction)
        if confidence < self._min_confidence:
            logger.warning(
                f"Rejected {extraction.source.value} extraction for patient {patient_id}: "
                f"confidence {confidence:g} < {self._min_confidence:g}"
            )
            record_rejected_extraction(extraction.source.value)
            raise LowConfidenceExtractionError(confidence, self._min_confidence)

        def section(section_id: SectionId) -> SectionModel:
            return current.get(section_id) or empty_payload(section_id)

        updates: Dict[SectionId, SectionModel] = {}
        for section_id, changes in self._section_changes(extraction).items():
            if changes:
                updates[section_id] = section(section_id).model_copy(update=changes)

        overlays = tuple(
            ToothOverlay(
                record=self._finding_record(finding, patient_id, consultation_id),
                kind=RecordOrigin.VOICE_PENDING,
            )
            for finding in extraction.tooth_findings
        )
        logger.info(
            f"Distributed extraction for patient {patient_id}: "
            f"{len(updates)} sections, {len(overlays)} teeth (confidence {confidence:g})"
        )
        return VoiceDistribution(sections=updates, overlays=overlays, effective_confidence=confidence)

    def _section_changes(self, extraction: VoiceExtraction) -> Dict[SectionId, Dict[str, Any]]:
        changes: Dict[SectionId, Dict[str, Any]] = {
            section_id: {}
            for section_id in (
                SectionId.CHIEF_COMPLAINT,
                SectionId.HISTORY_OF_PRESENT_ILLNESS,
                SectionId.MEDICAL_HISTORY,
                SectionId.CLINICAL_EXAMINATION,
                SectionId.INVESTIGATIONS,
                SectionId.CLINICAL_DIAGNOSIS,
                SectionId.TREATMENT_PLAN,
            )
        }

        complaint = extraction.chief_complaint
        if complaint is not None:
            target = changes[SectionId.CHIEF_COMPLAINT]
            _set(target, "chief_complaint", complaint.primary_complaint)
            _set(target, "pain_location", complaint.location)
            _set(target, "pain_duration", complaint.duration)
            if complaint.pain_scale is not None:
                target["pain_intensity"] = complaint.pain_scale

        history = extraction.history_of_present_illness
        if history is not None:
            target = changes[SectionId.HISTORY_OF_PRESENT_ILLNESS]
            _set(target, "pain_character", history.pain_quality)
            _set(target, "onset_details", history.onset_details)
            _set(target, "pain_triggers", history.aggravating_factors)
            _set(target, "pain_relief", history.relieving_factors)

        medical = extraction.medical_history
        if medical is not None:
            target = changes[SectionId.MEDICAL_HISTORY]
            _set(target, "medical_conditions", medical.medical_conditions)
            _set(target, "current_medications", medical.current_medications)
            _set(target, "allergies", medical.allergies)
            _set(target, "previous_dental_treatments", medical.previous_dental_treatments)

        exam = extraction.clinical_examination
        if exam is not None:
            target = changes[SectionId.CLINICAL_EXAMINATION]
            _set(target, "extraoral_findings", _joined(exam.extraoral_findings))
            _set(target, "intraoral_findings", _joined(exam.intraoral_findings))
            _set(target, "periodontal_status", exam.periodontal_status)

        investigations = extraction.investigations
        if investigations is not None:
            target = changes[SectionId.INVESTIGATIONS]
            if investigations.radiographic is not None:
                _set(target, "radiographic_findings", investigations.radiographic.findings)
                _set(target, "radiographic_types", investigations.radiographic.types)
            percussion = {k: v for k, v in investigations.clinical_tests.items() if "percussion" in k.lower()}
            other = {k: v for k, v in investigations.clinical_tests.items() if k not in percussion}
            _set(target, "percussion_tests", "; ".join(f"{k}: {v}" for k, v in percussion.items()))
            _set(target, "vitality_tests", "; ".join(f"{k}: {v}" for k, v in other.items()))

        diagnosis = extraction.diagnosis
        if diagnosis is not None:
            target = changes[SectionId.CLINICAL_DIAGNOSIS]
            _set(target, "provisional_diagnosis", diagnosis.provisional_diagnosis)
            _set(target, "differential_diagnosis", diagnosis.differential_diagnosis)

        plan = extraction.treatment_plan
        if plan is not None:
            target = changes[SectionId.TREATMENT_PLAN]
            _set(target, "planned_procedures", plan.procedures)
            _set(target, "prognosis", plan.prognosis)
            _set(target, "notes", plan.recommendations)

        return changes

    @staticmethod
    def _finding_record(finding: ToothFinding, patient_id: str, consultation_id: Optional[str]) -> ToothRecord:
        status = finding.status or initial_status_from_diagnosis(
            ", ".join(finding.diagnosis), ", ".join(finding.treatment)
        )
        priority = _URGENCY_PRIORITY.get((finding.urgency or "").lower(), TreatmentPriority.MEDIUM)
        return ToothRecord(
            tooth_number=ToothNumber.parse(finding.tooth_number),
            patient_id=patient_id,
            status=status,
            diagnoses=tuple(finding.diagnosis),
            treatments=tuple(finding.treatment),
            priority=priority,
            notes=finding.notes,
            consultation_id=consultation_id,
            origin=RecordOrigin.VOICE_PENDING,
        )
