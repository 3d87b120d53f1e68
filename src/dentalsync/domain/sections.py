"""
Consultation section schemas.

Each section is a pydantic model tagged by a ``section_id`` literal, so a
stored blob always parses back into the one schema it was written with.
Every model also declares which completion rule family applies to it and
the fields that rule looks at; the classifier reads nothing else.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .enums.clinical import SectionId
from .errors import InvalidSectionPayloadError


class StatusRule(str, Enum):
    """Completion rule families used by the section classifier."""
    TRIPLE_FIELD = "triple-field"
    LIST_VALUED = "list-valued"
    MIXED = "mixed"
    PREDICATE = "predicate"
    PRESENCE = "presence"


class SectionModel(BaseModel):
    """Base class for section payloads."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    STATUS_RULE: ClassVar[StatusRule]
    STATUS_FIELDS: ClassVar[Tuple[str, ...]]

    @property
    def id(self) -> SectionId:
        return SectionId(getattr(self, "section_id"))


# ============================================================================
# EDITABLE SECTIONS
# ============================================================================


class ChiefComplaintSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.TRIPLE_FIELD
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("chief_complaint", "pain_location", "pain_duration")

    section_id: Literal["chief-complaint"] = "chief-complaint"
    chief_complaint: str = Field(default="", description="Patient's main complaint in their words")
    pain_location: str = Field(default="", description="Where the pain is felt")
    pain_intensity: int = Field(default=0, ge=0, le=10, description="Pain score 0-10")
    pain_duration: str = Field(default="", description="How long symptoms have been present")
    onset_type: str = Field(default="", description="Sudden, gradual, ...")


class HistoryOfPresentIllnessSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.TRIPLE_FIELD
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("pain_character", "pain_triggers", "pain_relief")

    section_id: Literal["history-of-present-illness"] = "history-of-present-illness"
    pain_character: str = Field(default="", description="Sharp, dull, throbbing, ...")
    pain_triggers: List[str] = Field(default_factory=list, description="Cold, hot, biting, ...")
    pain_relief: List[str] = Field(default_factory=list, description="What relieves the pain")
    onset_details: str = Field(default="", description="Free-text onset narrative")


class MedicalHistorySection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.LIST_VALUED
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("medical_conditions", "current_medications", "allergies")

    section_id: Literal["medical-history"] = "medical-history"
    medical_conditions: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    previous_dental_treatments: List[str] = Field(default_factory=list)


class SmokingHabit(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = Field(default="never", description="never, former, current")
    frequency: str = ""
    duration: str = ""


class SubstanceHabit(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: List[str] = Field(default_factory=list)
    frequency: str = ""


class OralHygieneHabit(BaseModel):
    model_config = ConfigDict(frozen=True)

    brushing_frequency: str = ""
    flossing: str = ""
    last_cleaning: str = ""


class PersonalHistorySection(SectionModel):
    """Lifestyle and habit history.

    Complete as soon as any habit is recorded; there is no partial state.
    """

    STATUS_RULE: ClassVar[StatusRule] = StatusRule.PREDICATE
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = (
        "smoking.status",
        "alcohol.type",
        "tobacco.type",
        "dietary_habits",
        "oral_hygiene.brushing_frequency",
        "oral_hygiene.flossing",
        "oral_hygiene.last_cleaning",
        "other_habits",
        "exercise_habits",
        "sleep_patterns",
        "stress_levels",
        "occupation",
        "occupational_hazards",
        "lifestyle_factors",
    )

    section_id: Literal["personal-history"] = "personal-history"
    smoking: SmokingHabit = Field(default_factory=SmokingHabit)
    alcohol: SubstanceHabit = Field(default_factory=SubstanceHabit)
    tobacco: SubstanceHabit = Field(default_factory=SubstanceHabit)
    dietary_habits: List[str] = Field(default_factory=list)
    oral_hygiene: OralHygieneHabit = Field(default_factory=OralHygieneHabit)
    other_habits: List[str] = Field(default_factory=list)
    exercise_habits: str = ""
    sleep_patterns: str = ""
    stress_levels: str = ""
    occupation: str = ""
    occupational_hazards: List[str] = Field(default_factory=list)
    lifestyle_factors: List[str] = Field(default_factory=list)


class ClinicalExaminationSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.TRIPLE_FIELD
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = (
        "extraoral_findings",
        "intraoral_findings",
        "periodontal_status",
    )

    section_id: Literal["clinical-examination"] = "clinical-examination"
    extraoral_findings: str = ""
    intraoral_findings: str = ""
    periodontal_status: str = ""
    occlusion_notes: str = ""
    oral_hygiene_status: str = ""
    gingival_condition: str = ""


class InvestigationsSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.TRIPLE_FIELD
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = (
        "radiographic_findings",
        "vitality_tests",
        "percussion_tests",
    )

    section_id: Literal["investigations"] = "investigations"
    radiographic_findings: str = ""
    radiographic_types: List[str] = Field(default_factory=list)
    vitality_tests: str = ""
    percussion_tests: str = ""
    palpation_findings: str = ""
    laboratory_tests: str = ""
    recommendations: str = ""


class ClinicalDiagnosisSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.LIST_VALUED
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("provisional_diagnosis", "differential_diagnosis")

    section_id: Literal["clinical-diagnosis"] = "clinical-diagnosis"
    provisional_diagnosis: List[str] = Field(default_factory=list)
    differential_diagnosis: List[str] = Field(default_factory=list)
    final_diagnosis: List[str] = Field(default_factory=list)


class TreatmentPlanSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.MIXED
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("planned_procedures", "prognosis")

    section_id: Literal["treatment-plan"] = "treatment-plan"
    planned_procedures: List[str] = Field(default_factory=list)
    prognosis: str = ""
    notes: str = ""


class PrescribedMedication(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str = ""


class PrescriptionSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.PRESENCE
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("medications",)

    section_id: Literal["prescription"] = "prescription"
    medications: List[PrescribedMedication] = Field(default_factory=list)


class FollowUpAppointment(BaseModel):
    model_config = ConfigDict(frozen=True)

    appointment_type: str
    scheduled_date: str = ""
    duration_minutes: int = 30
    notes: str = ""
    teeth: List[str] = Field(default_factory=list)
    status: Literal["scheduled", "completed", "cancelled", "rescheduled"] = "scheduled"


class PostCareInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    importance: Literal["low", "medium", "high"] = "medium"


class ToothFollowUp(BaseModel):
    model_config = ConfigDict(frozen=True)

    appointments: List[FollowUpAppointment] = Field(default_factory=list)
    monitoring_notes: str = ""
    healing_progress: str = ""


class FollowUpSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.PRESENCE
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("appointments", "tooth_specific_follow_ups")

    section_id: Literal["follow-up"] = "follow-up"
    appointments: List[FollowUpAppointment] = Field(default_factory=list)
    post_care_instructions: List[PostCareInstruction] = Field(default_factory=list)
    tooth_specific_follow_ups: Dict[str, ToothFollowUp] = Field(default_factory=dict)
    general_notes: str = ""
    next_visit_required: bool = False
    recall_period: str = ""


# ============================================================================
# OVERVIEW SECTIONS (derived from the tooth chart, read-only)
# ============================================================================


class DiagnosisOverviewSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.PRESENCE
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("tooth_diagnoses",)

    section_id: Literal["diagnosis-overview"] = "diagnosis-overview"
    tooth_diagnoses: Dict[str, List[str]] = Field(default_factory=dict)
    aggregate_diagnoses: List[str] = Field(default_factory=list)


class TreatmentOverviewSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.PRESENCE
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("tooth_treatments",)

    section_id: Literal["treatment-overview"] = "treatment-overview"
    tooth_treatments: Dict[str, List[str]] = Field(default_factory=dict)
    aggregate_treatments: List[str] = Field(default_factory=list)


class FollowUpOverviewSection(SectionModel):
    STATUS_RULE: ClassVar[StatusRule] = StatusRule.PRESENCE
    STATUS_FIELDS: ClassVar[Tuple[str, ...]] = ("teeth_requiring_follow_up",)

    section_id: Literal["follow-up-overview"] = "follow-up-overview"
    teeth_requiring_follow_up: Dict[str, str] = Field(
        default_factory=dict, description="Tooth number -> status still needing treatment"
    )


SectionPayload = Annotated[
    Union[
        ChiefComplaintSection,
        HistoryOfPresentIllnessSection,
        MedicalHistorySection,
        PersonalHistorySection,
        ClinicalExaminationSection,
        InvestigationsSection,
        ClinicalDiagnosisSection,
        TreatmentPlanSection,
        PrescriptionSection,
        FollowUpSection,
        DiagnosisOverviewSection,
        TreatmentOverviewSection,
        FollowUpOverviewSection,
    ],
    Field(discriminator="section_id"),
]

_payload_adapter: TypeAdapter = TypeAdapter(SectionPayload)


@dataclass(frozen=True)
class SectionDescriptor:
    """Static description of a consultation section."""

    section_id: SectionId
    label: str
    model: Type[SectionModel]
    order: int
    is_overview: bool = False


SECTION_REGISTRY: Mapping[SectionId, SectionDescriptor] = {
    descriptor.section_id: descriptor
    for descriptor in (
        SectionDescriptor(SectionId.CHIEF_COMPLAINT, "Chief Complaint", ChiefComplaintSection, 1),
        SectionDescriptor(
            SectionId.HISTORY_OF_PRESENT_ILLNESS,
            "History of Present Illness",
            HistoryOfPresentIllnessSection,
            2,
        ),
        SectionDescriptor(SectionId.MEDICAL_HISTORY, "Medical History", MedicalHistorySection, 3),
        SectionDescriptor(SectionId.PERSONAL_HISTORY, "Personal History", PersonalHistorySection, 4),
        SectionDescriptor(
            SectionId.CLINICAL_EXAMINATION, "Clinical Examination", ClinicalExaminationSection, 5
        ),
        SectionDescriptor(SectionId.INVESTIGATIONS, "Investigations", InvestigationsSection, 6),
        SectionDescriptor(SectionId.DIAGNOSIS_OVERVIEW, "Diagnosis Overview", DiagnosisOverviewSection, 7, True),
        SectionDescriptor(SectionId.CLINICAL_DIAGNOSIS, "Clinical Diagnosis", ClinicalDiagnosisSection, 8),
        SectionDescriptor(SectionId.TREATMENT_OVERVIEW, "Treatment Overview", TreatmentOverviewSection, 9, True),
        SectionDescriptor(SectionId.TREATMENT_PLAN, "Treatment Plan", TreatmentPlanSection, 10),
        SectionDescriptor(SectionId.PRESCRIPTION, "Prescription", PrescriptionSection, 11),
        SectionDescriptor(SectionId.FOLLOW_UP, "Follow-up", FollowUpSection, 12),
        SectionDescriptor(
            SectionId.FOLLOW_UP_OVERVIEW, "Follow-up Overview", FollowUpOverviewSection, 13, True
        ),
    )
}


def get_descriptor(section_id: Union[SectionId, str]) -> SectionDescriptor:
    return SECTION_REGISTRY[SectionId(section_id)]


def ordered_descriptors() -> List[SectionDescriptor]:
    """Descriptors in display order."""
    return sorted(SECTION_REGISTRY.values(), key=lambda descriptor: descriptor.order)


def empty_payload(section_id: Union[SectionId, str]) -> SectionModel:
    """A payload with every field at its default."""
    return get_descriptor(section_id).model()


def parse_section_payload(
    data: Union[SectionModel, Mapping[str, Any]],
    section_id: Optional[Union[SectionId, str]] = None,
) -> SectionModel:
    """Validate raw section data into its concrete schema.

    ``section_id`` fills in the tag for blobs that were stored without it and
    must agree with the tag when both are present.

    Raises:
        InvalidSectionPayloadError: unknown section or schema mismatch
    """
    expected = None
    if section_id is not None:
        try:
            expected = SectionId(section_id).value
        except ValueError as exc:
            raise InvalidSectionPayloadError(str(section_id), "unknown section") from exc

    if isinstance(data, SectionModel):
        if expected is not None and data.id.value != expected:
            raise InvalidSectionPayloadError(expected, f"payload is tagged '{data.id.value}'")
        return data

    raw = dict(data)
    if expected is not None:
        tagged = raw.setdefault("section_id", expected)
        if tagged != expected:
            raise InvalidSectionPayloadError(expected, f"payload is tagged '{tagged}'")

    try:
        return _payload_adapter.validate_python(raw)
    except ValidationError as exc:
        raise InvalidSectionPayloadError(
            str(raw.get("section_id", "unknown")), exc.errors()[0]["msg"]
        ) from exc
