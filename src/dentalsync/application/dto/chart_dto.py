"""Chart and consultation DTOs for API communication."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from ...domain.entities.consultation import Consultation
from ...domain.entities.tooth_record import ChartStats, ToothAggregate, ToothRecord
from ...domain.enums.clinical import SectionId, SectionStatus
from ...domain.sections import SectionModel


@dataclass
class SaveSectionRequest:
    """Request DTO for writing one consultation section."""

    patient_id: str
    section_id: str
    payload: Dict[str, Any]
    consultation_id: Optional[str] = None


@dataclass
class SaveSectionResponse:
    """Response DTO for a section write."""

    consultation_id: str
    section_id: SectionId
    created: bool
    status: SectionStatus


@dataclass
class SaveToothRecordRequest:
    """Request DTO for saving one tooth of the chart."""

    patient_id: str
    tooth_number: str
    status: Optional[str] = None
    diagnoses: List[str] = field(default_factory=list)
    treatments: List[str] = field(default_factory=list)
    priority: str = "medium"
    notes: str = ""
    examination_date: Optional[date] = None
    consultation_id: Optional[str] = None
    record_id: Optional[str] = None
    treatment_completed: bool = False


@dataclass
class SaveToothRecordResponse:
    """Response DTO for a tooth save."""

    record: ToothRecord


@dataclass
class LoadToothChartRequest:
    patient_id: str


@dataclass
class LoadToothChartResponse:
    """Response DTO for the reconciled chart."""

    aggregate: ToothAggregate
    stats: ChartStats
    overviews: Dict[SectionId, SectionModel]


@dataclass
class GetConsultationRequest:
    consultation_id: str


@dataclass
class ConsultationResponse:
    """Response DTO for a consultation with derived section statuses."""

    consultation: Consultation
    statuses: Dict[SectionId, SectionStatus]


@dataclass
class FinalizeConsultationRequest:
    consultation_id: str
