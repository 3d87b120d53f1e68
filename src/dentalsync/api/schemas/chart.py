"""
Tooth chart request/response schemas.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...domain.entities.tooth_record import ChartStats, ToothAggregate, ToothRecord
from ...domain.enums.clinical import SectionId, ToothStatus, TreatmentPriority
from ...domain.sections import SectionModel


class SaveToothRequest(BaseModel):
    """Body of PUT /patients/{patient_id}/teeth/{tooth_number}."""

    status: Optional[ToothStatus] = Field(None, description="Inferred from the first diagnosis or completed treatment when omitted")
    diagnoses: List[str] = Field(default_factory=list)
    treatments: List[str] = Field(default_factory=list)
    priority: TreatmentPriority = Field(TreatmentPriority.MEDIUM)
    notes: str = Field("", max_length=2000)
    examination_date: Optional[date] = None
    consultation_id: Optional[str] = None
    record_id: Optional[str] = None
    treatment_completed: bool = Field(False, description="Chart the status the treatment leaves the tooth in")


class ToothRecordSchema(BaseModel):
    tooth_number: str
    status: ToothStatus
    color_code: str
    treatment_complete: bool
    diagnoses: List[str]
    treatments: List[str]
    priority: TreatmentPriority
    notes: str
    examination_date: Optional[date] = None
    updated_at: Optional[datetime] = None
    record_id: Optional[str] = None
    consultation_id: Optional[str] = None
    origin: str

    @classmethod
    def from_domain(cls, record: ToothRecord) -> "ToothRecordSchema":
        return cls(
            tooth_number=str(record.tooth_number),
            status=record.status,
            color_code=record.color_code,
            treatment_complete=record.is_treatment_complete,
            diagnoses=list(record.diagnoses),
            treatments=list(record.treatments),
            priority=record.priority,
            notes=record.notes,
            examination_date=record.examination_date,
            updated_at=record.updated_at,
            record_id=record.record_id,
            consultation_id=record.consultation_id,
            origin=record.origin.value,
        )


class ChartStatsSchema(BaseModel):
    healthy: int
    caries: int
    restorations: int
    attention: int
    total: int

    @classmethod
    def from_domain(cls, stats: ChartStats) -> "ChartStatsSchema":
        return cls(
            healthy=stats.healthy,
            caries=stats.caries,
            restorations=stats.restorations,
            attention=stats.attention,
            total=stats.total,
        )


class ToothChartSchema(BaseModel):
    """Reconciled chart: one governing record per tooth plus derived views."""

    patient_id: str
    revision: int
    teeth: List[ToothRecordSchema]
    stats: ChartStatsSchema
    overviews: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @classmethod
    def from_domain(
        cls,
        patient_id: str,
        aggregate: ToothAggregate,
        stats: ChartStats,
        overviews: Dict[SectionId, SectionModel],
    ) -> "ToothChartSchema":
        return cls(
            patient_id=patient_id,
            revision=aggregate.revision,
            teeth=[ToothRecordSchema.from_domain(record) for record in aggregate.values()],
            stats=ChartStatsSchema.from_domain(stats),
            overviews={
                section_id.value: payload.model_dump(mode="json")
                for section_id, payload in overviews.items()
            },
        )
