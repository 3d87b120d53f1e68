"""
Consultation request/response schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...domain.entities.consultation import Consultation
from ...domain.enums.clinical import ConsultationStatus, SectionId, SectionStatus
from ...domain.sections import ordered_descriptors


class SaveSectionBody(BaseModel):
    """Body of PUT /consultations/sections.

    Without ``consultation_id`` a new draft consultation is created.
    """

    patient_id: str = Field(..., min_length=1)
    section_id: SectionId
    consultation_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


class SaveSectionResult(BaseModel):
    consultation_id: str
    section_id: SectionId
    created: bool
    status: SectionStatus


class SectionView(BaseModel):
    section_id: SectionId
    label: str
    is_overview: bool
    status: SectionStatus
    payload: Optional[Dict[str, Any]] = None


class ConsultationSchema(BaseModel):
    consultation_id: str
    patient_id: str
    status: ConsultationStatus
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    sections: List[SectionView]

    @classmethod
    def from_domain(
        cls, consultation: Consultation, statuses: Dict[SectionId, SectionStatus]
    ) -> "ConsultationSchema":
        sections = []
        for descriptor in ordered_descriptors():
            payload = consultation.get_section(descriptor.section_id)
            sections.append(
                SectionView(
                    section_id=descriptor.section_id,
                    label=descriptor.label,
                    is_overview=descriptor.is_overview,
                    status=statuses.get(descriptor.section_id, SectionStatus.EMPTY),
                    payload=payload.model_dump(mode="json") if payload is not None else None,
                )
            )
        return cls(
            consultation_id=consultation.consultation_id.value,
            patient_id=consultation.patient_id,
            status=consultation.status,
            created_at=consultation.created_at,
            updated_at=consultation.updated_at,
            completed_at=consultation.completed_at,
            sections=sections,
        )
