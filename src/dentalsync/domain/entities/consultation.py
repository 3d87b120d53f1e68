"""Consultation domain entity.

A consultation is created by the first section autosave, mutated by every
later section save and finalized once by an explicit terminal action.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from ...core.utils.datetime_utils import get_current_timestamp
from ..enums.clinical import ConsultationStatus, SectionId
from ..errors import ConsultationAlreadyCompletedError, ReadOnlySectionError
from ..sections import SectionModel, get_descriptor
from ..value_objects.consultation_id import ConsultationId


@dataclass
class Consultation:
    """Consultation entity holding one payload per section."""

    consultation_id: ConsultationId
    patient_id: str
    status: ConsultationStatus = ConsultationStatus.DRAFT
    sections: Dict[SectionId, SectionModel] = field(default_factory=dict)
    created_at: datetime = field(default_factory=get_current_timestamp)
    updated_at: datetime = field(default_factory=get_current_timestamp)
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == ConsultationStatus.COMPLETED

    def set_section(self, payload: SectionModel) -> None:
        """Replace one section's payload."""
        if self.is_completed:
            raise ConsultationAlreadyCompletedError(self.consultation_id.value)
        if get_descriptor(payload.id).is_overview:
            raise ReadOnlySectionError(payload.id.value)
        self.sections[payload.id] = payload
        self.updated_at = get_current_timestamp()

    def get_section(self, section_id: SectionId) -> Optional[SectionModel]:
        return self.sections.get(SectionId(section_id))

    def finalize(self) -> None:
        """Move to the terminal completed state."""
        if self.is_completed:
            raise ConsultationAlreadyCompletedError(self.consultation_id.value)
        now = get_current_timestamp()
        self.status = ConsultationStatus.COMPLETED
        self.completed_at = now
        self.updated_at = now
