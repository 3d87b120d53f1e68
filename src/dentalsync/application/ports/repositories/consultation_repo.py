"""
Consultation repository interface for section documents.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ....domain.entities.consultation import Consultation
from ....domain.sections import SectionModel
from ....domain.value_objects.consultation_id import ConsultationId


class WriteOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class SectionWriteResult:
    """Result of a section upsert."""

    outcome: WriteOutcome
    consultation_id: ConsultationId

    @property
    def created(self) -> bool:
        return self.outcome == WriteOutcome.CREATED


class ConsultationRepository(ABC):
    """Abstract repository for consultation documents."""

    @abstractmethod
    async def save_section(
        self,
        patient_id: str,
        payload: SectionModel,
        consultation_id: Optional[ConsultationId] = None,
    ) -> SectionWriteResult:
        """Write one section blob.

        Without a consultation ID a new draft consultation is created and
        its ID returned; with one, that consultation is updated.

        Raises:
            ConsultationNotFoundError: the given ID does not exist
            ConsultationAlreadyCompletedError: the consultation is finalized
        """
        pass

    @abstractmethod
    async def find_by_id(self, consultation_id: ConsultationId) -> Optional[Consultation]:
        """Find a consultation by ID."""
        pass

    @abstractmethod
    async def find_latest_draft(self, patient_id: str) -> Optional[Consultation]:
        """Most recently updated draft consultation for a patient."""
        pass

    @abstractmethod
    async def mark_completed(self, consultation_id: ConsultationId) -> Consultation:
        """Persist the draft -> completed transition.

        Raises:
            ConsultationNotFoundError: the given ID does not exist
            ConsultationAlreadyCompletedError: the consultation is finalized
        """
        pass
