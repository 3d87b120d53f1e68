"""
MongoDB implementation of ConsultationRepository.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from beanie.operators import Set

from dentalsync.application.ports.repositories.consultation_repo import (
    ConsultationRepository,
    SectionWriteResult,
    WriteOutcome,
)
from dentalsync.core.utils.datetime_utils import ensure_aware
from dentalsync.domain.entities.consultation import Consultation
from dentalsync.domain.enums.clinical import ConsultationStatus, SectionId
from dentalsync.domain.errors import ConsultationNotFoundError, InvalidSectionPayloadError
from dentalsync.domain.sections import SectionModel, parse_section_payload
from dentalsync.domain.value_objects.consultation_id import ConsultationId

from ..models.consultation_m import ConsultationMongo

logger = logging.getLogger(__name__)


def section_update(payload: SectionModel, updated_at: datetime) -> Dict[str, Any]:
    """Fields of a '$set' that touches one section blob and the update time."""
    return {
        f"sections.{payload.id.value}": payload.model_dump(mode="json"),
        "updated_at": updated_at,
    }


class MongoConsultationRepository(ConsultationRepository):
    """MongoDB implementation of ConsultationRepository."""

    async def save_section(
        self,
        patient_id: str,
        payload: SectionModel,
        consultation_id: Optional[ConsultationId] = None,
    ) -> SectionWriteResult:
        """Create the consultation on the first section, update it afterwards."""
        if consultation_id is None:
            consultation = Consultation(consultation_id=ConsultationId.generate(), patient_id=patient_id)
            consultation.set_section(payload)
            await self._domain_to_mongo(consultation).insert()
            logger.info(f"Consultation {consultation.consultation_id} created for patient {patient_id}")
            return SectionWriteResult(WriteOutcome.CREATED, consultation.consultation_id)

        consultation_mongo = await self._find(consultation_id)
        consultation = self._mongo_to_domain(consultation_mongo)
        consultation.set_section(payload)

        # Only this section is written so concurrent saves of other sections survive
        await ConsultationMongo.find_one(
            ConsultationMongo.consultation_id == consultation_id.value,
            ConsultationMongo.status == ConsultationStatus.DRAFT.value,
        ).update(Set(section_update(payload, consultation.updated_at)))
        return SectionWriteResult(WriteOutcome.UPDATED, consultation_id)

    async def find_by_id(self, consultation_id: ConsultationId) -> Optional[Consultation]:
        """Find a consultation by ID."""
        consultation_mongo = await ConsultationMongo.find_one(
            ConsultationMongo.consultation_id == consultation_id.value
        )
        if not consultation_mongo:
            return None
        return self._mongo_to_domain(consultation_mongo)

    async def find_latest_draft(self, patient_id: str) -> Optional[Consultation]:
        """Most recently updated draft for a patient."""
        consultation_mongo = await ConsultationMongo.find(
            ConsultationMongo.patient_id == patient_id,
            ConsultationMongo.status == ConsultationStatus.DRAFT.value,
        ).sort([("updated_at", -1)]).first_or_none()
        if not consultation_mongo:
            return None
        return self._mongo_to_domain(consultation_mongo)

    async def mark_completed(self, consultation_id: ConsultationId) -> Consultation:
        """Persist the terminal completed state."""
        consultation_mongo = await self._find(consultation_id)
        consultation = self._mongo_to_domain(consultation_mongo)
        consultation.finalize()

        consultation_mongo.status = consultation.status.value
        consultation_mongo.completed_at = consultation.completed_at
        consultation_mongo.updated_at = consultation.updated_at
        await consultation_mongo.save()
        return consultation

    async def _find(self, consultation_id: ConsultationId) -> ConsultationMongo:
        consultation_mongo = await ConsultationMongo.find_one(
            ConsultationMongo.consultation_id == consultation_id.value
        )
        if not consultation_mongo:
            raise ConsultationNotFoundError(consultation_id.value)
        return consultation_mongo

    def _domain_to_mongo(self, consultation: Consultation) -> ConsultationMongo:
        """Convert domain entity to MongoDB model."""
        return ConsultationMongo(
            consultation_id=consultation.consultation_id.value,
            patient_id=consultation.patient_id,
            status=consultation.status.value,
            sections={
                section_id.value: payload.model_dump(mode="json")
                for section_id, payload in consultation.sections.items()
            },
            created_at=consultation.created_at,
            updated_at=consultation.updated_at,
            completed_at=consultation.completed_at,
        )

    def _mongo_to_domain(self, consultation_mongo: ConsultationMongo) -> Consultation:
        """Convert MongoDB model to domain entity."""
        sections: Dict[SectionId, SectionModel] = {}
        for key, blob in consultation_mongo.sections.items():
            try:
                payload = parse_section_payload(blob, key)
            except InvalidSectionPayloadError as exc:
                # Unreadable blobs are left in the store but not loaded
                logger.warning(f"Skipping section {key} of {consultation_mongo.consultation_id}: {exc.message}")
                continue
            sections[payload.id] = payload

        return Consultation(
            consultation_id=ConsultationId(consultation_mongo.consultation_id),
            patient_id=consultation_mongo.patient_id,
            status=ConsultationStatus(consultation_mongo.status),
            sections=sections,
            created_at=ensure_aware(consultation_mongo.created_at),
            updated_at=ensure_aware(consultation_mongo.updated_at),
            completed_at=ensure_aware(consultation_mongo.completed_at),
        )
