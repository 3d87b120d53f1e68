"""Save Consultation Section use case.

Server-side counterpart of the autosave write: creates the consultation on
the first section and updates it afterwards.
"""

import logging

from ...domain.errors import MissingPreconditionError, ReadOnlySectionError
from ...domain.sections import get_descriptor, parse_section_payload
from ...domain.value_objects.consultation_id import ConsultationId
from ...observability import trace_operation
from ..dto.chart_dto import SaveSectionRequest, SaveSectionResponse
from ..ports.repositories.consultation_repo import ConsultationRepository
from ..reconciliation.section_status import classify

logger = logging.getLogger(__name__)


class SaveConsultationSectionUseCase:
    """Use case for writing one section blob."""

    def __init__(self, consultation_repository: ConsultationRepository):
        self._consultation_repository = consultation_repository

    async def execute(self, request: SaveSectionRequest) -> SaveSectionResponse:
        """Execute the save section use case."""
        if not request.patient_id:
            raise MissingPreconditionError("an active patient is required to save a section")

        payload = parse_section_payload(request.payload, request.section_id)
        if get_descriptor(payload.id).is_overview:
            raise ReadOnlySectionError(payload.id.value)

        consultation_id = ConsultationId(request.consultation_id) if request.consultation_id else None
        with trace_operation("consultation.save_section", {"section": payload.id.value}):
            result = await self._consultation_repository.save_section(
                request.patient_id, payload, consultation_id
            )
        logger.info(
            f"Section {payload.id.value} {result.outcome.value} on consultation "
            f"{result.consultation_id} for patient {request.patient_id}"
        )

        return SaveSectionResponse(
            consultation_id=result.consultation_id.value,
            section_id=payload.id,
            created=result.created,
            status=classify(payload.id, payload),
        )
