"""Finalize Consultation use case.

Moves a draft to completed and hands it to downstream workflows.
"""

import logging
from typing import Optional

from ...domain.value_objects.consultation_id import ConsultationId
from ..dto.chart_dto import ConsultationResponse, FinalizeConsultationRequest
from ..ports.repositories.consultation_repo import ConsultationRepository
from ..ports.services.consultation_events import ConsultationEventPublisher
from ..reconciliation.section_status import classify_all

logger = logging.getLogger(__name__)


class FinalizeConsultationUseCase:
    """Use case for the terminal draft -> completed transition."""

    def __init__(
        self,
        consultation_repository: ConsultationRepository,
        event_publisher: Optional[ConsultationEventPublisher] = None,
    ):
        self._consultation_repository = consultation_repository
        self._event_publisher = event_publisher

    async def execute(self, request: FinalizeConsultationRequest) -> ConsultationResponse:
        """Execute the finalize use case.

        Raises:
            ConsultationNotFoundError: unknown consultation
            ConsultationAlreadyCompletedError: finalized before
        """
        consultation = await self._consultation_repository.mark_completed(
            ConsultationId(request.consultation_id)
        )
        logger.info(f"Consultation {request.consultation_id} completed")

        if self._event_publisher is not None:
            await self._event_publisher.consultation_completed(consultation)

        return ConsultationResponse(
            consultation=consultation,
            statuses=classify_all(consultation.sections),
        )
