"""Get Consultation use case."""

from ...domain.errors import ConsultationNotFoundError
from ...domain.value_objects.consultation_id import ConsultationId
from ..dto.chart_dto import ConsultationResponse, GetConsultationRequest
from ..ports.repositories.consultation_repo import ConsultationRepository
from ..reconciliation.section_status import classify_all


class GetConsultationUseCase:
    """Use case for reading a consultation with its section statuses."""

    def __init__(self, consultation_repository: ConsultationRepository):
        self._consultation_repository = consultation_repository

    async def execute(self, request: GetConsultationRequest) -> ConsultationResponse:
        """Execute the get consultation use case."""
        consultation = await self._consultation_repository.find_by_id(
            ConsultationId(request.consultation_id)
        )
        if not consultation:
            raise ConsultationNotFoundError(request.consultation_id)

        return ConsultationResponse(
            consultation=consultation,
            statuses=classify_all(consultation.sections),
        )
