"""Save Tooth Record use case."""

import logging

from ...core.utils.datetime_utils import get_current_date
from ...domain.entities.tooth_record import ToothRecord
from ...domain.errors import MissingPreconditionError
from ...domain.enums.clinical import ToothStatus
from ...domain.tooth_status import final_status_from_treatment, initial_status_from_diagnosis
from ...domain.value_objects.tooth_number import ToothNumber
from ...observability import trace_operation
from ..dto.chart_dto import SaveToothRecordRequest, SaveToothRecordResponse
from ..ports.repositories.tooth_record_repo import ToothRecordRepository

logger = logging.getLogger(__name__)


class SaveToothRecordUseCase:
    """Use case for upserting one tooth row."""

    def __init__(self, tooth_record_repository: ToothRecordRepository):
        self._tooth_record_repository = tooth_record_repository

    async def execute(self, request: SaveToothRecordRequest) -> SaveToothRecordResponse:
        """Execute the save tooth record use case."""
        if not request.patient_id:
            raise MissingPreconditionError("an active patient is required to save a tooth")

        tooth_number = ToothNumber.parse(request.tooth_number)
        status = request.status
        if not status:
            # Charted without an explicit status: infer it from the first entries
            first_diagnosis = request.diagnoses[0] if request.diagnoses else None
            first_treatment = request.treatments[0] if request.treatments else None
            if request.treatment_completed:
                status = final_status_from_treatment(first_treatment) or ToothStatus.HEALTHY
            else:
                status = initial_status_from_diagnosis(first_diagnosis, first_treatment)

        record = ToothRecord(
            tooth_number=tooth_number,
            patient_id=request.patient_id,
            status=status,
            diagnoses=tuple(request.diagnoses),
            treatments=tuple(request.treatments),
            priority=request.priority,
            notes=request.notes or "",
            examination_date=request.examination_date or get_current_date(),
            consultation_id=request.consultation_id,
            record_id=request.record_id,
        )
        with trace_operation("tooth.save", {"patient_id": request.patient_id, "tooth": str(tooth_number)}):
            saved = await self._tooth_record_repository.save(record)
        logger.info(f"Tooth {tooth_number} saved for patient {request.patient_id} ({saved.status.value})")
        return SaveToothRecordResponse(record=saved)
