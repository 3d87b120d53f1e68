"""Tooth chart endpoints."""

import logging

from fastapi import APIRouter, Request, status

from ...application.dto.chart_dto import LoadToothChartRequest, SaveToothRecordRequest
from ...application.use_cases.load_tooth_chart import LoadToothChartUseCase
from ...application.use_cases.save_tooth_record import SaveToothRecordUseCase
from ..deps import ToothRecordRepositoryDep
from ..schemas.chart import SaveToothRequest, ToothChartSchema, ToothRecordSchema
from ..schemas.common import ApiResponse, ErrorResponse
from ..utils.responses import ok

router = APIRouter(prefix="/patients", tags=["Tooth Chart"])
logger = logging.getLogger(__name__)


@router.get(
    "/{patient_id}/chart",
    response_model=ApiResponse[ToothChartSchema],
    status_code=status.HTTP_200_OK,
    responses={500: {"model": ErrorResponse, "description": "Internal server error"}},
)
async def get_tooth_chart(request: Request, patient_id: str, tooth_repo: ToothRecordRepositoryDep):
    """Latest record per tooth, reconciled into one chart."""
    result = await LoadToothChartUseCase(tooth_repo).execute(LoadToothChartRequest(patient_id=patient_id))
    return ok(
        request,
        data=ToothChartSchema.from_domain(patient_id, result.aggregate, result.stats, result.overviews),
        message="Tooth chart loaded",
    )


@router.put(
    "/{patient_id}/teeth/{tooth_number}",
    response_model=ApiResponse[ToothRecordSchema],
    status_code=status.HTTP_200_OK,
    responses={
        422: {"model": ErrorResponse, "description": "Invalid tooth number or body"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)
async def save_tooth(
    request: Request,
    patient_id: str,
    tooth_number: str,
    body: SaveToothRequest,
    tooth_repo: ToothRecordRepositoryDep,
):
    """Upsert one tooth row.

    Readers may not see the row for up to a second; clients reload the
    chart after that delay instead of trusting their own copy.
    """
    logger.info(f"Save tooth request: patient_id={patient_id}, tooth={tooth_number}")
    result = await SaveToothRecordUseCase(tooth_repo).execute(
        SaveToothRecordRequest(
            patient_id=patient_id,
            tooth_number=tooth_number,
            status=body.status.value if body.status else None,
            diagnoses=body.diagnoses,
            treatments=body.treatments,
            priority=body.priority.value,
            notes=body.notes,
            examination_date=body.examination_date,
            consultation_id=body.consultation_id,
            record_id=body.record_id,
            treatment_completed=body.treatment_completed,
        )
    )
    return ok(request, data=ToothRecordSchema.from_domain(result.record), message="Tooth saved")
