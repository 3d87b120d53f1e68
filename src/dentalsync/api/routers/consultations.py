"""Consultation section and lifecycle endpoints."""

import logging

from fastapi import APIRouter, Request, status

from ...application.dto.chart_dto import (
    FinalizeConsultationRequest,
    GetConsultationRequest,
    SaveSectionRequest,
)
from ...application.use_cases.finalize_consultation import FinalizeConsultationUseCase
from ...application.use_cases.get_consultation import GetConsultationUseCase
from ...application.use_cases.save_consultation_section import SaveConsultationSectionUseCase
from ..deps import ConsultationRepositoryDep, EventPublisherDep
from ..schemas.common import ApiResponse, ErrorResponse
from ..schemas.consultation import ConsultationSchema, SaveSectionBody, SaveSectionResult
from ..utils.responses import ok

router = APIRouter(prefix="/consultations", tags=["Consultations"])
logger = logging.getLogger(__name__)


@router.put(
    "/sections",
    response_model=ApiResponse[SaveSectionResult],
    status_code=status.HTTP_200_OK,
    responses={
        404: {"model": ErrorResponse, "description": "Consultation not found"},
        409: {"model": ErrorResponse, "description": "Consultation already completed"},
        422: {"model": ErrorResponse, "description": "Invalid or read-only section"},
    },
)
async def save_section(request: Request, body: SaveSectionBody, consultation_repo: ConsultationRepositoryDep):
    """Write one section; the first write for a patient creates the consultation."""
    result = await SaveConsultationSectionUseCase(consultation_repo).execute(
        SaveSectionRequest(
            patient_id=body.patient_id,
            section_id=body.section_id.value,
            payload=body.payload,
            consultation_id=body.consultation_id,
        )
    )
    return ok(
        request,
        data=SaveSectionResult(
            consultation_id=result.consultation_id,
            section_id=result.section_id,
            created=result.created,
            status=result.status,
        ),
        message="Consultation created" if result.created else "Section saved",
    )


@router.get(
    "/{consultation_id}",
    response_model=ApiResponse[ConsultationSchema],
    responses={404: {"model": ErrorResponse, "description": "Consultation not found"}},
)
async def get_consultation(request: Request, consultation_id: str, consultation_repo: ConsultationRepositoryDep):
    result = await GetConsultationUseCase(consultation_repo).execute(
        GetConsultationRequest(consultation_id=consultation_id)
    )
    return ok(request, data=ConsultationSchema.from_domain(result.consultation, result.statuses))


@router.post(
    "/{consultation_id}/finalize",
    response_model=ApiResponse[ConsultationSchema],
    responses={
        404: {"model": ErrorResponse, "description": "Consultation not found"},
        409: {"model": ErrorResponse, "description": "Consultation already completed"},
    },
)
async def finalize_consultation(
    request: Request,
    consultation_id: str,
    consultation_repo: ConsultationRepositoryDep,
    event_publisher: EventPublisherDep,
):
    """Mark the consultation completed; later section writes are refused."""
    result = await FinalizeConsultationUseCase(consultation_repo, event_publisher).execute(
        FinalizeConsultationRequest(consultation_id=consultation_id)
    )
    return ok(
        request,
        data=ConsultationSchema.from_domain(result.consultation, result.statuses),
        message="Consultation completed",
    )
