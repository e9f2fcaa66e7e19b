"""Payroll lifecycle API endpoints."""

from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from ph_payroll.api.dependencies import DbSession, PayrollServiceDep
from ph_payroll.api.schemas import (
    ActionRequest,
    DailyPayPreview,
    ErrorResponse,
    GenerateRequest,
    PayrollDetailResponse,
    PayrollLogResponse,
    PayrollResponse,
    PreviewLineItem,
    PreviewResponse,
    StatusCountsResponse,
    VoidRequest,
)
from ph_payroll.calculators.types import PayrollCalculationResult
from ph_payroll.models import Payroll
from ph_payroll.services.payroll_log import PayrollLogService
from ph_payroll.services.payroll_service import PayrollService

router = APIRouter(prefix="/payrolls", tags=["payrolls"])

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


async def _detail(service: PayrollService, payroll: Payroll) -> PayrollDetailResponse:
    loaded = await service.require_payroll(payroll.payroll_id, load_lines=True)
    return PayrollDetailResponse.model_validate(loaded)


def _preview_response(result: PayrollCalculationResult) -> PreviewResponse:
    return PreviewResponse(
        employee_id=result.employee_id,
        organization_id=result.organization_id,
        period_start=result.period_start,
        period_end=result.period_end,
        gross_pay=result.gross_pay,
        taxable_income=result.government.taxable_income,
        tax=result.government.tax,
        philhealth=result.government.philhealth,
        sss=result.government.sss,
        pagibig=result.government.pagibig,
        late_deduction=result.policy.late,
        undertime_deduction=result.policy.undertime,
        absence_deduction=result.policy.absence,
        absent_days=result.absent_days,
        total_deductions=result.total_deductions,
        net_pay=result.net_pay,
        days=[
            DailyPayPreview(
                work_date=d.work_date,
                day_type=d.day_type.value,
                holiday_type=d.holiday_type.value if d.holiday_type else None,
                worked_minutes=d.worked_minutes,
                regular_minutes=d.regular_minutes,
                overtime_minutes=d.overtime_minutes,
                night_diff_minutes=d.night_diff_minutes,
                regular_pay=d.regular_pay,
                overtime_pay=d.overtime_pay,
                night_diff_pay=d.night_diff_pay,
            )
            for d in result.daily_breakdown
        ],
        lines=[
            PreviewLineItem(
                line_type=line.line_type.value,
                code=line.code,
                amount=line.amount,
                hours=line.hours,
                rate=line.rate,
                explanation=line.explanation,
            )
            for line in result.lines
        ],
        computed_at=datetime.now(timezone.utc),
    )


@router.post(
    "/generate",
    response_model=PayrollDetailResponse,
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
)
async def generate_payroll(
    db: DbSession,
    service: PayrollServiceDep,
    payload: GenerateRequest,
) -> PayrollDetailResponse:
    """Generate a payroll. Returns the existing one for an already generated period."""
    payroll = await service.generate(
        payload.employee_id, payload.period_start, payload.period_end, payload.user_id
    )
    await db.commit()
    return await _detail(service, payroll)


@router.post("/preview", response_model=PreviewResponse, responses=ERROR_RESPONSES)
async def preview_payroll(
    service: PayrollServiceDep,
    payload: GenerateRequest,
) -> PreviewResponse:
    """Compute a payroll without persisting it."""
    result = await service.preview(payload.employee_id, payload.period_start, payload.period_end)
    return _preview_response(result)


@router.get("/status-counts", response_model=StatusCountsResponse)
async def payroll_status_counts(
    service: PayrollServiceDep,
    organization_id: Annotated[UUID, Query()],
) -> StatusCountsResponse:
    """Count an organization's payrolls per status."""
    counts = await service.status_counts(organization_id)
    return StatusCountsResponse(organization_id=organization_id, counts=counts)


@router.get("/{payroll_id}", response_model=PayrollDetailResponse, responses=ERROR_RESPONSES)
async def get_payroll(
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
) -> PayrollDetailResponse:
    """Get a payroll with its earnings and deductions."""
    payroll = await service.require_payroll(payroll_id, load_lines=True)
    return PayrollDetailResponse.model_validate(payroll)


@router.get(
    "/{payroll_id}/logs",
    response_model=list[PayrollLogResponse],
    responses=ERROR_RESPONSES,
)
async def get_payroll_logs(
    db: DbSession,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
) -> list[PayrollLogResponse]:
    """Audit history of a payroll, newest first."""
    await service.require_payroll(payroll_id)
    logs = await PayrollLogService(db).history(payroll_id)
    return [PayrollLogResponse.model_validate(entry) for entry in logs]


@router.post("/{payroll_id}/approve", response_model=PayrollResponse, responses=ERROR_RESPONSES)
async def approve_payroll(
    db: DbSession,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
    payload: ActionRequest,
) -> PayrollResponse:
    """Approve a computed payroll."""
    payroll = await service.approve(payroll_id, payload.user_id)
    await db.commit()
    return PayrollResponse.model_validate(payroll)


@router.post("/{payroll_id}/release", response_model=PayrollResponse, responses=ERROR_RESPONSES)
async def release_payroll(
    db: DbSession,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
    payload: ActionRequest,
) -> PayrollResponse:
    """Release an approved payroll."""
    payroll = await service.release(payroll_id, payload.user_id)
    await db.commit()
    return PayrollResponse.model_validate(payroll)


@router.post("/{payroll_id}/void", response_model=PayrollResponse, responses=ERROR_RESPONSES)
async def void_payroll(
    db: DbSession,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
    payload: VoidRequest,
) -> PayrollResponse:
    """Void a payroll. A reason is required."""
    payroll = await service.void(payroll_id, payload.user_id, payload.reason)
    await db.commit()
    return PayrollResponse.model_validate(payroll)


@router.post(
    "/{payroll_id}/recalculate",
    response_model=PayrollDetailResponse,
    responses=ERROR_RESPONSES,
)
async def recalculate_payroll(
    db: DbSession,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
    payload: ActionRequest,
) -> PayrollDetailResponse:
    """Recompute a DRAFT or COMPUTED payroll."""
    payroll = await service.recalculate(payroll_id, payload.user_id)
    await db.commit()
    return await _detail(service, payroll)
