"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ============================================================================
# Requests
# ============================================================================


class GenerateRequest(BaseModel):
    """Schema for generating (or previewing) one employee's payroll."""

    employee_id: UUID
    period_start: date
    period_end: date
    user_id: UUID | None = None

    @model_validator(mode="after")
    def check_period(self) -> "GenerateRequest":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class ActionRequest(BaseModel):
    """Schema for approve / release / recalculate requests."""

    user_id: UUID | None = None


class VoidRequest(BaseModel):
    """Schema for void requests. The reason is enforced by the lifecycle."""

    user_id: UUID | None = None
    reason: str | None = None


# ============================================================================
# Payroll schemas
# ============================================================================


class EarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_earning_id: UUID
    type: str
    hours: Decimal | None = None
    rate: Decimal | None = None
    amount: Decimal
    explanation: str | None = None


class DeductionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deduction_id: UUID
    type: str
    amount: Decimal
    explanation: str | None = None


class PayrollResponse(BaseModel):
    """Schema for payroll response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_id: UUID
    employee_id: UUID
    organization_id: UUID
    period_start: date
    period_end: date
    status: str
    gross_pay: Decimal
    taxable_income: Decimal
    tax_deduction: Decimal
    philhealth_deduction: Decimal
    sss_deduction: Decimal
    pagibig_deduction: Decimal
    late_deduction: Decimal
    undertime_deduction: Decimal
    absence_deduction: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    calculation_id: UUID | None = None
    processed_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    released_at: datetime | None = None
    released_by: UUID | None = None
    voided_at: datetime | None = None
    voided_by: UUID | None = None
    void_reason: str | None = None


class PayrollDetailResponse(PayrollResponse):
    """Payroll with its line items."""

    earnings: list[EarningResponse] = Field(default_factory=list)
    deductions: list[DeductionResponse] = Field(default_factory=list)


class PayrollLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_log_id: UUID
    payroll_id: UUID
    action: str
    previous_status: str | None = None
    new_status: str
    reason: str | None = None
    user_id: UUID | None = None
    timestamp: datetime


class StatusCountsResponse(BaseModel):
    organization_id: UUID
    counts: dict[str, int]


# ============================================================================
# Preview schemas
# ============================================================================


class DailyPayPreview(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_date: date
    day_type: str
    holiday_type: str | None = None
    worked_minutes: int
    regular_minutes: int
    overtime_minutes: int
    night_diff_minutes: int
    regular_pay: Decimal
    overtime_pay: Decimal
    night_diff_pay: Decimal


class PreviewLineItem(BaseModel):
    line_type: str
    code: str
    amount: Decimal
    hours: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None


class PreviewResponse(BaseModel):
    """Computed payroll that has not been persisted."""

    employee_id: UUID
    organization_id: UUID
    period_start: date
    period_end: date
    gross_pay: Decimal
    taxable_income: Decimal
    tax: Decimal
    philhealth: Decimal
    sss: Decimal
    pagibig: Decimal
    late_deduction: Decimal
    undertime_deduction: Decimal
    absence_deduction: Decimal
    absent_days: int
    total_deductions: Decimal
    net_pay: Decimal
    days: list[DailyPayPreview]
    lines: list[PreviewLineItem]
    computed_at: datetime


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
