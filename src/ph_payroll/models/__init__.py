"""SQLAlchemy ORM models."""

from ph_payroll.models.attendance import (
    Holiday,
    LeaveRequest,
    OvertimeRequest,
    TimeBreak,
    TimeEntry,
)
from ph_payroll.models.base import Base, TimestampMixin
from ph_payroll.models.organization import Compensation, Employee, Organization, WorkSchedule
from ph_payroll.models.payroll import Deduction, Payroll, PayrollEarning, PayrollLog
from ph_payroll.models.rates import (
    LateDeductionPolicy,
    PagibigRate,
    PayRule,
    PhilhealthRate,
    SSSRate,
    TaxBracket,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Organization",
    "Employee",
    "Compensation",
    "WorkSchedule",
    "TaxBracket",
    "PhilhealthRate",
    "PagibigRate",
    "SSSRate",
    "PayRule",
    "LateDeductionPolicy",
    "Holiday",
    "TimeEntry",
    "TimeBreak",
    "OvertimeRequest",
    "LeaveRequest",
    "Payroll",
    "PayrollEarning",
    "Deduction",
    "PayrollLog",
]
