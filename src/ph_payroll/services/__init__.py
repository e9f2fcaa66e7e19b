"""Payroll services."""

from ph_payroll.services.commit_service import CommitService
from ph_payroll.services.holiday_service import HolidayService
from ph_payroll.services.payroll_log import PayrollLogService
from ph_payroll.services.payroll_service import PayrollService
from ph_payroll.services.rate_management import RateManagementService
from ph_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollAction,
    PayrollStateMachine,
    PayrollStatus,
)

__all__ = [
    "CommitService",
    "HolidayService",
    "PayrollLogService",
    "PayrollService",
    "RateManagementService",
    "InvalidTransitionError",
    "PayrollAction",
    "PayrollStateMachine",
    "PayrollStatus",
]
