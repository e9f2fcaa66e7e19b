"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ph_payroll.calculators.attendance_policy import AttendancePolicyCalculator
from ph_payroll.calculators.daily_pay import DailyPayComputer
from ph_payroll.calculators.government_deductions import GovernmentDeductionsCalculator
from ph_payroll.calculators.line_builder import LineItemBuilder
from ph_payroll.calculators.pay_rule_resolver import PayRuleResolver
from ph_payroll.calculators.rate_resolver import RateResolver
from ph_payroll.calculators.types import (
    DailyPayResult,
    HolidayRow,
    LatePolicyRow,
    LeaveRow,
    PayrollCalculationResult,
    PolicyDeductions,
    RequestStatus,
    ScheduleRow,
    TimeEntryRow,
    TimeEntryStatus,
    gross_from_daily,
)
from ph_payroll.config import Settings, get_settings
from ph_payroll.errors import EmployeeNotFoundError, MissingCompensationError
from ph_payroll.models import (
    Compensation,
    Employee,
    Holiday,
    LateDeductionPolicy,
    LeaveRequest,
    OvertimeRequest,
    TimeEntry,
    WorkSchedule,
)

logger = logging.getLogger(__name__)

# Periods shorter than this are taxed on the monthly base salary and prorated.
FULL_MONTH_DAYS = 28
MINUTES_PER_HOUR = Decimal("60")


class PayrollEngine:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Load compensation, schedule, calendar, rules and attendance
    2) Compute each closed time entry independently (DailyPayComputer)
    3) Sum daily pay into gross
    4) Statutory deductions on gross (GovernmentDeductionsCalculator)
    5) Late, undertime and absence deductions (AttendancePolicyCalculator)
    6) Build line items; net = gross - total deductions
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.rate_resolver = RateResolver(session)
        self.rule_resolver = PayRuleResolver(session)
        self.daily_pay = DailyPayComputer(self.rule_resolver, tz=self.settings.tzinfo)
        self.deductions = GovernmentDeductionsCalculator(self.rate_resolver)
        self.attendance = AttendancePolicyCalculator(
            working_days_per_year=self.settings.working_days_per_year,
            hours_per_day=self.settings.hours_per_day,
            tz=self.settings.tzinfo,
        )

    async def calculate(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        as_of_date: date | None = None,
    ) -> PayrollCalculationResult:
        """Calculate one employee's payroll for a period.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            MissingCompensationError: If no compensation is effective
            ConfigurationError: If rates or pay rules are missing
        """
        if period_end < period_start:
            raise ValueError(f"Period end {period_end} is before start {period_start}")

        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        organization_id = employee.organization_id

        compensation = await self._get_compensation(employee_id, as_of_date or date.today())
        base_salary = Decimal(compensation.base_salary)

        schedule = await self._get_schedule(employee_id)
        holidays = await self._get_holidays(organization_id, employee_id)
        await self.rule_resolver.load_rules(organization_id)
        entries = await self._get_closed_entries(employee_id, period_start, period_end)
        overtime = await self._get_approved_overtime(employee_id, period_start, period_end)
        leaves = await self._get_approved_leaves(employee_id, period_start, period_end)
        policies = await self._get_policies(organization_id)

        daily_rate = self.attendance.daily_rate(base_salary, schedule)
        hourly_rate = self.attendance.hourly_rate(daily_rate, schedule)
        minute_rate = hourly_rate / MINUTES_PER_HOUR

        # 2-3) Daily pay, in work-date order
        daily: list[DailyPayResult] = []
        remaining_ot = dict(overtime)
        for entry in entries:
            row = entry.to_row()
            approved = remaining_ot.get(row.work_date, 0)
            day = await self.daily_pay.compute(
                employee_id,
                organization_id,
                row,
                holidays,
                approved,
                breaks=[b.to_row() for b in entry.breaks],
                schedule=schedule,
                minute_rate=minute_rate,
            )
            remaining_ot[row.work_date] = approved - day.overtime_minutes
            daily.append(day)

        # 4) Statutory deductions
        period_days = (period_end - period_start).days + 1
        override = base_salary if period_days < FULL_MONTH_DAYS else None
        gross = gross_from_daily(daily)
        government = await self.deductions.calculate_all(
            organization_id, gross, period_end, monthly_rate_override=override
        )

        # 5) Policy deductions
        entry_rows = [e.to_row() for e in entries]
        late = self.attendance.late_metrics(
            organization_id, entry_rows, schedule, policies, daily_rate, hourly_rate
        )
        undertime = self.attendance.undertime_metrics(
            organization_id, entry_rows, schedule, policies, daily_rate, hourly_rate
        )
        absent = self.attendance.absent_days(period_start, period_end, entry_rows, leaves)
        absence = self.attendance.absence_deduction(
            organization_id, absent, period_end, policies, daily_rate, hourly_rate
        )

        result = PayrollCalculationResult(
            employee_id=employee_id,
            organization_id=organization_id,
            period_start=period_start,
            period_end=period_end,
            base_salary=base_salary,
            minute_rate=minute_rate,
            daily_breakdown=daily,
            government=government,
            policy=PolicyDeductions(
                late=late.total_deduction,
                undertime=undertime.total_deduction,
                absence=absence,
            ),
            absent_days=absent,
            late=late,
            undertime=undertime,
        )

        # 6) Lines and identity
        result.lines = LineItemBuilder.build_lines(result)
        result.inputs_fingerprint = self._compute_inputs_fingerprint(
            base_salary, entry_rows, overtime, leaves, holidays, policies
        )
        result.calculation_id = self._generate_calculation_id(
            employee_id, period_start, period_end, result.inputs_fingerprint
        )

        logger.info(
            "Calculated payroll for employee %s %s..%s: gross=%s deductions=%s net=%s",
            employee_id,
            period_start,
            period_end,
            result.gross_pay,
            result.total_deductions,
            result.net_pay,
        )
        return result

    def _generate_calculation_id(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": str(employee_id),
            "period_start": str(period_start),
            "period_end": str(period_end),
            "engine_version": self.settings.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    @staticmethod
    def _compute_inputs_fingerprint(
        base_salary: Decimal,
        entries: list[TimeEntryRow],
        overtime: dict[date, int],
        leaves: list[LeaveRow],
        holidays: list[HolidayRow],
        policies: list[LatePolicyRow],
    ) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        inputs_data = {
            "base_salary": str(base_salary),
            "entries": [
                [str(e.entry_id), str(e.clock_in_at), str(e.clock_out_at)] for e in entries
            ],
            "overtime": {str(k): v for k, v in sorted(overtime.items())},
            "leaves": [[str(leave.start_date), str(leave.end_date)] for leave in leaves],
            "holidays": sorted(str(h.holiday_id) for h in holidays),
            "policies": sorted(str(p.policy_id) for p in policies),
        }
        json_str = json.dumps(inputs_data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    # === Data Loading Methods ===

    async def _get_compensation(self, employee_id: UUID, as_of_date: date) -> Compensation:
        """Latest compensation effective on or before the date."""
        result = await self.session.execute(
            select(Compensation)
            .where(
                Compensation.employee_id == employee_id,
                Compensation.effective_date <= as_of_date,
            )
            .order_by(Compensation.effective_date.desc())
            .limit(1)
        )
        compensation = result.scalar_one_or_none()
        if compensation is None:
            raise MissingCompensationError(employee_id, as_of_date)
        return compensation

    async def _get_schedule(self, employee_id: UUID) -> ScheduleRow | None:
        result = await self.session.execute(
            select(WorkSchedule).where(WorkSchedule.employee_id == employee_id)
        )
        schedule = result.scalar_one_or_none()
        return schedule.to_row() if schedule is not None else None

    async def _get_holidays(self, organization_id: UUID, employee_id: UUID) -> list[HolidayRow]:
        """Calendar holidays plus overrides pinned to this employee."""
        result = await self.session.execute(
            select(Holiday).where(
                Holiday.organization_id == organization_id,
                (Holiday.employee_id.is_(None) | (Holiday.employee_id == employee_id)),
            )
        )
        return [h.to_row() for h in result.scalars().all()]

    async def _get_closed_entries(
        self, employee_id: UUID, period_start: date, period_end: date
    ) -> list[TimeEntry]:
        """Get closed time entries for employee in the period."""
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.employee_id == employee_id,
                TimeEntry.work_date >= period_start,
                TimeEntry.work_date <= period_end,
                TimeEntry.status == TimeEntryStatus.CLOSED.value,
                TimeEntry.clock_out_at.is_not(None),
            )
            .order_by(TimeEntry.work_date, TimeEntry.clock_in_at)
            .options(selectinload(TimeEntry.breaks))
        )
        return list(result.scalars().all())

    async def _get_approved_overtime(
        self, employee_id: UUID, period_start: date, period_end: date
    ) -> dict[date, int]:
        """Approved overtime minutes per work date."""
        result = await self.session.execute(
            select(OvertimeRequest).where(
                OvertimeRequest.employee_id == employee_id,
                OvertimeRequest.work_date >= period_start,
                OvertimeRequest.work_date <= period_end,
                OvertimeRequest.status == RequestStatus.APPROVED.value,
            )
        )
        minutes: dict[date, int] = defaultdict(int)
        for request in result.scalars().all():
            minutes[request.work_date] += request.approved_minutes
        return dict(minutes)

    async def _get_approved_leaves(
        self, employee_id: UUID, period_start: date, period_end: date
    ) -> list[LeaveRow]:
        result = await self.session.execute(
            select(LeaveRequest).where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == RequestStatus.APPROVED.value,
                LeaveRequest.start_date <= period_end,
                LeaveRequest.end_date >= period_start,
            )
        )
        return [leave.to_row() for leave in result.scalars().all()]

    async def _get_policies(self, organization_id: UUID) -> list[LatePolicyRow]:
        result = await self.session.execute(
            select(LateDeductionPolicy).where(
                LateDeductionPolicy.organization_id == organization_id,
                LateDeductionPolicy.is_active.is_(True),
            )
        )
        return [p.to_row() for p in result.scalars().all()]
