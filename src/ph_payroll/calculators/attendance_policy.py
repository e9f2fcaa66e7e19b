"""Absence counting and late / undertime / absence policy deductions."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from uuid import UUID

from ph_payroll.calculators.types import (
    PH_TIMEZONE,
    ZERO,
    DeductionMethod,
    LateMetrics,
    LatePolicyRow,
    LatePolicyType,
    LeaveRow,
    ScheduleRow,
    TimeEntryRow,
    local_wall_clock,
    round_to_cents,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DAYS_PER_YEAR = 313
DEFAULT_HOURS_PER_DAY = 8


def _floor_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


class AttendancePolicyCalculator:
    """Derives attendance-based deductions for a pay period.

    All inputs are preloaded; nothing here touches the database. Clock times
    are compared with the schedule in local wall-clock time (``tz``).
    """

    def __init__(
        self,
        working_days_per_year: int = DEFAULT_WORKING_DAYS_PER_YEAR,
        hours_per_day: int = DEFAULT_HOURS_PER_DAY,
        tz: tzinfo = PH_TIMEZONE,
    ):
        self.working_days_per_year = working_days_per_year
        self.hours_per_day = hours_per_day
        self.tz = tz

    # ===== Rates =====

    def daily_rate(self, monthly_salary: Decimal, schedule: ScheduleRow | None = None) -> Decimal:
        if schedule is not None and schedule.daily_rate is not None:
            return round_to_cents(schedule.daily_rate)
        return round_to_cents(monthly_salary * 12 / self.working_days_per_year)

    def hourly_rate(self, daily_rate: Decimal, schedule: ScheduleRow | None = None) -> Decimal:
        if schedule is not None and schedule.hourly_rate is not None:
            return round_to_cents(schedule.hourly_rate)
        return round_to_cents(daily_rate / self.hours_per_day)

    # ===== Absences =====

    @staticmethod
    def absent_days(
        period_start: date,
        period_end: date,
        entries: Iterable[TimeEntryRow],
        leaves: Iterable[LeaveRow] = (),
    ) -> int:
        """Count weekdays with no closed entry and no approved leave."""
        worked = {e.work_date for e in entries if e.is_closed}
        leave_list = list(leaves)

        absent = 0
        day = period_start
        while day <= period_end:
            if day.weekday() < 5 and day not in worked:
                if not any(leave.covers(day) for leave in leave_list):
                    absent += 1
            day += timedelta(days=1)
        return absent

    # ===== Policy selection =====

    @staticmethod
    def applicable_policy(
        policies: Iterable[LatePolicyRow],
        policy_type: LatePolicyType,
        on_date: date,
    ) -> LatePolicyRow | None:
        """Active policy of a type effective on a date; latest effective date wins."""
        best: LatePolicyRow | None = None
        for policy in policies:
            if policy.policy_type != policy_type or not policy.is_effective(on_date):
                continue
            if best is None or policy.effective_date > best.effective_date:
                best = policy
        return best

    @staticmethod
    def deduction_amount(
        policy: LatePolicyRow,
        minutes: int,
        daily_rate: Decimal,
        hourly_rate: Decimal,
    ) -> Decimal:
        """Deduction for one day's late or undertime minutes."""
        if minutes <= 0 or minutes < policy.minimum_late_minutes:
            return round_to_cents(ZERO)

        if policy.deduction_method == DeductionMethod.FIXED_AMOUNT:
            amount = policy.fixed_amount or ZERO
        elif policy.deduction_method == DeductionMethod.PERCENTAGE:
            amount = daily_rate * (policy.percentage_rate or ZERO) / 100
        else:
            multiplier = policy.hourly_rate_multiplier
            if multiplier is None:
                multiplier = Decimal("1")
            amount = hourly_rate * Decimal(minutes) / 60 * multiplier

        if policy.max_deduction_per_day is not None:
            amount = min(amount, policy.max_deduction_per_day)
        return round_to_cents(amount)

    @staticmethod
    def _clamp_to_cutoff(
        per_policy: dict[UUID, Decimal], policies_by_id: dict[UUID, LatePolicyRow]
    ) -> Decimal:
        total = ZERO
        for policy_id, amount in per_policy.items():
            cap = policies_by_id[policy_id].max_deduction_per_cutoff
            total += min(amount, cap) if cap is not None else amount
        return round_to_cents(total)

    # ===== Late / undertime =====

    @staticmethod
    def late_minutes(
        entry: TimeEntryRow, schedule: ScheduleRow, tz: tzinfo = PH_TIMEZONE
    ) -> int:
        if schedule.default_start is None:
            return 0
        scheduled = datetime.combine(entry.work_date, schedule.default_start)
        after_start = _floor_minutes(local_wall_clock(entry.clock_in_at, tz) - scheduled)
        return max(0, after_start - schedule.grace_period_minutes)

    @staticmethod
    def undertime_minutes(
        entry: TimeEntryRow, schedule: ScheduleRow, tz: tzinfo = PH_TIMEZONE
    ) -> int:
        if schedule.default_end is None or entry.clock_out_at is None:
            return 0
        scheduled_end = datetime.combine(entry.work_date, schedule.default_end)
        if schedule.default_start is not None and schedule.default_end <= schedule.default_start:
            # Overnight schedule ends the next day
            scheduled_end += timedelta(days=1)
        return max(0, _floor_minutes(scheduled_end - local_wall_clock(entry.clock_out_at, tz)))

    def _metrics(
        self,
        policy_type: LatePolicyType,
        organization_id: UUID,
        entries: Iterable[TimeEntryRow],
        schedule: ScheduleRow | None,
        policies: Iterable[LatePolicyRow],
        daily_rate: Decimal,
        hourly_rate: Decimal,
    ) -> LateMetrics:
        if schedule is None or not schedule.allow_late_deduction:
            return LateMetrics()

        policy_list = list(policies)
        measure = self.late_minutes if policy_type == LatePolicyType.LATE else self.undertime_minutes

        total_minutes = 0
        instances = 0
        per_policy: dict[UUID, Decimal] = {}
        policies_by_id: dict[UUID, LatePolicyRow] = {}

        for entry in entries:
            if not entry.is_closed:
                continue
            policy = self.applicable_policy(policy_list, policy_type, entry.work_date)
            if policy is None:
                continue
            minutes = measure(entry, schedule, self.tz)
            amount = self.deduction_amount(policy, minutes, daily_rate, hourly_rate)
            if amount <= 0:
                continue
            total_minutes += minutes
            instances += 1
            per_policy[policy.policy_id] = per_policy.get(policy.policy_id, ZERO) + amount
            policies_by_id[policy.policy_id] = policy

        total = self._clamp_to_cutoff(per_policy, policies_by_id)
        if instances:
            logger.debug(
                "%s deductions for org %s: %d instance(s), %d minute(s), %s",
                policy_type.value,
                organization_id,
                instances,
                total_minutes,
                total,
            )
        return LateMetrics(total_minutes=total_minutes, instances=instances, total_deduction=total)

    def late_metrics(
        self,
        organization_id: UUID,
        entries: Iterable[TimeEntryRow],
        schedule: ScheduleRow | None,
        policies: Iterable[LatePolicyRow],
        daily_rate: Decimal,
        hourly_rate: Decimal,
    ) -> LateMetrics:
        return self._metrics(
            LatePolicyType.LATE,
            organization_id,
            entries,
            schedule,
            policies,
            daily_rate,
            hourly_rate,
        )

    def undertime_metrics(
        self,
        organization_id: UUID,
        entries: Iterable[TimeEntryRow],
        schedule: ScheduleRow | None,
        policies: Iterable[LatePolicyRow],
        daily_rate: Decimal,
        hourly_rate: Decimal,
    ) -> LateMetrics:
        return self._metrics(
            LatePolicyType.UNDERTIME,
            organization_id,
            entries,
            schedule,
            policies,
            daily_rate,
            hourly_rate,
        )

    # ===== Absence =====

    def absence_deduction(
        self,
        organization_id: UUID,
        absent_days: int,
        period_end: date,
        policies: Iterable[LatePolicyRow],
        daily_rate: Decimal,
        hourly_rate: Decimal | None = None,
    ) -> Decimal:
        """Deduction for unexcused absent days under the ABSENCE policy."""
        if absent_days <= 0:
            return round_to_cents(ZERO)
        policy = self.applicable_policy(policies, LatePolicyType.ABSENCE, period_end)
        if policy is None:
            return round_to_cents(ZERO)

        if hourly_rate is None:
            hourly_rate = round_to_cents(daily_rate / self.hours_per_day)

        if policy.deduction_method == DeductionMethod.FIXED_AMOUNT:
            per_day = policy.fixed_amount or ZERO
        elif policy.deduction_method == DeductionMethod.PERCENTAGE:
            per_day = daily_rate * (policy.percentage_rate or ZERO) / 100
        else:
            multiplier = policy.hourly_rate_multiplier
            if multiplier is None:
                multiplier = Decimal("1")
            per_day = hourly_rate * self.hours_per_day * multiplier

        if policy.max_deduction_per_day is not None:
            per_day = min(per_day, policy.max_deduction_per_day)

        total = round_to_cents(per_day) * absent_days
        if policy.max_deduction_per_cutoff is not None:
            total = min(total, policy.max_deduction_per_cutoff)

        logger.debug(
            "Absence deduction for org %s: %d day(s) x %s = %s",
            organization_id,
            absent_days,
            round_to_cents(per_day),
            total,
        )
        return round_to_cents(total)
