"""Per-day pay computation from a single closed time entry."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo
from decimal import Decimal
from typing import cast
from uuid import UUID

from ph_payroll.calculators.day_classifier import DayClassifier
from ph_payroll.calculators.pay_rule_resolver import PayRuleResolver
from ph_payroll.calculators.types import (
    PH_TIMEZONE,
    BreakRow,
    DailyPayResult,
    HolidayRow,
    PayComponent,
    ScheduleRow,
    TimeEntryRow,
    local_wall_clock,
)

logger = logging.getLogger(__name__)

REGULAR_MINUTES_CAP = 480
DEFAULT_BREAK_THRESHOLD_MINUTES = 360
DEFAULT_BREAK_MINUTES = 60
NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6


def _floor_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _overlap_minutes(
    start: datetime, end: datetime, window_start: datetime, window_end: datetime
) -> int:
    lo = max(start, window_start)
    hi = min(end, window_end)
    if hi <= lo:
        return 0
    return _floor_minutes(hi - lo)


class DailyPayComputer:
    """Computes regular, overtime and night differential pay for one day.

    Minutes:
    - worked = raw shift minutes minus unpaid break
    - regular = first 480 worked minutes
    - overtime = worked minutes beyond 480, capped at approved overtime
    - night differential = minutes inside 22:00-06:00 local time

    Each bucket is multiplied by the pay rule multiplier for the day's
    classification and by ``minute_rate``.
    """

    def __init__(self, rule_resolver: PayRuleResolver, tz: tzinfo = PH_TIMEZONE):
        self.rule_resolver = rule_resolver
        self.tz = tz

    @staticmethod
    def raw_minutes(entry: TimeEntryRow) -> int:
        if not entry.is_closed or entry.clock_out_at is None:
            raise ValueError(f"Time entry {entry.entry_id} is not closed")
        return max(0, _floor_minutes(entry.clock_out_at - entry.clock_in_at))

    @staticmethod
    def unpaid_break_minutes(raw: int, breaks: Iterable[BreakRow] = ()) -> int:
        """Unpaid break minutes to subtract from the raw shift.

        Closed break records take precedence. Without them a 60 minute
        break is assumed for shifts of 6 hours or more.
        """
        closed = [b for b in breaks if b.break_end_at is not None]
        if closed:
            return sum(
                max(0, _floor_minutes(b.break_end_at - b.break_start_at))
                for b in closed
                if not b.is_paid
            )
        if raw >= DEFAULT_BREAK_THRESHOLD_MINUTES:
            return DEFAULT_BREAK_MINUTES
        return 0

    @classmethod
    def worked_minutes(cls, entry: TimeEntryRow, breaks: Iterable[BreakRow] = ()) -> int:
        raw = cls.raw_minutes(entry)
        return max(0, raw - cls.unpaid_break_minutes(raw, breaks))

    @staticmethod
    def split_minutes(worked: int, approved_ot_minutes: int) -> tuple[int, int]:
        """Split worked minutes into (regular, overtime)."""
        regular = min(worked, REGULAR_MINUTES_CAP)
        overtime = min(max(0, approved_ot_minutes), max(0, worked - REGULAR_MINUTES_CAP))
        return regular, overtime

    @staticmethod
    def night_diff_minutes(
        clock_in: datetime, clock_out: datetime, tz: tzinfo = PH_TIMEZONE
    ) -> int:
        """Minutes of the shift inside the nightly 22:00-06:00 window.

        The window is local wall-clock time in ``tz``; aware clock times are
        converted first. The window opening on the clock-in day is counted,
        along with the one that opened the evening before.
        """
        clock_in = local_wall_clock(clock_in, tz)
        clock_out = local_wall_clock(clock_out, tz)
        anchor = clock_in.replace(hour=0, minute=0, second=0, microsecond=0)
        total = 0
        for offset in (-1, 0):
            window_start = anchor + timedelta(days=offset, hours=NIGHT_START_HOUR)
            window_end = anchor + timedelta(days=offset + 1, hours=NIGHT_END_HOUR)
            total += _overlap_minutes(clock_in, clock_out, window_start, window_end)
        return total

    async def compute(
        self,
        employee_id: UUID,
        organization_id: UUID,
        entry: TimeEntryRow,
        holidays: Iterable[HolidayRow],
        approved_ot_minutes: int,
        breaks: Iterable[BreakRow] = (),
        schedule: ScheduleRow | None = None,
        minute_rate: Decimal = Decimal("1"),
    ) -> DailyPayResult:
        """Compute pay for one closed time entry.

        Raises:
            ValueError: If the entry is still open
            MissingPayRuleError: If a multiplier cannot be resolved
        """
        worked = self.worked_minutes(entry, breaks)
        regular, overtime = self.split_minutes(worked, approved_ot_minutes)
        # worked_minutes has already rejected open entries
        clock_out = cast(datetime, entry.clock_out_at)
        night = self.night_diff_minutes(entry.clock_in_at, clock_out, self.tz)

        day = DayClassifier.classify(employee_id, entry.work_date, holidays, schedule)

        multipliers: dict[PayComponent, Decimal] = {}
        for component in PayComponent:
            multipliers[component] = await self.rule_resolver.resolve(
                organization_id, day.day_type, day.holiday_type, component, entry.work_date
            )

        logger.debug(
            "Day %s for employee %s: %s worked=%d regular=%d overtime=%d night=%d",
            entry.work_date,
            employee_id,
            day.day_type.value,
            worked,
            regular,
            overtime,
            night,
        )

        return DailyPayResult(
            work_date=entry.work_date,
            day_type=day.day_type,
            holiday_type=day.holiday_type,
            worked_minutes=worked,
            regular_minutes=regular,
            overtime_minutes=overtime,
            night_diff_minutes=night,
            regular_pay=Decimal(regular) * multipliers[PayComponent.REGULAR] * minute_rate,
            overtime_pay=Decimal(overtime) * multipliers[PayComponent.OVERTIME] * minute_rate,
            night_diff_pay=Decimal(night) * multipliers[PayComponent.NIGHT_DIFF] * minute_rate,
        )
