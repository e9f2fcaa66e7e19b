"""Tests for per-day pay computation."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ph_payroll.calculators.daily_pay import DailyPayComputer
from ph_payroll.calculators.pay_rule_resolver import PayRuleResolver
from ph_payroll.calculators.types import (
    BreakRow,
    DayType,
    HolidayRow,
    HolidayType,
    PayComponent,
    PayRuleRow,
    ScheduleRow,
    TimeEntryRow,
    TimeEntryStatus,
)

ORG = uuid4()
EMPLOYEE = uuid4()
MONDAY = date(2024, 6, 3)


def _entry(start: datetime, end: datetime | None, status=TimeEntryStatus.CLOSED) -> TimeEntryRow:
    return TimeEntryRow(
        entry_id=uuid4(),
        employee_id=EMPLOYEE,
        work_date=start.date(),
        clock_in_at=start,
        clock_out_at=end,
        status=status,
    )


def _at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def _rules() -> list[PayRuleRow]:
    table = [
        (DayType.REGULAR, None, "1.00", "1.25", "0.10"),
        (DayType.REST, None, "1.30", "1.69", "0.10"),
        (DayType.HOLIDAY, None, "1.30", "1.69", "0.10"),
        (DayType.HOLIDAY, HolidayType.REGULAR, "2.00", "2.60", "0.10"),
    ]
    rules = []
    for day_type, holiday_type, regular, overtime, night in table:
        for component, multiplier in (
            (PayComponent.REGULAR, regular),
            (PayComponent.OVERTIME, overtime),
            (PayComponent.NIGHT_DIFF, night),
        ):
            rules.append(
                PayRuleRow(
                    rule_id=uuid4(),
                    organization_id=ORG,
                    day_type=day_type,
                    holiday_type=holiday_type,
                    applies_to=component,
                    multiplier=Decimal(multiplier),
                    effective_from=date(2024, 1, 1),
                )
            )
    return rules


@pytest.fixture
def computer() -> DailyPayComputer:
    return DailyPayComputer(PayRuleResolver(session=None, rules=_rules()))


class TestMinuteBuckets:
    """Worked, regular, overtime and night minutes."""

    def test_default_break_for_long_shift(self):
        entry = _entry(_at(8), _at(17))
        assert DailyPayComputer.raw_minutes(entry) == 540
        assert DailyPayComputer.worked_minutes(entry) == 480

    def test_no_default_break_for_short_shift(self):
        entry = _entry(_at(8), _at(13, 59))
        assert DailyPayComputer.worked_minutes(entry) == 359

    def test_recorded_breaks_replace_default(self):
        entry = _entry(_at(8), _at(17))
        breaks = [
            BreakRow(_at(12), _at(12, 30)),
            BreakRow(_at(15), _at(15, 15), is_paid=True),
            BreakRow(_at(16), None),
        ]
        assert DailyPayComputer.worked_minutes(entry, breaks) == 510

    def test_open_entry_rejected(self):
        entry = _entry(_at(8), None, status=TimeEntryStatus.OPEN)
        with pytest.raises(ValueError):
            DailyPayComputer.raw_minutes(entry)

    def test_overtime_capped_at_approval(self):
        assert DailyPayComputer.split_minutes(600, 60) == (480, 60)
        assert DailyPayComputer.split_minutes(600, 0) == (480, 0)
        assert DailyPayComputer.split_minutes(600, 300) == (480, 120)
        assert DailyPayComputer.split_minutes(300, 60) == (300, 0)

    def test_day_shift_has_no_night_minutes(self):
        assert DailyPayComputer.night_diff_minutes(_at(9), _at(17)) == 0

    def test_night_shift_minutes(self):
        end = _at(2, day=MONDAY + timedelta(days=1))
        assert DailyPayComputer.night_diff_minutes(_at(22), end) == 240

    def test_early_morning_counts_previous_window(self):
        """Clocking in at 04:00 falls in the window that opened the evening before."""
        assert DailyPayComputer.night_diff_minutes(_at(4), _at(12)) == 120

    def test_partial_overlap_at_window_start(self):
        end = _at(0, 30, day=MONDAY + timedelta(days=1))
        assert DailyPayComputer.night_diff_minutes(_at(18), end) == 150

    def test_aware_times_use_local_night_window(self):
        """22:00-02:00 in Manila arrives from the database as 14:00-18:00 UTC."""
        start = datetime(2024, 6, 3, 14, 0, tzinfo=timezone.utc)
        end = datetime(2024, 6, 3, 18, 0, tzinfo=timezone.utc)
        assert DailyPayComputer.night_diff_minutes(start, end) == 240

    def test_night_window_follows_given_zone(self):
        start = datetime(2024, 6, 3, 22, 0, tzinfo=timezone.utc)
        end = datetime(2024, 6, 4, 2, 0, tzinfo=timezone.utc)
        assert DailyPayComputer.night_diff_minutes(start, end, tz=timezone.utc) == 240
        # 06:00-10:00 in Manila
        assert DailyPayComputer.night_diff_minutes(start, end) == 0


class TestCompute:
    """Multipliers applied per classification."""

    @pytest.mark.asyncio
    async def test_regular_day(self, computer):
        entry = _entry(_at(8), _at(17))
        result = await computer.compute(EMPLOYEE, ORG, entry, [], approved_ot_minutes=0)

        assert result.day_type == DayType.REGULAR
        assert result.regular_minutes == 480
        assert result.overtime_minutes == 0
        assert result.regular_pay == Decimal("480")
        assert result.total_pay == Decimal("480")

    @pytest.mark.asyncio
    async def test_overtime_on_regular_day(self, computer):
        entry = _entry(_at(8), _at(19))
        result = await computer.compute(
            EMPLOYEE, ORG, entry, [], approved_ot_minutes=90, minute_rate=Decimal("2")
        )

        assert result.worked_minutes == 600
        assert result.overtime_minutes == 90
        assert result.overtime_pay == Decimal("90") * Decimal("1.25") * 2
        assert result.regular_pay == Decimal("960")

    @pytest.mark.asyncio
    async def test_regular_holiday_multiplier(self, computer):
        holiday = HolidayRow(uuid4(), MONDAY, HolidayType.REGULAR, name="Araw ng Kagitingan")
        entry = _entry(_at(8), _at(17))
        result = await computer.compute(EMPLOYEE, ORG, entry, [holiday], approved_ot_minutes=0)

        assert result.day_type == DayType.HOLIDAY
        assert result.holiday_type == HolidayType.REGULAR
        assert result.regular_pay == Decimal("960")

    @pytest.mark.asyncio
    async def test_rest_day_multiplier(self, computer):
        saturday = MONDAY + timedelta(days=5)
        entry = _entry(_at(8, day=saturday), _at(17, day=saturday))
        schedule = ScheduleRow(rest_days=("SAT", "SUN"))
        result = await computer.compute(
            EMPLOYEE, ORG, entry, [], approved_ot_minutes=0, schedule=schedule
        )

        assert result.day_type == DayType.REST
        assert result.regular_pay == Decimal("480") * Decimal("1.30")

    @pytest.mark.asyncio
    async def test_night_differential_pay(self, computer):
        end = _at(6, day=MONDAY + timedelta(days=1))
        entry = _entry(_at(22), end)
        result = await computer.compute(EMPLOYEE, ORG, entry, [], approved_ot_minutes=0)

        assert result.night_diff_minutes == 480
        assert result.worked_minutes == 420
        assert result.night_diff_pay == Decimal("480") * Decimal("0.10")

    @pytest.mark.asyncio
    async def test_night_differential_with_utc_entry(self, computer):
        # 22:00-06:00 Manila
        start = datetime(2024, 6, 3, 14, 0, tzinfo=timezone.utc)
        end = datetime(2024, 6, 3, 22, 0, tzinfo=timezone.utc)
        result = await computer.compute(EMPLOYEE, ORG, _entry(start, end), [], approved_ot_minutes=0)

        assert result.work_date == MONDAY
        assert result.night_diff_minutes == 480
