"""Work date classification into regular, rest and holiday days."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from ph_payroll.calculators.types import DayClassification, DayType, HolidayRow, ScheduleRow

WEEKDAY_NAMES = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")


def _weekday_key(name: str) -> str:
    # Accept "Monday", "MONDAY" and "Mon" alike.
    return name.strip().upper()[:3]


class DayClassifier:
    """Classifies a work date for one employee.

    Priority:
    1. Holiday pinned to the employee
    2. Calendar holiday (exact date, or recurring month/day)
    3. Rest day per the employee's schedule
    4. Regular day
    """

    @staticmethod
    def find_holiday(
        employee_id: UUID,
        work_date: date,
        holidays: Iterable[HolidayRow],
    ) -> HolidayRow | None:
        """Find the holiday that applies to the employee on a date."""
        calendar_match: HolidayRow | None = None
        for holiday in holidays:
            if not holiday.falls_on(work_date):
                continue
            if holiday.employee_id is not None:
                if holiday.employee_id == employee_id:
                    return holiday
                continue
            if calendar_match is None:
                calendar_match = holiday
        return calendar_match

    @staticmethod
    def is_rest_day(work_date: date, schedule: ScheduleRow | None) -> bool:
        if schedule is None:
            return False
        weekday = WEEKDAY_NAMES[work_date.weekday()][:3]
        if schedule.rest_days and weekday in {_weekday_key(d) for d in schedule.rest_days}:
            return True
        return bool(schedule.work_days) and weekday not in {
            _weekday_key(d) for d in schedule.work_days
        }

    @classmethod
    def classify(
        cls,
        employee_id: UUID,
        work_date: date,
        holidays: Iterable[HolidayRow],
        schedule: ScheduleRow | None = None,
    ) -> DayClassification:
        holiday = cls.find_holiday(employee_id, work_date, holidays)
        if holiday is not None:
            return DayClassification(DayType.HOLIDAY, holiday.type)
        if cls.is_rest_day(work_date, schedule):
            return DayClassification(DayType.REST)
        return DayClassification(DayType.REGULAR)
