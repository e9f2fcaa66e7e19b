"""Holiday calendar queries and clock-in eligibility."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.calculators.types import HolidayRow, HolidayType
from ph_payroll.models import Holiday

logger = logging.getLogger(__name__)

# Holiday types on which employees may not clock in
NON_WORKING_TYPES = frozenset(
    {
        HolidayType.REGULAR,
        HolidayType.SPECIAL_NON_WORKING,
        HolidayType.COMPANY,
        HolidayType.LGU,
    }
)


class HolidayService:
    """Organization holiday calendar."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _calendar(self, organization_id: UUID) -> list[HolidayRow]:
        result = await self.session.execute(
            select(Holiday).where(
                Holiday.organization_id == organization_id,
                Holiday.employee_id.is_(None),
            )
        )
        return [h.to_row() for h in result.scalars().all()]

    async def can_clock_in(self, organization_id: UUID, work_date: date) -> tuple[bool, str | None]:
        """Whether clock-in is allowed on a date.

        Returns (allowed, blocking_holiday_name). A failed lookup allows the
        clock-in rather than blocking attendance.
        """
        try:
            holidays = await self._calendar(organization_id)
        except SQLAlchemyError:
            logger.exception(
                "Holiday lookup failed for organization %s on %s; allowing clock-in",
                organization_id,
                work_date,
            )
            return True, None

        for holiday in holidays:
            if holiday.falls_on(work_date) and holiday.type in NON_WORKING_TYPES:
                return False, holiday.name
        return True, None

    async def holidays_in_range(
        self, organization_id: UUID, start: date, end: date
    ) -> list[tuple[date, HolidayRow]]:
        """Calendar holidays falling in [start, end], recurring ones expanded.

        Returns (occurrence_date, holiday) pairs sorted by date.
        """
        occurrences: list[tuple[date, HolidayRow]] = []
        for holiday in await self._calendar(organization_id):
            if not holiday.is_recurring:
                if start <= holiday.date <= end:
                    occurrences.append((holiday.date, holiday))
                continue
            for year in range(start.year, end.year + 1):
                try:
                    occurrence = holiday.date.replace(year=year)
                except ValueError:
                    # Feb 29 in a non-leap year
                    continue
                if start <= occurrence <= end:
                    occurrences.append((occurrence, holiday))
        occurrences.sort(key=lambda pair: pair[0])
        return occurrences
