"""Tests for holiday calendar queries."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from ph_payroll.models import Holiday
from ph_payroll.services.holiday_service import HolidayService


@pytest.fixture
async def calendar(session, organization, employee):
    org_id = organization.organization_id
    session.add_all(
        [
            Holiday(organization_id=org_id, name="New Year's Day", date=date(2000, 1, 1),
                    type="REGULAR", is_recurring=True),
            Holiday(organization_id=org_id, name="Ninoy Aquino Day", date=date(2024, 8, 21),
                    type="SPECIAL_NON_WORKING"),
            Holiday(organization_id=org_id, name="EDSA Anniversary", date=date(2024, 2, 25),
                    type="SPECIAL_WORKING"),
            Holiday(organization_id=org_id, name="Leap Day Outing", date=date(2024, 2, 29),
                    type="COMPANY", is_recurring=True),
            Holiday(organization_id=org_id, name="Birthday Leave", date=date(2024, 3, 4),
                    type="COMPANY", employee_id=employee.employee_id),
        ]
    )
    await session.flush()


class TestCanClockIn:
    @pytest.mark.asyncio
    async def test_non_working_holidays_block(self, session, organization, calendar):
        service = HolidayService(session)
        org_id = organization.organization_id

        assert await service.can_clock_in(org_id, date(2024, 8, 21)) == (False, "Ninoy Aquino Day")
        # Recurring holiday in another year
        assert await service.can_clock_in(org_id, date(2026, 1, 1)) == (False, "New Year's Day")

    @pytest.mark.asyncio
    async def test_special_working_and_plain_days_allowed(self, session, organization, calendar):
        service = HolidayService(session)
        org_id = organization.organization_id

        assert await service.can_clock_in(org_id, date(2024, 2, 25)) == (True, None)
        assert await service.can_clock_in(org_id, date(2024, 6, 3)) == (True, None)

    @pytest.mark.asyncio
    async def test_employee_overrides_do_not_block_everyone(self, session, organization, calendar):
        service = HolidayService(session)
        assert await service.can_clock_in(organization.organization_id, date(2024, 3, 4)) == (True, None)

    @pytest.mark.asyncio
    async def test_lookup_failure_fails_open(self, session, organization, monkeypatch):
        service = HolidayService(session)

        async def broken(organization_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(service, "_calendar", broken)
        assert await service.can_clock_in(organization.organization_id, date(2024, 8, 21)) == (True, None)


class TestHolidaysInRange:
    @pytest.mark.asyncio
    async def test_expands_recurring_across_years(self, session, organization, calendar):
        service = HolidayService(session)
        occurrences = await service.holidays_in_range(
            organization.organization_id, date(2024, 12, 1), date(2026, 1, 31)
        )

        assert [on for on, _ in occurrences] == [date(2025, 1, 1), date(2026, 1, 1)]

    @pytest.mark.asyncio
    async def test_leap_day_skipped_in_common_years(self, session, organization, calendar):
        service = HolidayService(session)
        occurrences = await service.holidays_in_range(
            organization.organization_id, date(2024, 2, 1), date(2025, 3, 31)
        )

        names = [(on, holiday.name) for on, holiday in occurrences]
        assert names == [
            (date(2024, 2, 25), "EDSA Anniversary"),
            (date(2024, 2, 29), "Leap Day Outing"),
            (date(2024, 8, 21), "Ninoy Aquino Day"),
            (date(2025, 1, 1), "New Year's Day"),
        ]

    @pytest.mark.asyncio
    async def test_unknown_organization_is_empty(self, session, calendar):
        assert await HolidayService(session).holidays_in_range(
            uuid4(), date(2024, 1, 1), date(2024, 12, 31)
        ) == []
