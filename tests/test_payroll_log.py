"""Tests for the payroll audit log."""

from datetime import date
from uuid import uuid4

import pytest

from ph_payroll.services.payroll_log import PayrollLogService
from ph_payroll.services.payroll_service import PayrollService
from ph_payroll.services.state_machine import PayrollAction

WEEK_START = date(2024, 6, 3)
WEEK_END = date(2024, 6, 7)


@pytest.fixture
async def lifecycle(session, settings, payroll_setup):
    """Generated, approved and voided payroll with two actors."""
    service = PayrollService(session, settings)
    clerk, manager = uuid4(), uuid4()
    payroll = await service.generate(payroll_setup.employee_id, WEEK_START, WEEK_END, clerk)
    await service.approve(payroll.payroll_id, manager)
    await service.void(payroll.payroll_id, manager, "Rate table correction")
    return payroll, clerk, manager


class TestPayrollLogService:
    @pytest.mark.asyncio
    async def test_history_newest_first(self, session, lifecycle):
        payroll, clerk, manager = lifecycle
        history = await PayrollLogService(session).history(payroll.payroll_id)

        assert [(e.action, e.previous_status, e.new_status) for e in history] == [
            ("VOIDED", "APPROVED", "VOIDED"),
            ("APPROVED", "COMPUTED", "APPROVED"),
            ("GENERATED", None, "COMPUTED"),
        ]
        assert history[0].reason == "Rate table correction"
        assert history[-1].user_id == clerk

    @pytest.mark.asyncio
    async def test_organization_logs_filters(self, session, organization, lifecycle):
        _, clerk, manager = lifecycle
        logs = PayrollLogService(session)
        org_id = organization.organization_id

        assert len(await logs.organization_logs(org_id)) == 3
        by_manager = await logs.organization_logs(org_id, user_id=manager)
        assert {e.action for e in by_manager} == {"APPROVED", "VOIDED"}

        generated = await logs.organization_logs(org_id, action=PayrollAction.GENERATED)
        assert [e.user_id for e in generated] == [clerk]

    @pytest.mark.asyncio
    async def test_organization_logs_paging(self, session, organization, lifecycle):
        logs = PayrollLogService(session)
        org_id = organization.organization_id

        page = await logs.organization_logs(org_id, limit=2, offset=1)
        assert [e.action for e in page] == ["APPROVED", "GENERATED"]
        assert await logs.organization_logs(uuid4()) == []
