"""Append-only payroll audit log."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.models import Payroll, PayrollLog
from ph_payroll.services.state_machine import PayrollAction

logger = logging.getLogger(__name__)


class PayrollLogService:
    """Writes and queries payroll log entries.

    Entries are only ever inserted; nothing here updates or deletes them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        payroll: Payroll,
        action: PayrollAction,
        previous_status: str | None,
        new_status: str,
        user_id: UUID | None = None,
        reason: str | None = None,
    ) -> PayrollLog:
        """Add a log entry to the current unit of work."""
        entry = PayrollLog(
            payroll_id=payroll.payroll_id,
            organization_id=payroll.organization_id,
            action=action.value,
            previous_status=previous_status,
            new_status=new_status,
            reason=reason,
            user_id=user_id,
        )
        self.session.add(entry)
        logger.info(
            "Payroll %s %s: %s -> %s (user=%s)",
            payroll.payroll_id,
            action.value,
            previous_status,
            new_status,
            user_id,
        )
        return entry

    async def history(self, payroll_id: UUID) -> list[PayrollLog]:
        """All entries for a payroll, newest first."""
        result = await self.session.execute(
            select(PayrollLog)
            .where(PayrollLog.payroll_id == payroll_id)
            .order_by(PayrollLog.timestamp.desc())
        )
        return list(result.scalars().all())

    async def organization_logs(
        self,
        organization_id: UUID,
        action: PayrollAction | None = None,
        user_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PayrollLog]:
        """Entries across an organization's payrolls, newest first."""
        stmt = select(PayrollLog).where(PayrollLog.organization_id == organization_id)
        if action is not None:
            stmt = stmt.where(PayrollLog.action == action.value)
        if user_id is not None:
            stmt = stmt.where(PayrollLog.user_id == user_id)
        stmt = stmt.order_by(PayrollLog.timestamp.desc()).limit(limit).offset(offset)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
