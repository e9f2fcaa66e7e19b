"""Payroll service - lifecycle orchestration for individual payrolls."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ph_payroll.calculators.engine import PayrollEngine
from ph_payroll.calculators.types import PayrollCalculationResult
from ph_payroll.config import Settings, get_settings
from ph_payroll.errors import PayrollNotFoundError
from ph_payroll.models import Payroll
from ph_payroll.services.commit_service import CommitService
from ph_payroll.services.payroll_log import PayrollLogService
from ph_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollAction,
    PayrollStateMachine,
    PayrollStatus,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PayrollService:
    """Service for managing the payroll lifecycle.

    Operations:
    - generate: Compute and persist a payroll (idempotent per period)
    - preview: Compute without persisting
    - approve: COMPUTED → APPROVED
    - release: APPROVED → RELEASED
    - void: Mark as voided with a reason
    - recalculate: Recompute a DRAFT or COMPUTED payroll in place

    Nothing here commits; each operation is one unit of work for the
    caller's transaction.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.engine = PayrollEngine(session, self.settings)
        self.commit_service = CommitService(session, self.settings)
        self.log_service = PayrollLogService(session)

    async def get_payroll(self, payroll_id: UUID, load_lines: bool = False) -> Payroll | None:
        """Load a payroll with optional line items."""
        stmt = select(Payroll).where(Payroll.payroll_id == payroll_id)
        if load_lines:
            stmt = stmt.options(
                selectinload(Payroll.earnings), selectinload(Payroll.deductions)
            ).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def require_payroll(self, payroll_id: UUID, load_lines: bool = False) -> Payroll:
        payroll = await self.get_payroll(payroll_id, load_lines)
        if payroll is None:
            raise PayrollNotFoundError(payroll_id)
        return payroll

    async def find_live_payroll(
        self, employee_id: UUID, period_start: date, period_end: date
    ) -> Payroll | None:
        """The non-voided payroll for an exact employee and period, if any."""
        result = await self.session.execute(
            select(Payroll).where(
                Payroll.employee_id == employee_id,
                Payroll.period_start == period_start,
                Payroll.period_end == period_end,
                Payroll.status != PayrollStatus.VOIDED.value,
            )
        )
        return result.scalar_one_or_none()

    async def generate(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        user_id: UUID | None = None,
    ) -> Payroll:
        """Generate a payroll for an employee and period.

        Returns the existing non-voided payroll unchanged when one exists.
        """
        existing = await self.find_live_payroll(employee_id, period_start, period_end)
        if existing is not None:
            logger.info(
                "Payroll %s already exists for employee %s %s..%s",
                existing.payroll_id,
                employee_id,
                period_start,
                period_end,
            )
            return existing

        result = await self.engine.calculate(employee_id, period_start, period_end)

        try:
            payroll = await self.commit_service.commit_result(result, user_id=user_id)
        except IntegrityError:
            # Lost the race to a concurrent generate for the same period
            await self.session.rollback()
            existing = await self.find_live_payroll(employee_id, period_start, period_end)
            if existing is None:
                raise
            logger.info("Concurrent generate resolved to payroll %s", existing.payroll_id)
            return existing

        return payroll

    async def preview(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
    ) -> PayrollCalculationResult:
        """Compute a payroll without persisting anything."""
        return await self.engine.calculate(employee_id, period_start, period_end)

    async def transition_status(
        self,
        payroll: Payroll,
        to_status: PayrollStatus,
        action: PayrollAction,
        user_id: UUID | None = None,
        reason: str | None = None,
    ) -> Payroll:
        """Transition a payroll to a new status.

        Handles all side effects of transitions:
        - APPROVED: set approved_at/by
        - RELEASED: set released_at/by
        - VOIDED: requires reason, sets voided_at/by and void_reason

        Raises InvalidTransitionError if transition is not allowed.
        """
        from_status = payroll.status
        allow_void_released = self.settings.allow_void_released

        PayrollStateMachine.validate_transition(from_status, to_status, allow_void_released)
        errors = PayrollStateMachine.validate_payroll_for_transition(
            payroll, to_status, allow_void_released
        )
        if errors:
            raise InvalidTransitionError(from_status, to_status, "; ".join(errors))

        if to_status == PayrollStatus.APPROVED:
            payroll.approved_at = _now()
            payroll.approved_by = user_id

        elif to_status == PayrollStatus.RELEASED:
            payroll.released_at = _now()
            payroll.released_by = user_id

        elif to_status == PayrollStatus.VOIDED:
            if not reason or not reason.strip():
                raise InvalidTransitionError(from_status, to_status, "Void requires a reason")
            payroll.voided_at = _now()
            payroll.voided_by = user_id
            payroll.void_reason = reason.strip()

        payroll.status = to_status.value

        await self.log_service.record(
            payroll,
            action,
            previous_status=from_status,
            new_status=to_status.value,
            user_id=user_id,
            reason=reason,
        )
        await self.session.flush()
        return payroll

    async def approve(self, payroll_id: UUID, user_id: UUID | None = None) -> Payroll:
        """Approve a computed payroll."""
        payroll = await self.require_payroll(payroll_id)
        return await self.transition_status(
            payroll, PayrollStatus.APPROVED, PayrollAction.APPROVED, user_id
        )

    async def release(self, payroll_id: UUID, user_id: UUID | None = None) -> Payroll:
        """Release an approved payroll."""
        payroll = await self.require_payroll(payroll_id)
        return await self.transition_status(
            payroll, PayrollStatus.RELEASED, PayrollAction.RELEASED, user_id
        )

    async def void(
        self,
        payroll_id: UUID,
        user_id: UUID | None = None,
        reason: str | None = None,
    ) -> Payroll:
        """Void a payroll. Frees its period for a new generate."""
        payroll = await self.require_payroll(payroll_id)
        return await self.transition_status(
            payroll, PayrollStatus.VOIDED, PayrollAction.VOIDED, user_id, reason
        )

    async def recalculate(self, payroll_id: UUID, user_id: UUID | None = None) -> Payroll:
        """Recompute a DRAFT or COMPUTED payroll, replacing its line items.

        A COMPUTED payroll is first reset to DRAFT; the reset and the
        recomputation are logged as separate RECALCULATED entries.
        """
        payroll = await self.require_payroll(payroll_id)
        from_status = payroll.status

        if not PayrollStateMachine.can_calculate(from_status):
            raise InvalidTransitionError(
                from_status,
                PayrollStatus.COMPUTED,
                "Only DRAFT or COMPUTED payrolls can be recalculated",
            )

        result = await self.engine.calculate(
            payroll.employee_id, payroll.period_start, payroll.period_end
        )

        if from_status == PayrollStatus.COMPUTED:
            PayrollStateMachine.validate_transition(from_status, PayrollStatus.DRAFT)
            payroll.status = PayrollStatus.DRAFT.value
            await self.log_service.record(
                payroll,
                PayrollAction.RECALCULATED,
                previous_status=from_status,
                new_status=PayrollStatus.DRAFT.value,
                user_id=user_id,
                reason="Reset for recalculation",
            )

        return await self.commit_service.commit_result(
            result,
            payroll=payroll,
            user_id=user_id,
            action=PayrollAction.RECALCULATED,
            previous_status=PayrollStatus.DRAFT.value,
        )

    async def status_counts(
        self,
        organization_id: UUID,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> dict[str, int]:
        """Count an organization's payrolls per status."""
        stmt = (
            select(Payroll.status, func.count())
            .where(Payroll.organization_id == organization_id)
            .group_by(Payroll.status)
        )
        if period_start is not None:
            stmt = stmt.where(Payroll.period_start >= period_start)
        if period_end is not None:
            stmt = stmt.where(Payroll.period_end <= period_end)

        result = await self.session.execute(stmt)
        counts = {status.value: 0 for status in PayrollStatus}
        for status, count in result.all():
            counts[status] = count
        return counts
