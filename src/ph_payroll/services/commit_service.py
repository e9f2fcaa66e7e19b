"""Atomic persistence of a payroll calculation result."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ph_payroll.calculators.line_builder import LineItemBuilder
from ph_payroll.calculators.types import LineType, PayrollCalculationResult
from ph_payroll.config import Settings, get_settings
from ph_payroll.models import Deduction, Payroll, PayrollEarning
from ph_payroll.services.payroll_log import PayrollLogService
from ph_payroll.services.state_machine import (
    PayrollAction,
    PayrollStateMachine,
    PayrollStatus,
)


class CommitService:
    """Writes a calculation result as one unit of work.

    The payroll row, its earnings and deductions, the status change and the
    log entry are all added to the same session; nothing is committed here.
    The caller's transaction decides whether the whole unit lands.

    Key invariants:
    1. Line items are only (re)written while the payroll is DRAFT
    2. Σ earnings = gross_pay and Σ deductions = total_deductions
    3. A recalculation replaces every line item of the payroll
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.log_service = PayrollLogService(session)

    async def commit_result(
        self,
        result: PayrollCalculationResult,
        payroll: Payroll | None = None,
        user_id: UUID | None = None,
        action: PayrollAction = PayrollAction.GENERATED,
        previous_status: str | None = None,
    ) -> Payroll:
        """Persist a result and move the payroll to COMPUTED.

        Args:
            result: Calculation to persist
            payroll: Existing DRAFT payroll to overwrite, or None to create one
            user_id: Actor recorded in the log
            action: Log action (GENERATED or RECALCULATED)
            previous_status: Status recorded as the log's previous status

        Returns:
            The computed payroll (flushed)
        """
        if payroll is None:
            payroll = Payroll(
                payroll_id=uuid4(),
                employee_id=result.employee_id,
                organization_id=result.organization_id,
                period_start=result.period_start,
                period_end=result.period_end,
                status=PayrollStatus.DRAFT.value,
            )
            self.session.add(payroll)
        else:
            await self._delete_line_items(payroll.payroll_id)

        PayrollStateMachine.validate_transition(payroll.status, PayrollStatus.COMPUTED)

        government = result.government
        payroll.gross_pay = result.gross_pay
        payroll.taxable_income = government.taxable_income
        payroll.tax_deduction = government.tax
        payroll.philhealth_deduction = government.philhealth
        payroll.sss_deduction = government.sss
        payroll.pagibig_deduction = government.pagibig
        payroll.late_deduction = result.policy.late
        payroll.undertime_deduction = result.policy.undertime
        payroll.absence_deduction = result.policy.absence
        payroll.total_deductions = result.total_deductions
        payroll.net_pay = result.net_pay
        payroll.calculation_id = result.calculation_id
        payroll.engine_version = self.settings.engine_version
        payroll.processed_at = datetime.now(timezone.utc)
        payroll.status = PayrollStatus.COMPUTED.value

        self._add_line_items(payroll.payroll_id, result)

        await self.log_service.record(
            payroll,
            action,
            previous_status=previous_status,
            new_status=PayrollStatus.COMPUTED.value,
            user_id=user_id,
        )
        await self.session.flush()
        return payroll

    def _add_line_items(self, payroll_id: UUID, result: PayrollCalculationResult) -> None:
        for line in result.lines:
            line_hash = LineItemBuilder.compute_line_hash(line)
            if line.line_type == LineType.EARNING:
                self.session.add(
                    PayrollEarning(
                        payroll_id=payroll_id,
                        type=line.code,
                        hours=line.hours,
                        rate=line.rate,
                        amount=line.amount,
                        explanation=line.explanation,
                        line_hash=line_hash,
                    )
                )
            else:
                self.session.add(
                    Deduction(
                        payroll_id=payroll_id,
                        type=line.code,
                        amount=line.amount,
                        explanation=line.explanation,
                        line_hash=line_hash,
                    )
                )

    async def _delete_line_items(self, payroll_id: UUID) -> None:
        await self.session.execute(
            delete(PayrollEarning).where(PayrollEarning.payroll_id == payroll_id)
        )
        await self.session.execute(delete(Deduction).where(Deduction.payroll_id == payroll_id))

    async def verify_payroll_integrity(self, payroll_id: UUID) -> tuple[bool, list[str]]:
        """Verify that a payroll's line items sum to its totals.

        Returns (is_valid, list_of_errors).
        """
        errors: list[str] = []

        payroll = await self.session.get(Payroll, payroll_id)
        if payroll is None:
            return False, ["Payroll not found"]

        earnings = await self.session.execute(
            select(PayrollEarning.amount).where(PayrollEarning.payroll_id == payroll_id)
        )
        deductions = await self.session.execute(
            select(Deduction.amount).where(Deduction.payroll_id == payroll_id)
        )
        earned = sum(earnings.scalars().all())
        deducted = sum(deductions.scalars().all())

        if earned != payroll.gross_pay:
            errors.append(f"Gross mismatch: payroll shows {payroll.gross_pay}, earnings sum to {earned}")
        if deducted != payroll.total_deductions:
            errors.append(
                f"Deduction mismatch: payroll shows {payroll.total_deductions}, "
                f"deductions sum to {deducted}"
            )
        if payroll.net_pay != payroll.gross_pay - payroll.total_deductions:
            errors.append(
                f"Net mismatch: {payroll.net_pay} != {payroll.gross_pay} - {payroll.total_deductions}"
            )

        return len(errors) == 0, errors
